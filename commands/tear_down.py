"""
down: undo the CNI plugin setup. kubeadm reset is left to the operator.
down: откат настройки CNI плагина. kubeadm reset выполняет оператор.
"""

from utils.errors import LazyJackError, NotPresentError
from utils.files import remove_dir
from utils.logger import log


def cleanup_for_plugin(node, config):
    log(f"Очистка плагина {config.general.plugin}", "info")
    config.cni_plugin.cleanup(node)
    try:
        remove_dir(config.general.cni_area)
    except NotPresentError:
        log("Каталог CNI уже отсутствует", "debug")
    except LazyJackError as e:
        raise LazyJackError(f"unable to remove CNI config file and area: {e}") from e
    log(f"Плагин {config.general.plugin} очищен", "ok")


def tear_down(name, config):
    node = config.topology[name]
    if not node.is_cluster_node:
        log(f'skipping - node "{name}" role is not master or minion', "warn")
        return
    role = "master" if node.is_master else "minion"
    log(f'Остановка "{name}" как {role}', "step")
    # kubeadm.conf остаётся, оператор мог его править
    try:
        cleanup_for_plugin(node, config)
    except LazyJackError as e:
        log(str(e), "warn")
    log(f'Нода "{name}" остановлена', "ok")
