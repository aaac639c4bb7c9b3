"""
up: CNI config, plugin routes, kubelet restart and kubeadm init/join.
up: конфиг CNI, маршруты плагина, перезапуск kubelet и kubeadm init/join.
"""

from certs.generate_ca import CA_CERT, CA_KEY, cert_area
from kubeadm.kubeadm_config import build_kubeadm_command
from utils.errors import FileOpError, LazyJackError, NotPresentError, is_skipping
from utils.files import FILE_MODE, copy_file, ensure_dir, recreate_dir
from utils.logger import log


def ensure_cni_area_exists(area):
    recreate_dir(area, FILE_MODE)
    log("Создан каталог для конфигурации CNI", "debug")


def setup_for_plugin(node, config):
    plugin = config.cni_plugin
    log(f"Настройка плагина {config.general.plugin}", "info")
    ensure_cni_area_exists(config.general.cni_area)
    plugin.write_config_contents(node)
    try:
        plugin.setup(node)
    except LazyJackError as e:
        if not is_skipping(e):
            raise
        log(str(e), "warn")
    log(f"Плагин {config.general.plugin} настроен", "ok")


def restart_kubelet_service(config):
    executor = config.executor
    try:
        executor.run("systemctl", ["daemon-reload"])
    except LazyJackError as e:
        raise LazyJackError(f"unable to reload daemons: {e}") from e
    log("Демоны перечитаны", "debug")
    try:
        executor.run("systemctl", ["restart", "kubelet"])
    except LazyJackError as e:
        raise LazyJackError(f"unable to restart kubelet service: {e}") from e
    log("Демоны перечитаны, сервис kubelet перезапущен", "ok")


def place_certificate_and_key_for_ca(work_base, dst):
    log("Копирование сертификата и ключа CA в каталог Kubernetes", "info")
    try:
        ensure_dir(dst)
    except FileOpError as e:
        raise FileOpError(f"unable to create area for Kubernetes certificates ({dst}): {e}") from e
    src = cert_area(work_base)
    copy_file(CA_CERT, src, dst)
    copy_file(CA_KEY, src, dst)
    log("Сертификат и ключ CA скопированы", "ok")


def start_kubernetes(node, config):
    master = config.master_node()
    if master is None:
        raise NotPresentError("unable to determine master node")
    args = build_kubeadm_command(node, master, config)
    log(f"Запуск Kubernetes на {node.name}... (ожидайте)", "info")
    try:
        output = config.executor.run("kubeadm", args)
    except LazyJackError as e:
        raise LazyJackError(f"unable to {args[0]} Kubernetes cluster: {e}") from e
    log(f"Вывод kubeadm {args[0]}: {output}", "debug")
    log(f"Kubernetes {args[0]} выполнен", "ok")


def bring_up(name, config):
    node = config.topology[name]
    if not node.is_cluster_node:
        log(f'Нода "{name}" не master и не minion, пропускаю', "warn")
        return
    role = "master" if node.is_master else "minion"
    log(f'Запуск "{name}" как {role}', "step")

    setup_for_plugin(node, config)
    restart_kubelet_service(config)
    if node.is_master:
        place_certificate_and_key_for_ca(config.general.work_area, config.general.k8s_cert_area)
    start_kubernetes(node, config)
    log(f'Нода "{name}" запущена', "ok")
