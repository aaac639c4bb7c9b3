"""
Kubelet systemd drop-in with cluster DNS arguments.
Drop-in файл systemd для kubelet с параметрами DNS кластера.
"""

import os

from cluster.config import KUBELET_DROP_IN_FILE
from network.addressing import IPV6
from utils.errors import FileOpError, LazyJackError, SkippingError
from utils.files import ensure_dir, write_file
from utils.logger import log


def service_dns_ip(config):
    """
    kube-dns address: 10th address of the service network.
    Адрес kube-dns: десятый адрес сервисной сети.
    """
    info = config.service.info
    return f"{info.prefix}{'a' if info.mode == IPV6 else '10'}"


def cluster_dns_ip(config):
    if config.general.mode == IPV6 and config.dns64.server_ip:
        return config.dns64.server_ip
    return service_dns_ip(config)


def create_kubelet_drop_in_contents(config) -> str:
    return (
        "[Service]\n"
        f'Environment="KUBELET_DNS_ARGS=--cluster-dns={cluster_dns_ip(config)} --cluster-domain=cluster.local"\n'
    )


def drop_in_path(config):
    return os.path.join(config.general.systemd_area, KUBELET_DROP_IN_FILE)


def create_kubelet_drop_in_file(config):
    try:
        ensure_dir(config.general.systemd_area)
    except LazyJackError as e:
        raise LazyJackError(f"unable to create area for kubelet drop-in file: {e}") from e
    write_file(create_kubelet_drop_in_contents(config), drop_in_path(config))
    log("Создан drop-in файл kubelet", "ok")


def remove_drop_in_file(config):
    log("Удаление drop-in файла kubelet", "info")
    path = drop_in_path(config)
    try:
        os.remove(path)
    except FileNotFoundError as e:
        raise SkippingError("no kubelet drop-in file to remove") from e
    except OSError as e:
        raise FileOpError(f"unable to remove kubelet drop-in file ({path}): {e}") from e
    log("Drop-in файл kubelet удалён", "ok")
