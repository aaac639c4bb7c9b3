"""
prepare: support containers and host settings for each role of the node.
prepare: вспомогательные контейнеры и настройки хоста по ролям ноды.
"""

from hostfiles.etc_hosts import add_host_entries
from hostfiles.resolv_conf import add_resolv_conf_entry
from kubeadm.kubeadm_config import create_kubeadm_config_file
from kubelet.dropin import create_kubelet_drop_in_file
from network.addressing import IPV6, build_node_cidr
from support.dns64 import prepare_dns64_server
from support.nat64 import prepare_nat64_server
from support.support_net import create_support_network, find_host_ip_for_nat64
from utils.errors import AlreadyExistsError, SkippingError
from utils.logger import log


def configure_management_interface(node, config):
    """
    Put the management address(es) on the node interface and set MTU to the pod MTU.
    Назначает адрес(а) управления на интерфейс ноды и MTU как у сети подов.
    """
    log(f"Настройка интерфейса управления {node.interface}", "info")
    net_mgr = config.net_mgr
    for info in config.mgmt.info:
        net_mgr.add_address(build_node_cidr(info, node.id), node.interface)
    net_mgr.set_link_mtu(node.interface, config.pod.mtu)


def _add_route(add, dest, gw):
    try:
        add()
    except AlreadyExistsError:
        log(f"skipping - add route to {dest} via {gw} as already exists", "warn")
        return
    log(f"Добавлен маршрут к {dest} через {gw}", "ok")


def create_route_to_nat64_server_for_dns64_subnet(node, config):
    dest = config.dns64.cidr
    net_mgr = config.net_mgr
    if node.is_nat64_server:
        gw = config.nat64.server_ip
        _add_route(lambda: net_mgr.add_route_by_cidr(dest, gw, config.support.v4_cidr), dest, gw)
    else:
        gw = find_host_ip_for_nat64(config, IPV6)
        _add_route(lambda: net_mgr.add_route_by_intf(dest, gw, node.interface), dest, gw)


def create_route_to_support_network_for_other_nodes(node, config):
    if node.is_nat64_server or node.is_dns64_server:
        return
    dest = config.support.cidr
    gw = find_host_ip_for_nat64(config, IPV6)
    _add_route(lambda: config.net_mgr.add_route_by_intf(dest, gw, node.interface), dest, gw)


def prepare_cluster_node(node, config):
    log("Подготовка общих настроек ноды", "info")
    steps = [
        ("Интерфейс управления", lambda: configure_management_interface(node, config)),
        ("Файл /etc/hosts", lambda: add_host_entries(config)),
    ]
    if config.general.mode == IPV6:
        steps.append(("Файл /etc/resolv.conf", lambda: add_resolv_conf_entry(config)))
    steps.append(("Drop-in файл kubelet", lambda: create_kubelet_drop_in_file(config)))
    if node.is_master:
        steps.append(("Файл kubeadm.conf", lambda: create_kubeadm_config_file(node, config)))
    if config.general.mode == IPV6:
        steps.append(("Маршрут к сети DNS64", lambda: create_route_to_nat64_server_for_dns64_subnet(node, config)))
        steps.append(("Маршрут к вспомогательной сети", lambda: create_route_to_support_network_for_other_nodes(node, config)))

    for title, step in steps:
        log(f"==> {title}", "debug")
        step()
    log("Общие настройки ноды подготовлены", "ok")


def prepare(name, config):
    node = config.topology[name]
    log(f'Подготовка "{name}"', "step")

    if node.is_dns64_server or node.is_nat64_server:
        try:
            create_support_network(config)
        except SkippingError as e:
            log(str(e), "warn")
    if node.is_dns64_server:
        prepare_dns64_server(config)
    if node.is_nat64_server:
        prepare_nat64_server(config)
    if node.is_cluster_node:
        prepare_cluster_node(node, config)
    log(f'Нода "{name}" подготовлена', "ok")
