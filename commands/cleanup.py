"""
clean: revert everything prepare did on this host. Failures become warnings.
clean: откат всего, что сделал prepare на этом хосте. Ошибки выводятся как предупреждения.
"""

from hostfiles.etc_hosts import revert_host_entries
from hostfiles.resolv_conf import revert_resolv_conf_entry
from kubelet.dropin import remove_drop_in_file
from network.addressing import IPV6, build_node_cidr
from support.dns64 import cleanup_dns64_server
from support.nat64 import cleanup_nat64_server
from support.support_net import cleanup_support_network, collect_errors, find_host_ip_for_nat64
from utils.errors import LazyJackError
from utils.logger import log


def remove_management_ip(node, config, info, which="IP"):
    mgmt_ip = build_node_cidr(info, node.id)
    try:
        config.net_mgr.remove_address(mgmt_ip, node.interface)
    except LazyJackError as e:
        raise LazyJackError(f"unable to remove {which} from management interface: {e}") from e


def remove_route_for_dns64(node, config):
    dest = config.dns64.cidr
    gw = ""
    try:
        if node.is_nat64_server:
            gw = config.nat64.server_ip
            config.net_mgr.delete_route_by_cidr(dest, gw, config.support.v4_cidr)
        else:
            gw = find_host_ip_for_nat64(config, IPV6)
            config.net_mgr.delete_route_by_intf(dest, gw, node.interface)
    except LazyJackError as e:
        raise LazyJackError(f"unable to delete route to {dest} via {gw}: {e}") from e
    log(f"Удалён маршрут к {dest} через {gw}", "debug")


def remove_route_for_nat64(node, config):
    dest = config.support.cidr
    gw = ""
    try:
        gw = find_host_ip_for_nat64(config, IPV6)
        config.net_mgr.delete_route_by_intf(dest, gw, node.interface)
    except LazyJackError as e:
        raise LazyJackError(f"unable to delete route to {dest} via {gw}: {e}") from e
    log(f"Удалён маршрут к {dest} через {gw}", "debug")


def cleanup_cluster_node(node, config):
    """
    Undo host settings of a cluster node, collecting all failures.
    Откат настроек хоста для ноды кластера, со сбором всех ошибок.
    """
    log("Очистка общих настроек ноды", "info")
    steps = [lambda: remove_drop_in_file(config)]
    # по шагу на каждый адрес
    for i, info in enumerate(config.mgmt.info):
        which = "IP" if i == 0 else "second IP"
        steps.append(lambda info=info, which=which: remove_management_ip(node, config, info, which))
    steps.append(lambda: revert_host_entries(config))
    if config.general.mode == IPV6:
        steps.append(lambda: revert_resolv_conf_entry(config))
        steps.append(lambda: remove_route_for_dns64(node, config))
        if not node.is_nat64_server and not node.is_dns64_server:
            steps.append(lambda: remove_route_for_nat64(node, config))
    collect_errors(steps)
    log("Общие настройки ноды очищены", "ok")


def clean(name, config):
    node = config.topology[name]
    log(f'Очистка "{name}"', "step")

    if node.is_cluster_node:
        try:
            cleanup_cluster_node(node, config)
        except LazyJackError as e:
            log(str(e), "warn")

    if config.general.mode == IPV6 and (node.is_dns64_server or node.is_nat64_server):
        steps = []
        if node.is_nat64_server:
            steps.append(cleanup_nat64_server)
        if node.is_dns64_server:
            steps.append(cleanup_dns64_server)
        steps.append(cleanup_support_network)
        for step in steps:
            try:
                step(config)
            except LazyJackError as e:
                log(str(e), "warn")
    log(f'Нода "{name}" очищена', "ok")
