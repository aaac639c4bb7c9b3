"""
Static routes between cluster nodes for the pod network.
Статические маршруты между нодами кластера для сети подов.
"""

from network.addressing import build_gw_ip, build_pod_cidr, info_for_family
from utils.errors import AlreadyExistsError, LazyJackError, NotFoundError
from utils.logger import log

ADD = "add"
DELETE = "delete"


def matching_mgmt_info(pod_info, mgmt_infos):
    """
    Management plane of the same family as the pod plane.
    Плоскость управления того же семейства, что и плоскость подов.
    """
    return info_for_family(mgmt_infos, pod_info.mode)


def do_route_ops_on_nodes(node, config, op):
    """
    Add or delete routes from this node to every other cluster node's pod subnet.
    Добавляет или удаляет маршруты с этой ноды к подсетям подов остальных нод.

    (EN) Destination is the peer pod subnet, gateway the peer management IP
    of the same family. Existing routes on add and missing routes on delete
    are reported as skipped and the loop goes on. Any other failure aborts.
    (RU) Назначение - подсеть подов соседа, шлюз - его адрес в сети управления
    того же семейства. Уже существующие (при add) и отсутствующие (при delete)
    маршруты пропускаются. Любая другая ошибка прерывает цикл.
    """
    if not node.is_cluster_node:
        return
    net_mgr = config.net_mgr
    for peer in config.topology.values():
        if peer.id == node.id or not peer.is_cluster_node:
            continue
        for pod_info in config.pod.info:
            dest = build_pod_cidr(pod_info, peer.id)
            gw = build_gw_ip(matching_mgmt_info(pod_info, config.mgmt.info).prefix, peer.id)
            try:
                if op == ADD:
                    net_mgr.add_route_by_intf(dest, gw, node.interface)
                else:
                    net_mgr.delete_route_by_intf(dest, gw, node.interface)
            except AlreadyExistsError:
                log(f"skipping - add route to {dest} via {gw} as already exists", "warn")
                continue
            except NotFoundError:
                log(f"skipping - delete route from {dest} via {gw} as non-existent", "warn")
                continue
            except LazyJackError as e:
                raise LazyJackError(f"unable to {op} pod network route for {dest} to {peer.name}: {e}") from e
            log(f"Маршрут сети подов ({op}) {dest} к {peer.name}", "ok")


def create_routes_for_pod_network(node, config):
    log("Создание маршрутов для сети подов", "debug")
    do_route_ops_on_nodes(node, config, ADD)


def remove_routes_for_pod_network(node, config):
    log("Удаление маршрутов для сети подов", "debug")
    do_route_ops_on_nodes(node, config, DELETE)
