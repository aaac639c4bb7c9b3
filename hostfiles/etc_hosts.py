"""
Annotated edit of /etc/hosts with cluster node names.
Правка /etc/hosts с пометками для имён нод кластера.
"""

import os
from dataclasses import dataclass

from cluster.config import ETC_HOSTS_BACKUP_FILE, ETC_HOSTS_FILE
from network.addressing import IPV6, info_for_family
from utils.files import ADDED_MARK, REMOVED_MARK, read_file, revert_entries, save_file_contents, split_lines
from utils.logger import log


@dataclass
class NodeInfo:
    name: str
    ip: str
    seen: bool = False


def hosts_mgmt_info(config):
    """
    Management plane used for names: IPv6 one when present.
    Плоскость управления для имён: IPv6, если есть.
    """
    return info_for_family(config.mgmt.info, IPV6)


def build_node_info(config):
    info = hosts_mgmt_info(config)
    nodes = []
    for name, node in config.topology.items():
        if not node.is_cluster_node:
            continue
        nodes.append(NodeInfo(name=name, ip=f"{info.prefix}{node.id}"))
        log(f"Запись для {name} ({nodes[-1].ip})", "debug")
    # словарь без порядка, сортируем для предсказуемого вывода
    return sorted(nodes, key=lambda n: n.name)


def matching_node_index(line, nodes):
    names = line.split()[1:]
    for i, node in enumerate(nodes):
        if node.name in names:
            return i
    return -1


def update_hosts_info(contents, nodes):
    """
    Comment out stale entries for cluster nodes and add the new ones.
    Комментирует устаревшие записи нод кластера и добавляет новые.

    (EN) Previous additions are filtered out first, so running prepare
    twice gives the same file.
    (RU) Ранее добавленные строки сначала отбрасываются, поэтому
    повторный prepare даёт тот же файл.
    """
    output = []
    for line in split_lines(contents):
        if line.endswith(ADDED_MARK):
            continue
        if not line.startswith("#"):
            i = matching_node_index(line, nodes)
            if i >= 0:
                if nodes[i].ip in line.split():
                    nodes[i].seen = True
                else:
                    line = REMOVED_MARK + line
        output.append(line + "\n")
    for node in nodes:
        if not node.seen:
            output.append(f"{node.ip} {node.name}{ADDED_MARK}\n")
    return "".join(output)


def add_host_entries(config):
    path = os.path.join(config.general.etc_area, ETC_HOSTS_FILE)
    backup = os.path.join(config.general.etc_area, ETC_HOSTS_BACKUP_FILE)
    log(f"Подготовка файла {path}", "info")
    contents = update_hosts_info(read_file(path), build_node_info(config))
    save_file_contents(contents, path, backup)
    log(f"Файл {path} подготовлен", "ok")


def revert_host_entries(config):
    path = os.path.join(config.general.etc_area, ETC_HOSTS_FILE)
    backup = os.path.join(config.general.etc_area, ETC_HOSTS_BACKUP_FILE)
    revert_entries(path, backup)
    log(f"Файл {path} восстановлен", "ok")
