"""
Address arithmetic for node, gateway and pod subnet addresses (IPv4, IPv6, dual-stack).
Вычисление адресов нод, шлюзов и подсетей подов (IPv4, IPv6, dual-stack).
"""

import ipaddress
from dataclasses import dataclass

IPV4 = "ipv4"
IPV6 = "ipv6"
DUAL_STACK = "dual-stack"
NET_MODES = (IPV4, IPV6, DUAL_STACK)


@dataclass
class NetInfo:
    """
    One address family plane of a network.
    Одна плоскость (семейство адресов) сети.
    """
    mode: str = IPV6
    prefix: str = ""
    size: int = 0
    cidr: str = ""


def build_node_cidr(info: NetInfo, node_id: int) -> str:
    """
    Node address with mask, e.g. fd00:100::10/64.
    Адрес ноды с маской, например fd00:100::10/64.
    """
    return f"{info.prefix}{node_id}/{info.size}"


def build_gw_ip(prefix: str, int_part) -> str:
    return f"{prefix}{int_part}"


def build_pod_subnet_prefix(mode: str, prefix: str, net_size: int, node_id: int):
    """
    Build per-node pod subnet prefix and suffix.
    Строит префикс и суффикс подсети подов для ноды.

    (EN) IPv4: third octet is replaced by the node ID, suffix "0".
    IPv6: when the size is not on a 16 bit boundary the ID goes into the
    upper byte of the group, otherwise into the lower byte (padded with
    a leading zero when the prefix ends inside a group). Suffix is empty.
    (RU) IPv4: третий октет заменяется на ID ноды, суффикс "0".
    IPv6: если размер не кратен 16, ID сдвигается в старший байт группы,
    иначе в младший (с ведущим нулём, если префикс обрывается внутри группы).
    """
    if node_id < 1 or node_id > 255:
        raise ValueError(f"node ID {node_id} out of range 1..255")
    if mode == IPV4:
        parts = prefix.split(".")
        return f"{parts[0]}.{parts[1]}.{node_id}.", "0"
    if net_size % 16 != 0:
        node_id *= 256
    elif not prefix.endswith(":") and node_id < 0x10:
        prefix += "0"
    return f"{prefix}{node_id:x}::", ""


def build_pod_cidr(info: NetInfo, node_id: int) -> str:
    prefix, suffix = build_pod_subnet_prefix(info.mode, info.prefix, info.size, node_id)
    return f"{prefix}{suffix}/{info.size}"


def get_net_and_mask(cidr: str):
    """
    Network address (compressed text) and mask length of a CIDR.
    Адрес сети (в сокращённой записи) и длина маски.
    """
    network = ipaddress.ip_network(cidr, strict=False)
    return str(network.network_address), network.prefixlen


def is_ipv4(ip: str) -> bool:
    return ipaddress.ip_address(ip).version == 4


def make_prefix_from_network(network: str, net_size: int) -> str:
    """
    Expand an IPv6 network so a node ID can be appended.
    Расширяет IPv6 сеть так, чтобы к ней можно было дописать ID ноды.

        fd00:40:: (72)            -> fd00:40:0:0:
        fd00:10:20:30:4000:: (72) -> fd00:10:20:30:40
        fd00:10:20:30:: (64)      -> fd00:10:20:30:
        fd00:10:20:30:: (80)      -> fd00:10:20:30:0:
    """
    min_parts = net_size // 16
    parts = network.rstrip(":").split(":")
    have_parts = len(parts)
    if have_parts > min_parts:
        if parts[min_parts].endswith("00"):
            parts[min_parts] = parts[min_parts][:-2]
    while have_parts < min_parts:
        parts.append("0")
        have_parts += 1
    prefix = ":".join(parts)
    if have_parts == min_parts:
        prefix += ":"
    return prefix


def make_v4_prefix_from_network(ip: str) -> str:
    # последний октет отбрасывается всегда
    parts = ip.split(".")
    return f"{parts[0]}.{parts[1]}.{parts[2]}."


def info_for_family(infos, mode):
    """
    Plane of the requested family, or the first one when absent.
    Плоскость нужного семейства, иначе первая из списка.
    """
    for info in infos:
        if info.mode == mode:
            return info
    return infos[0]
