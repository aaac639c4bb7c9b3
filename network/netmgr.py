"""
Netlink driver: addresses, routes and links through pyroute2.
Драйвер netlink: адреса, маршруты и интерфейсы через pyroute2.
"""

import errno
import ipaddress
import socket

from pyroute2 import NetlinkError

from utils.errors import (
    AlreadyExistsError,
    CompositeError,
    LazyJackError,
    NotFoundError,
    NotPresentError,
    SkippingError,
)
from utils.logger import log

FAMILIES = {"all": socket.AF_UNSPEC, "ipv4": socket.AF_INET, "ipv6": socket.AF_INET6}


class NetLink:
    """
    Raw kernel access. Every method takes link indexes and raises NetlinkError.
    Прямой доступ к ядру. Методы принимают индексы интерфейсов.
    """

    def __init__(self):
        # Lazy-loaded pyroute2 IPRoute instance
        self._ipr = None

    def _get_ipr(self):
        """Get or create IPRoute instance."""
        if self._ipr is None:
            from pyroute2 import IPRoute

            self._ipr = IPRoute()
        return self._ipr

    def link_by_name(self, name):
        found = self._get_ipr().link_lookup(ifname=name)
        return found[0] if found else None

    def link_list(self):
        return [(link["index"], link.get_attr("IFLA_IFNAME")) for link in self._get_ipr().get_links()]

    def addr_list(self, index, family):
        result = []
        for msg in self._get_ipr().get_addr(index=index, family=FAMILIES[family]):
            result.append(f"{msg.get_attr('IFA_ADDRESS')}/{msg['prefixlen']}")
        return result

    def addr_replace(self, index, address, prefixlen):
        self._get_ipr().addr("replace", index=index, address=address, prefixlen=prefixlen)

    def addr_del(self, index, address, prefixlen):
        self._get_ipr().addr("del", index=index, address=address, prefixlen=prefixlen)

    def route_add(self, dst, gateway, index):
        self._get_ipr().route("add", dst=dst, gateway=gateway, oif=index)

    def route_del(self, dst, gateway, index):
        self._get_ipr().route("del", dst=dst, gateway=gateway, oif=index)

    def link_set_down(self, index):
        self._get_ipr().link("set", index=index, state="down")

    def link_set_mtu(self, index, mtu):
        self._get_ipr().link("set", index=index, mtu=mtu)

    def link_del(self, index):
        self._get_ipr().link("del", index=index)

    def close(self):
        """Close the IPRoute connection."""
        if self._ipr is not None:
            self._ipr.close()
            self._ipr = None


def build_route(dest, gw):
    """
    Validate and normalize destination CIDR and gateway.
    Проверяет и нормализует CIDR назначения и шлюз.
    """
    try:
        network = ipaddress.ip_network(dest, strict=False)
    except ValueError as e:
        raise LazyJackError(f'unable to parse destination CIDR "{dest}": {e}') from e
    try:
        gateway = ipaddress.ip_address(gw)
    except ValueError as e:
        raise LazyJackError(f'unable to parse gateway IP "{gw}"') from e
    return str(network), str(gateway)


class NetMgr:
    """
    Capability surface over the kernel networking API.
    Набор операций над сетевой подсистемой ядра.
    """

    def __init__(self, server=None):
        self.server = server if server is not None else NetLink()

    def _link(self, name):
        index = self.server.link_by_name(name)
        if index is None:
            raise NotPresentError(f'unable to find interface "{name}"')
        return index

    def add_address(self, ip, intf):
        """
        Add (replace) address on the link.
        Добавляет (заменяет) адрес на интерфейсе.
        """
        index = self._link(intf)
        try:
            addr = ipaddress.ip_interface(ip)
        except ValueError as e:
            raise LazyJackError(f'malformed address "{ip}"') from e
        try:
            self.server.addr_replace(index, str(addr.ip), addr.network.prefixlen)
        except NetlinkError as e:
            raise LazyJackError(f'unable to add ip "{ip}" to interface "{intf}": {e}') from e
        log(f'Добавлен адрес "{ip}" на интерфейс "{intf}"', "ok")

    def list_addrs(self, intf, family="all"):
        return self.server.addr_list(self._link(intf), family)

    def address_exists(self, addr, index):
        try:
            existing = self.server.addr_list(index, "all")
        except NetlinkError:
            return False
        return any(ipaddress.ip_interface(a) == addr for a in existing)

    def remove_address(self, ip, intf):
        """
        Remove address from link, skipping when it is not there.
        Удаляет адрес с интерфейса, пропускает если адреса нет.
        """
        index = self._link(intf)
        try:
            addr = ipaddress.ip_interface(ip)
        except ValueError as e:
            raise LazyJackError(f'malformed address to delete "{ip}"') from e
        if not self.address_exists(addr, index):
            raise SkippingError(f'address "{ip}" does not exist on interface "{intf}"')
        try:
            self.server.addr_del(index, str(addr.ip), addr.network.prefixlen)
        except NetlinkError as e:
            raise LazyJackError(f'unable to delete ip "{ip}" from interface "{intf}": {e}') from e
        log(f'Удалён адрес "{ip}" с интерфейса "{intf}"', "ok")

    def find_link_index_for_cidr(self, cidr):
        """
        Index of the link that has an IPv4 address inside the CIDR.
        Индекс интерфейса, у которого есть IPv4 адрес из указанной сети.
        """
        try:
            network = ipaddress.ip_network(cidr, strict=False)
        except ValueError as e:
            raise LazyJackError(f'unable to parse CIDR "{cidr}": {e}') from e
        links = self.server.link_list()
        if not links:
            raise NotPresentError("no links on system")
        for index, name in links:
            for addr in self.server.addr_list(index, "ipv4"):
                if ipaddress.ip_interface(addr).ip in network:
                    log(f'Для сети "{cidr}" используется интерфейс {name} ({index})', "debug")
                    return index
        raise NotPresentError(f'unable to find interface for CIDR "{cidr}"')

    def _route_add(self, dest, gw, index):
        dst, gateway = build_route(dest, gw)
        try:
            self.server.route_add(dst, gateway, index)
        except NetlinkError as e:
            if e.code == errno.EEXIST:
                raise AlreadyExistsError(f"route to {dest} via {gw} already exists") from e
            raise LazyJackError(f"unable to add route to {dest} via {gw}: {e}") from e

    def _route_del(self, dest, gw, index):
        dst, gateway = build_route(dest, gw)
        try:
            self.server.route_del(dst, gateway, index)
        except NetlinkError as e:
            if e.code == errno.ESRCH:
                raise NotFoundError(f"route to {dest} via {gw} does not exist") from e
            raise LazyJackError(f"unable to delete route to {dest} via {gw}: {e}") from e

    def add_route_by_cidr(self, dest, gw, covering_cidr):
        log(f"Добавление маршрута {dest} через {gw} (интерфейс по сети {covering_cidr})", "debug")
        self._route_add(dest, gw, self.find_link_index_for_cidr(covering_cidr))

    def delete_route_by_cidr(self, dest, gw, covering_cidr):
        log(f"Удаление маршрута {dest} через {gw} (интерфейс по сети {covering_cidr})", "debug")
        self._route_del(dest, gw, self.find_link_index_for_cidr(covering_cidr))

    def add_route_by_intf(self, dest, gw, intf):
        log(f"Добавление маршрута {dest} через {gw} на интерфейсе {intf}", "debug")
        self._route_add(dest, gw, self._link(intf))

    def delete_route_by_intf(self, dest, gw, intf):
        log(f"Удаление маршрута {dest} через {gw} на интерфейсе {intf}", "debug")
        index = self.server.link_by_name(intf)
        if index is None:
            raise SkippingError(f'Unable to find interface "{intf}" to delete route')
        self._route_del(dest, gw, index)

    def link_down(self, name):
        index = self._link(name)
        try:
            self.server.link_set_down(index)
        except NetlinkError as e:
            raise LazyJackError(f'unable to shut down interface "{name}"') from e
        log(f'Интерфейс "{name}" выключен', "ok")

    def link_delete(self, name):
        index = self._link(name)
        try:
            self.server.link_del(index)
        except NetlinkError as e:
            raise LazyJackError(f'unable to delete interface "{name}"') from e
        log(f'Интерфейс "{name}" удалён', "ok")

    def set_link_mtu(self, name, mtu):
        index = self._link(name)
        try:
            self.server.link_set_mtu(index, mtu)
        except NetlinkError as e:
            raise LazyJackError(f'unable to set MTU on interface "{name}"') from e
        log(f'На интерфейсе "{name}" установлен MTU {mtu}', "ok")

    def remove_bridge(self, name):
        """
        Link down, then delete. Fails only when both steps fail.
        Выключает и удаляет интерфейс. Ошибка только если оба шага не удались.
        """
        down_err = None
        try:
            self.link_down(name)
        except LazyJackError as e:
            down_err = e
        try:
            self.link_delete(name)
        except LazyJackError as e:
            if down_err is not None:
                raise CompositeError(
                    f"unable to bring link down ({down_err}), nor remove link ({e})",
                    [down_err, e],
                ) from e
            log(f'Мост "{name}" выключен, но не удалён: {e}', "warn")
            return
        log(f'Мост "{name}" удалён', "ok")
