"""
Shared fakes and sample configurations for the tests.
Общие заглушки и примеры конфигураций для тестов.
"""

import errno
import os

import pytest
from pyroute2 import NetlinkError

from cluster.config import parse_config
from cluster.validate import validate_config_contents
from cni.plugins import make_plugin
from hypervisor.docker import RESOURCE_EXISTS, RESOURCE_NOT_PRESENT, RESOURCE_RUNNING
from network.netmgr import NetMgr
from utils.errors import AlreadyExistsError, ExecError, LazyJackError

TOKEN = "7aee33.05f81856d78346bd"
CERT_HASH = "fcb5be7e6ff1a1b5b1a6c6e7f7a8b2c1d0e9f8a7b6c5d4e3f2a1b0c9d8e7f6a5"

IPV6_CONFIG = f"""\
# sample cluster
plugin: bridge
general:
  mode: ipv6
  kubernetes-version: "v1.10.3"
topology:
  bob:
    interface: eth1
    id: 2
    opmodes: "master dns64 nat64"
  alice:
    interface: eth1
    id: 3
    opmodes: "minion"
support_net:
  cidr: "fd00:10::/64"
  v4_cidr: "172.18.0.0/16"
mgmt_net:
  cidr: "fd00:100::/64"
pod_net:
  cidr: "fd00:40::/72"
  mtu: 9000
service_net:
  cidr: "fd00:30::/110"
nat64:
  v4_cidr: "172.18.0.128/25"
  v4_ip: "172.18.0.200"
  ip: "fd00:10::200"
dns64:
  remote_server: "8.8.8.8"
  cidr: "fd00:10:64:ff9b::/96"
  ip: "fd00:10::100"
token: "{TOKEN}"
token-cert-hash: "{CERT_HASH}"
"""

IPV4_CONFIG = f"""\
plugin: ptp
general:
  mode: ipv4
topology:
  master:
    interface: eth1
    id: 10
    opmodes: "master"
  minion1:
    interface: eth2
    id: 20
    opmodes: "minion"
mgmt_net:
  cidr: "10.192.0.0/16"
pod_net:
  cidr: "10.244.0.0/16"
service_net:
  cidr: "10.96.0.0/12"
token: "{TOKEN}"
token-cert-hash: "{CERT_HASH}"
"""

DUAL_STACK_CONFIG = f"""\
plugin: ptp
general:
  mode: dual-stack
topology:
  master:
    interface: eth1
    id: 10
    opmodes: "master"
  minion1:
    interface: eth1
    id: 20
    opmodes: "minion"
mgmt_net:
  cidr: "fd00:100::/64"
  cidr2: "10.192.0.0/16"
pod_net:
  cidr: "fd00:40::/72"
  cidr2: "10.244.0.0/16"
  mtu: 9000
service_net:
  cidr: "fd00:30::/110"
token: "{TOKEN}"
token-cert-hash: "{CERT_HASH}"
"""

HOSTS = """\
127.0.0.1 localhost
10.86.7.91 bob
::1 ip6-localhost
"""

RESOLV_CONF = """\
search example.com
nameserver 8.8.8.8
nameserver 8.8.4.4
"""


class FakeNetLink:
    """
    In-memory stand-in for the pyroute2 based NetLink.
    Заглушка NetLink в памяти вместо pyroute2.
    """

    def __init__(self, links=None):
        # br-support несёт IPv4 адрес вспомогательной сети
        self.links = dict(links or {"lo": 1, "eth1": 2, "br-support": 3})
        self.addrs = {index: [] for index in self.links.values()}
        if "br-support" in self.links:
            self.addrs[self.links["br-support"]].append("172.18.0.1/16")
        self.routes = []
        self.mtu = {}
        self.down = []
        self.deleted = []
        self.fail = {}

    def _check(self, method):
        if method in self.fail:
            raise NetlinkError(self.fail[method], f"{method} failed")

    def link_by_name(self, name):
        return self.links.get(name)

    def link_list(self):
        return [(index, name) for name, index in self.links.items()]

    def addr_list(self, index, family):
        self._check("addr_list")
        return [a for a in self.addrs.get(index, []) if family == "all" or (family == "ipv4") == ("." in a)]

    def addr_replace(self, index, address, prefixlen):
        self._check("addr_replace")
        entry = f"{address}/{prefixlen}"
        if entry not in self.addrs.setdefault(index, []):
            self.addrs[index].append(entry)

    def addr_del(self, index, address, prefixlen):
        self._check("addr_del")
        self.addrs[index].remove(f"{address}/{prefixlen}")

    def route_add(self, dst, gateway, index):
        self._check("route_add")
        if (dst, gateway, index) in self.routes:
            raise NetlinkError(errno.EEXIST, "File exists")
        self.routes.append((dst, gateway, index))

    def route_del(self, dst, gateway, index):
        self._check("route_del")
        if (dst, gateway, index) not in self.routes:
            raise NetlinkError(errno.ESRCH, "No such process")
        self.routes.remove((dst, gateway, index))

    def link_set_down(self, index):
        self._check("link_set_down")
        self.down.append(index)

    def link_set_mtu(self, index, mtu):
        self._check("link_set_mtu")
        self.mtu[index] = mtu

    def link_del(self, index):
        self._check("link_del")
        self.deleted.append(index)


class FakeExecutor:
    """
    Records calls, returns canned output keyed by (cmd, first arg) or cmd.
    Запоминает вызовы и возвращает заготовленный вывод по (cmd, первый аргумент) или cmd.
    """

    def __init__(self, outputs=None, fail=None):
        self.outputs = dict(outputs or {})
        self.fail = dict(fail or {})
        self.calls = []

    def _lookup(self, table, cmd, args):
        if args and (cmd, args[0]) in table:
            return table[(cmd, args[0])]
        return table.get(cmd)

    def run(self, cmd, args):
        self.calls.append((cmd, list(args)))
        code = self._lookup(self.fail, cmd, args)
        if code is not None:
            raise ExecError(f'failed running "{cmd}": exit status {code}', cmd, args, code, "")
        return self._lookup(self.outputs, cmd, args) or ""


class FakeHypervisor:
    def __init__(self):
        self.states = {}
        self.calls = []
        self.fail = {}
        self.route_exists = False
        self.if_config = (
            "12: eth0@if13: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500\n"
            "    inet 172.18.0.2/16 brd 172.18.255.255 scope global eth0\n"
            "    inet6 fd00:10::100/64 scope global nodad\n"
        )

    def _record(self, method, *args):
        self.calls.append((method,) + args)
        if method in self.fail:
            raise LazyJackError(self.fail[method])

    def resource_state(self, name):
        return self.states.get(name, RESOURCE_NOT_PRESENT)

    def create_network(self, name, cidr, v4_cidr, gw_prefix):
        self._record("create_network", name, cidr, v4_cidr, gw_prefix)
        self.states[name] = RESOURCE_EXISTS

    def delete_network(self, name):
        self._record("delete_network", name)
        self.states.pop(name, None)

    def run_container(self, name, args):
        self._record("run_container", name, args)
        self.states[args[args.index("--name") + 1]] = RESOURCE_RUNNING

    def delete_container(self, name):
        self._record("delete_container", name)
        self.states.pop(name, None)

    def get_interface_config(self, container, if_name):
        self._record("get_interface_config", container, if_name)
        return self.if_config

    def delete_v4_address(self, container, ip):
        self._record("delete_v4_address", container, ip)

    def add_v6_route(self, container, dest, via):
        self._record("add_v6_route", container, dest, via)
        if self.route_exists:
            raise AlreadyExistsError(f"route to {dest} via {via} already exists in {container}")


def build_config(text, tmp_path, netlink=None, hyper=None, executor=None, ignore_missing=False):
    """
    Parse + validate config text and point every area into tmp_path.
    Разбирает и проверяет конфиг, все каталоги направляет в tmp_path.
    """
    config = parse_config(text)
    validate_config_contents(config, ignore_missing)
    general = config.general
    general.work_area = str(tmp_path / "work")
    general.systemd_area = str(tmp_path / "systemd")
    general.etc_area = str(tmp_path / "etc")
    general.cni_area = str(tmp_path / "cni")
    general.k8s_cert_area = str(tmp_path / "pki")
    for area in (general.work_area, general.etc_area):
        os.makedirs(area, exist_ok=True)
    (tmp_path / "etc" / "hosts").write_text(HOSTS)
    (tmp_path / "etc" / "resolv.conf").write_text(RESOLV_CONF)
    config.net_mgr = NetMgr(netlink if netlink is not None else FakeNetLink())
    config.hyper = hyper if hyper is not None else FakeHypervisor()
    config.executor = executor if executor is not None else FakeExecutor()
    config.cni_plugin = make_plugin(config)
    return config


@pytest.fixture
def netlink():
    return FakeNetLink()


@pytest.fixture
def hyper():
    return FakeHypervisor()


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def config(tmp_path, netlink, hyper, executor):
    return build_config(IPV6_CONFIG, tmp_path, netlink, hyper, executor)


@pytest.fixture
def ipv4_config(tmp_path, netlink, hyper, executor):
    return build_config(IPV4_CONFIG, tmp_path, netlink, hyper, executor)


@pytest.fixture
def dual_config(tmp_path, netlink, hyper, executor):
    return build_config(DUAL_STACK_CONFIG, tmp_path, netlink, hyper, executor)
