"""
CNI plugin writers: bridge, ptp, and pass-through calico/none.
Генераторы конфигурации CNI: bridge, ptp и пустые calico/none.
"""

import os
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from cni.routes import create_routes_for_pod_network, remove_routes_for_pod_network
from network.addressing import IPV4, IPV6, build_pod_subnet_prefix
from utils.errors import CompositeError, LazyJackError
from utils.files import write_file
from utils.logger import log

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
BRIDGE_CONF_FILE = "cni.conf"
PTP_CONF_FILE = "dindnet.conf"
BRIDGE_NAME = "br0"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)


def build_ranges(config, node):
    """
    One IPAM range per pod address family, IPv6 first.
    Один диапазон IPAM на каждое семейство адресов подов, IPv6 первым.
    """
    ranges = []
    for info in sorted(config.pod.info, key=lambda i: i.mode != IPV6):
        prefix, suffix = build_pod_subnet_prefix(info.mode, info.prefix, info.size, node.id)
        ranges.append({
            "subnet": f"{prefix}{suffix}/{info.size}",
            "gateway": f"{prefix}1",
            "dst": "0.0.0.0/0" if info.mode == IPV4 else "::/0",
        })
    return ranges


class BridgePlugin:
    name = "bridge"
    conf_file = BRIDGE_CONF_FILE

    def __init__(self, config):
        self.config = config

    def config_contents(self, node) -> str:
        return _env.get_template("bridge.conf.j2").render(
            bridge=BRIDGE_NAME,
            ranges=build_ranges(self.config, node),
        )

    def write_config_contents(self, node, path=None):
        path = path or os.path.join(self.config.general.cni_area, self.conf_file)
        try:
            write_file(self.config_contents(node), path)
        except LazyJackError as e:
            raise LazyJackError(f"unable to create CNI config for bridge plugin: {e}") from e

    def setup(self, node):
        create_routes_for_pod_network(node, self.config)
        log("Маршруты для CNI bridge созданы", "debug")

    def cleanup(self, node):
        remove_routes_for_pod_network(node, self.config)
        log("Маршруты для CNI bridge удалены", "debug")
        try:
            self.config.net_mgr.remove_bridge(BRIDGE_NAME)
        except CompositeError as e:
            log(f"skipping - bridge {BRIDGE_NAME} not removed: {e}", "warn")


class PointToPointPlugin:
    name = "ptp"
    conf_file = PTP_CONF_FILE

    def __init__(self, config):
        self.config = config

    def config_contents(self, node) -> str:
        return _env.get_template("ptp.conf.j2").render(
            mtu=self.config.pod.mtu,
            ranges=build_ranges(self.config, node),
        )

    def write_config_contents(self, node, path=None):
        path = path or os.path.join(self.config.general.cni_area, self.conf_file)
        try:
            write_file(self.config_contents(node), path)
        except LazyJackError as e:
            raise LazyJackError(f"unable to create CNI config for PTP plugin: {e}") from e

    def setup(self, node):
        create_routes_for_pod_network(node, self.config)
        log("Маршруты для CNI PTP созданы", "debug")

    def cleanup(self, node):
        try:
            remove_routes_for_pod_network(node, self.config)
        except LazyJackError as e:
            raise LazyJackError(f"unable to remove routes for PTP plugin: {e}") from e
        log("Маршруты для CNI PTP удалены", "debug")


class PassThroughPlugin:
    """
    calico and none: nothing to write, nothing to route.
    calico и none: ничего не пишем и не маршрутизируем.
    """
    conf_file = None

    def __init__(self, config, name):
        self.config = config
        self.name = name

    def config_contents(self, node) -> str:
        return ""

    def write_config_contents(self, node, path=None):
        log(f"Плагин {self.name}: файл CNI не создаётся", "debug")

    def setup(self, node):
        pass

    def cleanup(self, node):
        pass


def make_plugin(config):
    name = config.general.plugin
    if name == "bridge":
        return BridgePlugin(config)
    if name == "ptp":
        return PointToPointPlugin(config)
    if name in ("calico", "none"):
        return PassThroughPlugin(config, name)
    raise LazyJackError(f'plugin "{name}" not supported')
