"""
Cluster configuration model and YAML loading.
Модель конфигурации кластера и загрузка YAML.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import yaml

from network.addressing import IPV6, NetInfo
from utils.errors import ConfigError
from utils.logger import log

DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_PLUGIN = "bridge"
DEFAULT_NET_MODE = IPV6

WORK_AREA = "/tmp/lazyjack"
KUBERNETES_CERT_AREA = "/etc/kubernetes/pki"
KUBELET_SYSTEMD_AREA = "/etc/systemd/system/kubelet.service.d"
KUBELET_DROP_IN_FILE = "20-extra-dns-args.conf"
CNI_CONF_AREA = "/etc/cni/net.d"
ETC_AREA = "/etc"
ETC_HOSTS_FILE = "hosts"
ETC_HOSTS_BACKUP_FILE = "hosts.bak"
ETC_RESOLV_CONF_FILE = "resolv.conf"
ETC_RESOLV_CONF_BACKUP_FILE = "resolv.conf.bak"
KUBEADM_CONF_FILE = "kubeadm.conf"

DNS64_BASE_AREA = "dns64"
DNS64_CONF_AREA = "conf"
DNS64_CACHE_AREA = "cache"
DNS64_NAMED_CONF = "named.conf"

# используется при insecure-bind вместо сгенерированного
DEFAULT_TOKEN = "abcdef.abcdefghijklmnop"
MINIMUM_POD_MTU = 1280
DEFAULT_POD_MTU = 1500


@dataclass
class Node:
    name: str
    interface: str = ""
    id: int = 0
    opmodes: str = ""
    is_master: bool = False
    is_minion: bool = False
    is_dns64_server: bool = False
    is_nat64_server: bool = False

    @property
    def is_cluster_node(self):
        return self.is_master or self.is_minion


@dataclass
class SupportNetwork:
    cidr: str = ""
    v4_cidr: str = ""
    info: NetInfo = field(default_factory=NetInfo)


@dataclass
class ManagementNetwork:
    cidr: str = ""
    cidr2: str = ""
    prefix: str = ""
    size: int = 0
    info: List[NetInfo] = field(default_factory=list)


@dataclass
class PodNetwork:
    cidr: str = ""
    cidr2: str = ""
    prefix: str = ""
    size: int = 0
    mtu: int = 0
    info: List[NetInfo] = field(default_factory=list)


@dataclass
class ServiceNetwork:
    cidr: str = ""
    info: NetInfo = field(default_factory=NetInfo)


@dataclass
class DNS64Config:
    remote_server: str = ""
    cidr: str = ""
    cidr_prefix: str = ""
    server_ip: str = ""
    allow_aaaa_use: bool = False


@dataclass
class NAT64Config:
    v4_cidr: str = ""
    v4_ip: str = ""
    server_ip: str = ""


@dataclass
class GeneralSettings:
    mode: str = ""
    plugin: str = ""
    token: str = ""
    token_cert_hash: str = ""
    work_area: str = ""
    kubernetes_version: str = ""
    kubeadm_version: str = ""
    insecure: bool = False
    systemd_area: str = KUBELET_SYSTEMD_AREA
    etc_area: str = ETC_AREA
    cni_area: str = CNI_CONF_AREA
    k8s_cert_area: str = KUBERNETES_CERT_AREA


@dataclass
class Config:
    """
    Root of the cluster description plus driver handles.
    Корень описания кластера и ссылки на драйверы.
    """
    general: GeneralSettings = field(default_factory=GeneralSettings)
    topology: Dict[str, Node] = field(default_factory=dict)
    support: SupportNetwork = field(default_factory=SupportNetwork)
    mgmt: ManagementNetwork = field(default_factory=ManagementNetwork)
    pod: PodNetwork = field(default_factory=PodNetwork)
    service: ServiceNetwork = field(default_factory=ServiceNetwork)
    nat64: NAT64Config = field(default_factory=NAT64Config)
    dns64: DNS64Config = field(default_factory=DNS64Config)
    # драйверы, назначаются при валидации или подменяются в тестах
    net_mgr: Optional[object] = None
    hyper: Optional[object] = None
    executor: Optional[object] = None
    cni_plugin: Optional[object] = None

    def master_node(self) -> Optional[Node]:
        for node in self.topology.values():
            if node.is_master:
                return node
        return None

    def nat64_node(self) -> Optional[Node]:
        for node in self.topology.values():
            if node.is_nat64_server:
                return node
        return None


def _section(data, key):
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f'Failed to parse config: section "{key}" must be a mapping')
    return value


def _str(section, *keys):
    for key in keys:
        value = section.get(key)
        if value is not None:
            return str(value)
    return ""


def _int(section, key, what):
    value = section.get(key)
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f'Failed to parse config: {what} "{value}" is not a number') from e


def _bool(section, *keys):
    return any(bool(section.get(key)) for key in keys)


def build_config(data) -> Config:
    """
    Map a parsed YAML document onto the configuration structure.
    Переносит разобранный YAML в структуру конфигурации.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Failed to parse config: top level must be a mapping")

    general = _section(data, "general")
    gs = GeneralSettings(
        mode=_str(general, "mode"),
        plugin=_str(data, "plugin") or _str(general, "plugin"),
        token=_str(data, "token") or _str(general, "token"),
        token_cert_hash=_str(data, "token-cert-hash") or _str(general, "token-cert-hash"),
        work_area=_str(general, "work-area"),
        kubernetes_version=_str(general, "kubernetes-version"),
        kubeadm_version=_str(general, "kubeadm-version"),
        insecure=_bool(general, "insecure-bind", "insecure"),
    )

    topology = {}
    for name, entry in (_section(data, "topology")).items():
        entry = entry or {}
        topology[str(name)] = Node(
            name=str(name),
            interface=_str(entry, "interface"),
            id=_int(entry, "id", f"node ID for {name}"),
            opmodes=_str(entry, "opmodes"),
        )

    support = _section(data, "support_net")
    mgmt = _section(data, "mgmt_net")
    pod = _section(data, "pod_net")
    service = _section(data, "service_net")
    nat64 = _section(data, "nat64")
    dns64 = _section(data, "dns64")

    dns64_cidr = _str(dns64, "cidr")
    if not dns64_cidr and _str(dns64, "prefix"):
        dns64_cidr = f"{_str(dns64, 'prefix')}/{_str(dns64, 'prefix_size')}"

    return Config(
        general=gs,
        topology=topology,
        support=SupportNetwork(cidr=_str(support, "cidr"), v4_cidr=_str(support, "v4_cidr", "v4cidr")),
        mgmt=ManagementNetwork(
            cidr=_str(mgmt, "cidr"),
            cidr2=_str(mgmt, "cidr2"),
            prefix=_str(mgmt, "prefix"),
            size=_int(mgmt, "size", "management network size"),
        ),
        pod=PodNetwork(
            cidr=_str(pod, "cidr"),
            cidr2=_str(pod, "cidr2"),
            prefix=_str(pod, "prefix"),
            size=_int(pod, "size", "pod network size"),
            mtu=_int(pod, "mtu", "pod MTU"),
        ),
        service=ServiceNetwork(cidr=_str(service, "cidr")),
        nat64=NAT64Config(
            v4_cidr=_str(nat64, "v4_cidr"),
            v4_ip=_str(nat64, "v4_ip"),
            server_ip=_str(nat64, "ip"),
        ),
        dns64=DNS64Config(
            remote_server=_str(dns64, "remote_server"),
            cidr=dns64_cidr,
            server_ip=_str(dns64, "ip"),
            allow_aaaa_use=_bool(dns64, "allow_aaaa_use", "allow_ipv6_use", "allow_ipv6_defaults"),
        ),
    )


def parse_config(text) -> Config:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config: {e}") from e
    config = build_config(data)
    log(f"Прочитана конфигурация: {config}", "debug")
    return config


def load_config(path) -> Config:
    """
    Open and parse the YAML config file.
    Открывает и разбирает YAML файл конфигурации.
    """
    log(f'Чтение файла конфигурации "{path}"', "debug")
    try:
        with open(path, "r") as f:
            text = f.read()
    except OSError as e:
        raise ConfigError(f'unable to open config file "{path}": {e}') from e
    config = parse_config(text)
    log("Конфигурация загружена", "debug")
    return config
