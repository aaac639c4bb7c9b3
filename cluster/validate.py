"""
Validation and normalization of the cluster configuration.
Проверка и нормализация конфигурации кластера.
"""

import ipaddress
import re

from cluster.config import (
    DEFAULT_NET_MODE,
    DEFAULT_PLUGIN,
    DEFAULT_POD_MTU,
    MINIMUM_POD_MTU,
    WORK_AREA,
)
from network.addressing import (
    DUAL_STACK,
    IPV4,
    IPV6,
    NET_MODES,
    NetInfo,
    get_net_and_mask,
    is_ipv4,
    make_prefix_from_network,
    make_v4_prefix_from_network,
)
from utils.errors import ConfigError, UnsupportedError
from utils.logger import log

VALID_COMMANDS = ["init", "prepare", "up", "down", "clean", "version"]
VALID_PLUGINS = ["bridge", "ptp", "calico", "none"]
CLUSTER_OPMODES = ["master", "minion"]
SUPPORT_OPMODES = ["dns64", "nat64"]

TOKEN_RE = re.compile(r"^[a-z0-9]{6}\.[a-z0-9]{16}$")
HASH_RE = re.compile(r"^[a-f0-9]{64}$")


def validate_command(command) -> str:
    """
    Case-insensitive match of the verb.
    Проверка команды без учёта регистра.
    """
    if not command:
        raise UnsupportedError("missing command")
    for valid in VALID_COMMANDS:
        if valid == command.lower():
            return valid
    raise UnsupportedError(f'unknown command "{command}"')


def validate_host(host, config):
    if host not in config.topology:
        raise ConfigError(f'unable to find info for host "{host}" in config file')


def validate_unique_ids(config):
    seen = {}
    for name, node in config.topology.items():
        if node.id in seen:
            raise ConfigError(f'duplicate node ID {node.id} seen for node "{seen[node.id]}" and "{name}"')
        seen[node.id] = name
        log(f'Нода "{name}" имеет ID {node.id}', "debug")


def validate_node_id(node):
    if node.id < 1 or node.id > 255:
        raise ConfigError(f'node ID {node.id} for "{node.name}" must be in range 1..255')


def validate_node_op_modes(net_mode, node):
    """
    Parse opmodes string into role flags.
    Разбирает строку opmodes в флаги ролей.

    (EN) dns64/nat64 modes are only accepted in ipv6 network mode.
    (RU) Режимы dns64/nat64 допустимы только в режиме сети ipv6.
    """
    valid = list(CLUSTER_OPMODES)
    if net_mode == IPV6:
        valid += SUPPORT_OPMODES
    node.is_master = node.is_minion = node.is_dns64_server = node.is_nat64_server = False
    ops = node.opmodes.split()
    if not ops:
        raise ConfigError(f'missing operating mode for "{node.name}"')
    for op in ops:
        mode = op.lower()
        if mode not in valid:
            raise ConfigError(f'invalid operating mode "{op}" for "{node.name}"')
        if mode == "master":
            node.is_master = True
        elif mode == "minion":
            node.is_minion = True
        elif mode == "dns64":
            node.is_dns64_server = True
        else:
            node.is_nat64_server = True
        log(f'Нода "{node.name}" в режиме {mode}', "debug")
    if node.is_master and node.is_minion:
        raise ConfigError(f'invalid combination of modes for "{node.name}"')
    if node.is_dns64_server and not node.is_nat64_server:
        raise ConfigError(f'missing "nat64" mode for "{node.name}"')
    if node.is_nat64_server and not node.is_dns64_server:
        raise ConfigError(f'missing "dns64" mode for "{node.name}"')


def validate_op_modes_for_all_nodes(config):
    masters = 0
    for name, node in config.topology.items():
        node.name = name
        validate_node_id(node)
        validate_node_op_modes(config.general.mode, node)
        if node.is_master:
            masters += 1
        if masters > 1:
            raise ConfigError('found multiple nodes with "master" operating mode')
    if masters == 0:
        raise ConfigError("no master node configuration")
    log("Все ноды имеют корректные режимы работы", "debug")


def validate_token(token, ignore_missing):
    if not token:
        if ignore_missing:
            return
        raise ConfigError("missing token in config file")
    if len(token) != 23:
        raise ConfigError(f"invalid token length ({len(token)})")
    if not TOKEN_RE.match(token):
        raise ConfigError(f'token is invalid "{token}"')


def validate_token_cert_hash(cert_hash, ignore_missing):
    if not cert_hash:
        if ignore_missing:
            return
        raise ConfigError("missing token certificate hash in config file")
    if len(cert_hash) != 64:
        raise ConfigError(f"invalid token certificate hash length ({len(cert_hash)})")
    if not HASH_RE.match(cert_hash):
        raise ConfigError(f'token certificate hash is invalid "{cert_hash}"')


def validate_cidr(which, cidr):
    if not cidr:
        raise ConfigError(f"config missing {which} CIDR")
    try:
        ipaddress.ip_network(cidr, strict=False)
    except ValueError as e:
        raise ConfigError(f"unable to parse {which} CIDR ({cidr})") from e


def validate_network_mode(config):
    mode = (config.general.mode or DEFAULT_NET_MODE).lower()
    if mode not in NET_MODES:
        raise ConfigError(f'unsupported network mode "{mode}" entered')
    config.general.mode = mode
    log(f'Кластер строится в режиме "{mode}"', "info")


def validate_plugin(config):
    plugin = config.general.plugin
    if not plugin:
        log(f'Плагин не указан - используется "{DEFAULT_PLUGIN}"', "info")
        plugin = DEFAULT_PLUGIN
    plugin = plugin.lower()
    if plugin not in VALID_PLUGINS:
        raise ConfigError(f'plugin "{plugin}" not supported')
    config.general.plugin = plugin


def _mgmt_info(cidr, which):
    network, size = get_net_and_mask(cidr)
    if is_ipv4(network):
        if size not in (8, 16):
            raise ConfigError(f"only /8 and /16 are supported for IPv4 {which} - have /{size}")
        return NetInfo(IPV4, make_v4_prefix_from_network(network), size, cidr)
    return NetInfo(IPV6, network, size, cidr)


def _pod_info(cidr):
    network, size = get_net_and_mask(cidr)
    # каждая нода получает подсеть на 8 бит меньше
    if is_ipv4(network):
        if size not in (8, 16):
            raise ConfigError(f"only /8 and /16 are supported for IPv4 pod networks - have /{size}")
        return NetInfo(IPV4, make_v4_prefix_from_network(network), size + 8, cidr)
    return NetInfo(IPV6, make_prefix_from_network(network, size), size + 8, cidr)


def _check_families(which, infos, mode):
    """
    Exactly one plane (matching mode), or two distinct planes in dual-stack.
    Одна плоскость (совпадающая с режимом) или две разные в dual-stack.
    """
    if mode == DUAL_STACK:
        if len(infos) != 2 or infos[0].mode == infos[1].mode:
            raise ConfigError(f"{which} must have one IPv4 and one IPv6 CIDR in dual-stack mode")
        return
    if len(infos) != 1:
        raise ConfigError(f"{which} must have exactly one CIDR in {mode} mode")
    if infos[0].mode != mode:
        raise ConfigError(f"{which} CIDR ({infos[0].cidr}) does not match {mode} mode")


def calculate_derived_fields(config):
    """
    Split CIDRs into prefix and size for later use.
    Разбивает CIDR на префикс и размер для дальнейшего использования.
    """
    mode = config.general.mode
    try:
        mgmt = []
        if config.mgmt.cidr:
            mgmt.append(_mgmt_info(config.mgmt.cidr, "management network"))
        elif config.mgmt.prefix and config.mgmt.size:
            mgmt.append(NetInfo(IPV6, config.mgmt.prefix, config.mgmt.size))
        else:
            raise ConfigError("missing management network CIDR")
        if config.mgmt.cidr2:
            mgmt.append(_mgmt_info(config.mgmt.cidr2, "management network"))
    except ValueError as e:
        raise ConfigError(f"invalid management network CIDR: {e}") from e
    _check_families("management network", mgmt, mode)
    config.mgmt.info = mgmt

    try:
        network, size = get_net_and_mask(config.service.cidr)
    except ValueError as e:
        raise ConfigError(f"invalid service network CIDR: {e}") from e
    if is_ipv4(network):
        if size >= 24:
            raise ConfigError(f"service subnet size must be /23 or larger - have /{size}")
        config.service.info = NetInfo(IPV4, make_v4_prefix_from_network(network), size, config.service.cidr)
    else:
        config.service.info = NetInfo(IPV6, network, size, config.service.cidr)

    if mode == IPV6:
        try:
            prefix, size = get_net_and_mask(config.support.cidr)
        except ValueError as e:
            raise ConfigError(f"invalid support network CIDR: {e}") from e
        config.support.info = NetInfo(IPV6, prefix, size, config.support.cidr)

    try:
        pod = []
        if config.pod.cidr:
            pod.append(_pod_info(config.pod.cidr))
        elif config.pod.prefix and config.pod.size:
            # устаревший формат (только IPv6): префикс + размер
            prefix = config.pod.prefix if config.pod.prefix.endswith(":") else config.pod.prefix + ":"
            pod.append(NetInfo(IPV6, prefix, config.pod.size))
        else:
            raise ConfigError("missing pod network CIDR")
        if config.pod.cidr2:
            pod.append(_pod_info(config.pod.cidr2))
    except ValueError as e:
        raise ConfigError(f"invalid pod network CIDR: {e}") from e
    _check_families("pod network", pod, mode)
    config.pod.info = pod

    if mode == IPV6:
        try:
            config.dns64.cidr_prefix, _ = get_net_and_mask(config.dns64.cidr)
        except ValueError as e:
            raise ConfigError(f"invalid DNS64 CIDR: {e}") from e


def validate_pod_fields(config):
    if not config.pod.mtu:
        config.pod.mtu = DEFAULT_POD_MTU
    if config.pod.mtu < MINIMUM_POD_MTU:
        raise ConfigError(f"MTU ({config.pod.mtu}) is less than minimum MTU for IPv6 ({MINIMUM_POD_MTU})")


def validate_nat64_fields(config):
    """
    Mapping IP and pool must be inside the IPv4 support subnet.
    IP и пул маппинга должны лежать в IPv4 подсети support сети.
    """
    if config.general.mode != IPV6:
        return
    if not config.support.v4_cidr:
        raise ConfigError("missing IPv4 support network CIDR")
    if not config.nat64.v4_ip:
        raise ConfigError("missing IPv4 mapping IP")
    if not config.nat64.v4_cidr:
        raise ConfigError("missing IPv4 mapping CIDR")
    try:
        support_net = ipaddress.ip_network(config.support.v4_cidr, strict=False)
    except ValueError as e:
        raise ConfigError(f"v4 support network ({config.support.v4_cidr}) is invalid: {e}") from e
    try:
        mapping_ip = ipaddress.ip_address(config.nat64.v4_ip)
    except ValueError as e:
        raise ConfigError(f"v4 mapping IP ({config.nat64.v4_ip}) is invalid") from e
    try:
        pool_ip = ipaddress.ip_interface(config.nat64.v4_cidr).ip
    except ValueError as e:
        raise ConfigError(f"v4 mapping CIDR ({config.nat64.v4_cidr}) is invalid: {e}") from e
    if mapping_ip not in support_net:
        raise ConfigError(
            f"V4 mapping IP ({config.nat64.v4_ip}) is not within IPv4 support subnet ({config.support.v4_cidr})"
        )
    if pool_ip not in support_net:
        raise ConfigError(
            f"V4 mapping CIDR ({config.nat64.v4_cidr}) is not within IPv4 support subnet ({config.support.v4_cidr})"
        )


def derive_kubeadm_version(config):
    """
    kubeadm template version: explicit, else vMAJOR.MINOR of kubernetes-version, else 1.10.
    Версия шаблона kubeadm: явная, иначе из kubernetes-version, иначе 1.10.
    """
    if config.general.kubeadm_version:
        return
    match = re.match(r"^v?(\d+)\.(\d+)", config.general.kubernetes_version)
    config.general.kubeadm_version = f"{match.group(1)}.{match.group(2)}" if match else "1.10"


def setup_base_areas(config, work=WORK_AREA):
    if not config.general.work_area:
        config.general.work_area = work


def validate_config_contents(config, ignore_missing):
    """
    Check the whole configuration. Token and hash may be absent during init.
    Проверяет всю конфигурацию. На init токен и хеш могут отсутствовать.
    """
    if config is None:
        raise ConfigError("no configuration loaded")

    # присутствие обязательных полей
    validate_plugin(config)
    validate_network_mode(config)
    validate_cidr("service network", config.service.cidr)
    if config.general.mode == IPV6:
        validate_cidr("support network", config.support.cidr)
        validate_cidr("DNS64", config.dns64.cidr)
    if not ignore_missing and not config.general.token:
        raise ConfigError("missing token in config file")
    if not ignore_missing and not config.general.token_cert_hash:
        raise ConfigError("missing token certificate hash in config file")

    validate_unique_ids(config)
    validate_op_modes_for_all_nodes(config)
    calculate_derived_fields(config)

    validate_token(config.general.token, ignore_missing)
    validate_token_cert_hash(config.general.token_cert_hash, ignore_missing)

    validate_pod_fields(config)
    validate_nat64_fields(config)
    derive_kubeadm_version(config)
    setup_base_areas(config)
    log("Конфигурация корректна", "debug")
