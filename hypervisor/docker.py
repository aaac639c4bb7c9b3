"""
Container runtime driver on top of the docker CLI.
Драйвер контейнерной среды поверх docker CLI.
"""

from utils.errors import AlreadyExistsError, ExecError
from utils.executor import Executor
from utils.logger import log

DOCKER = "docker"

RESOURCE_NOT_PRESENT = "not-present"
RESOURCE_RUNNING = "running"
RESOURCE_EXISTS = "exists"

SUPPORT_NET_NAME = "support_net"
LABEL = "lazyjack"
DNS64_NAME = "bind9"
DNS64_IMAGE = "resystit/bind9:latest"
NAT64_NAME = "tayga"
NAT64_IMAGE = "danehans/tayga:latest"
IPV6_SYSCTLS = [
    "--sysctl", "net.ipv6.conf.all.disable_ipv6=0",
    "--sysctl", "net.ipv6.conf.all.forwarding=1",
]

# ip route add внутри контейнера возвращает 2, если маршрут уже есть
ROUTE_EXISTS_STATUS = 2


def build_run_args_for_dns64(named_conf, server_ip):
    """
    docker run arguments for the bind9 (DNS64) container.
    Аргументы docker run для контейнера bind9 (DNS64).
    """
    return [
        "run", "-d", "--name", DNS64_NAME, "--hostname", DNS64_NAME, "--label", LABEL,
        "--privileged=true", "--ip6", server_ip, "--dns", server_ip,
        *IPV6_SYSCTLS,
        "-v", f"{named_conf}:/etc/bind/named.conf",
        "--net", SUPPORT_NET_NAME, DNS64_IMAGE,
    ]


def build_run_args_for_nat64(v4_mapping_ip, server_ip, remote_dns, dns64_ip, dns64_cidr):
    """
    docker run arguments for the tayga (NAT64) container.
    Аргументы docker run для контейнера tayga (NAT64).
    """
    return [
        "run", "-d", "--name", NAT64_NAME, "--hostname", NAT64_NAME, "--label", LABEL,
        "--privileged=true", "--ip", v4_mapping_ip, "--ip6", server_ip,
        "--dns", remote_dns, "--dns", dns64_ip,
        *IPV6_SYSCTLS,
        "-e", f"TAYGA_CONF_PREFIX={dns64_cidr}",
        "-e", f"TAYGA_CONF_IPV4_ADDR={v4_mapping_ip}",
        "--net", SUPPORT_NET_NAME, NAT64_IMAGE,
    ]


def build_create_net_args(name, cidr, v4_cidr, gw_prefix):
    return [
        "network", "create", "--ipv6",
        f"--subnet={cidr}", f"--subnet={v4_cidr}", f"--gateway={gw_prefix}1",
        name,
    ]


def build_delete_net_args(name):
    return ["network", "rm", name]


def build_get_interface_args(container, if_name):
    return ["exec", container, "ip", "addr", "list", if_name]


def build_v4_addr_del_args(container, ip):
    return ["exec", container, "ip", "addr", "del", ip, "dev", "eth0"]


def build_add_route_args(container, dest, via):
    return ["exec", container, "ip", "-6", "route", "add", dest, "via", via]


class Docker:
    """
    Docker CLI backed hypervisor. All calls go through the executor.
    Работа с docker через CLI. Все вызовы идут через executor.
    """

    def __init__(self, executor=None, command=DOCKER):
        self.executor = executor if executor is not None else Executor()
        self.command = command

    def _do(self, name, args):
        try:
            output = self.executor.run(self.command, args)
        except ExecError as e:
            raise ExecError(
                f'docker "{args[0]}" failed for "{name}": {e}',
                self.command, args, e.returncode, e.output,
            ) from e
        log(f'Docker "{args[0]}" выполнен для "{name}"', "debug")
        return output

    def resource_state(self, name):
        """
        not-present / running / exists, from docker inspect.
        not-present / running / exists по выводу docker inspect.
        """
        try:
            output = self._do(name, ["inspect", name])
        except ExecError:
            log(f'Ресурс "{name}" отсутствует', "debug")
            return RESOURCE_NOT_PRESENT
        if '"Running": true' in output:
            log(f'Ресурс "{name}" запущен', "debug")
            return RESOURCE_RUNNING
        log(f'Ресурс "{name}" существует', "debug")
        return RESOURCE_EXISTS

    def create_network(self, name, cidr, v4_cidr, gw_prefix):
        self._do(name, build_create_net_args(name, cidr, v4_cidr, gw_prefix))

    def delete_network(self, name):
        self._do(name, build_delete_net_args(name))

    def run_container(self, name, args):
        self._do(name, args)

    def delete_container(self, name):
        self._do(name, ["rm", "-f", name])

    def get_interface_config(self, container, if_name) -> str:
        return self._do("Get I/F config", build_get_interface_args(container, if_name))

    def delete_v4_address(self, container, ip):
        self._do("Delete IPv4 addr", build_v4_addr_del_args(container, ip))

    def add_v6_route(self, container, dest, via):
        try:
            self._do("Add IPv6 route", build_add_route_args(container, dest, via))
        except ExecError as e:
            if e.returncode == ROUTE_EXISTS_STATUS:
                raise AlreadyExistsError(f"route to {dest} via {via} already exists in {container}") from e
            raise

