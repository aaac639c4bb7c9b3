"""
NAT64 server (tayga container) lifecycle.
Жизненный цикл NAT64 сервера (контейнер tayga).
"""

from hypervisor.docker import (
    NAT64_NAME,
    RESOURCE_EXISTS,
    RESOURCE_RUNNING,
    build_run_args_for_nat64,
)
from support.support_net import collect_errors, remove_container
from utils.errors import AlreadyExistsError, LazyJackError, SkippingError
from utils.logger import log


def ensure_nat64_server(config):
    log("Подготовка NAT64", "info")
    hyper = config.hyper
    state = hyper.resource_state(NAT64_NAME)
    if state == RESOURCE_RUNNING:
        raise SkippingError(f"NAT64 container ({NAT64_NAME}) already running")
    if state == RESOURCE_EXISTS:
        try:
            hyper.delete_container(NAT64_NAME)
        except LazyJackError as e:
            raise LazyJackError(f"unable to remove existing (non-running) NAT64 container: {e}") from e
    args = build_run_args_for_nat64(
        config.nat64.v4_ip,
        config.nat64.server_ip,
        config.dns64.remote_server,
        config.dns64.server_ip,
        config.dns64.cidr,
    )
    hyper.run_container("NAT64 container", args)
    log(f"Контейнер NAT64 ({NAT64_NAME}) запущен", "ok")


def ensure_route_to_nat64(config):
    """
    Host route to the NAT64 IPv4 pool via the container, over the support network.
    Маршрут на хосте к IPv4 пулу NAT64 через контейнер, по вспомогательной сети.
    """
    try:
        config.net_mgr.add_route_by_cidr(config.nat64.v4_cidr, config.nat64.v4_ip, config.support.v4_cidr)
    except AlreadyExistsError as e:
        raise SkippingError(
            f"add route to {config.nat64.v4_cidr} via {config.nat64.v4_ip} as already exists"
        ) from e
    log("Локальный IPv4 маршрут к контейнеру NAT64 добавлен", "ok")


def prepare_nat64_server(config):
    for step in (ensure_nat64_server, ensure_route_to_nat64):
        try:
            step(config)
        except SkippingError as e:
            log(str(e), "warn")
    log("Контейнер NAT64 подготовлен", "ok")


def remove_route_to_nat64(config):
    config.net_mgr.delete_route_by_cidr(config.nat64.v4_cidr, config.nat64.v4_ip, config.support.v4_cidr)
    log("Локальный IPv4 маршрут к контейнеру NAT64 удалён", "ok")


def cleanup_nat64_server(config):
    log("Очистка NAT64", "info")
    collect_errors([
        lambda: remove_route_to_nat64(config),
        lambda: remove_container(NAT64_NAME, config),
    ])
    log("NAT64 очищен", "ok")
