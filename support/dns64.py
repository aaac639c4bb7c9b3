"""
DNS64 server (bind9 container) lifecycle.
Жизненный цикл DNS64 сервера (контейнер bind9).
"""

import os
import re
import shutil
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from cluster.config import DNS64_BASE_AREA, DNS64_CACHE_AREA, DNS64_CONF_AREA, DNS64_NAMED_CONF
from hypervisor.docker import (
    DNS64_NAME,
    RESOURCE_EXISTS,
    RESOURCE_RUNNING,
    build_run_args_for_dns64,
)
from support.support_net import collect_errors, remove_container
from utils.errors import AlreadyExistsError, LazyJackError, NotPresentError, SkippingError
from utils.files import ensure_dir, write_file
from utils.logger import log

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
IPV4_ADDR_RE = re.compile(r"(?m)^\s+inet\s+(\d+[.]\d+[.]\d+[.]\d+/\d+)\s")

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)


def dns64_area(base):
    return os.path.join(base, DNS64_BASE_AREA)


def named_conf_path(base):
    return os.path.join(dns64_area(base), DNS64_CONF_AREA, DNS64_NAMED_CONF)


def create_named_conf_contents(config) -> str:
    """
    bind9 options with DNS64 synthesis and forwarding to the remote resolver.
    Опции bind9 с синтезом DNS64 и пересылкой на внешний DNS.
    """
    return _env.get_template("named.conf.j2").render(
        prefix=config.dns64.cidr_prefix,
        remote_server=config.dns64.remote_server,
        cidr=config.dns64.cidr,
        allow_aaaa_use=config.dns64.allow_aaaa_use,
    )


def build_file_structure_for_dns(base):
    area = dns64_area(base)
    shutil.rmtree(area, ignore_errors=True)
    ensure_dir(os.path.join(area, DNS64_CONF_AREA))
    ensure_dir(os.path.join(area, DNS64_CACHE_AREA))


def create_config_for_dns64(config):
    base = config.general.work_area
    try:
        build_file_structure_for_dns(base)
    except LazyJackError as e:
        raise LazyJackError(f"unable to create directory structure for DNS64: {e}") from e
    try:
        write_file(create_named_conf_contents(config), named_conf_path(base))
    except LazyJackError as e:
        raise LazyJackError(f"unable to create named.conf for DNS64: {e}") from e
    log("Создан файл конфигурации DNS64", "ok")


def parse_ipv4_address(if_config):
    """
    First IPv4 CIDR from "ip addr list" output, or "".
    Первый IPv4 CIDR из вывода "ip addr list", либо "".
    """
    match = IPV4_ADDR_RE.search(if_config)
    return match.group(1) if match else ""


def ensure_dns64_server(config):
    log("Подготовка DNS64", "info")
    hyper = config.hyper
    state = hyper.resource_state(DNS64_NAME)
    if state == RESOURCE_RUNNING:
        raise SkippingError(f"DNS64 container ({DNS64_NAME}) already running")
    if state == RESOURCE_EXISTS:
        try:
            hyper.delete_container(DNS64_NAME)
        except LazyJackError as e:
            raise LazyJackError(f"unable to remove existing (non-running) DNS64 container: {e}") from e
    create_config_for_dns64(config)
    args = build_run_args_for_dns64(named_conf_path(config.general.work_area), config.dns64.server_ip)
    hyper.run_container("DNS64 container", args)
    log(f"Контейнер DNS64 ({DNS64_NAME}) запущен", "ok")


def remove_ipv4_address_on_dns64_server(config):
    """
    Drop the IPv4 address inside the container so only IPv6 is left.
    Удаляет IPv4 адрес внутри контейнера, оставляя только IPv6.
    """
    hyper = config.hyper
    if_config = hyper.get_interface_config(DNS64_NAME, "eth0")
    v4_addr = parse_ipv4_address(if_config)
    if not v4_addr:
        raise NotPresentError("unable to find IPv4 address on eth0 of DNS64 container")
    log(f"IPv4 адрес контейнера DNS64: {v4_addr}", "debug")
    hyper.delete_v4_address(DNS64_NAME, v4_addr)
    log("IPv4 адрес в контейнере DNS64 удалён", "ok")


def add_route_for_dns64_network(config):
    try:
        config.hyper.add_v6_route(DNS64_NAME, config.dns64.cidr, config.nat64.server_ip)
    except AlreadyExistsError as e:
        raise SkippingError(
            f"add route to {config.dns64.cidr} via {config.nat64.server_ip} as already exists"
        ) from e
    log("Маршрут IPv6 в контейнере DNS64 добавлен", "ok")


def prepare_dns64_server(config):
    """
    Start bind9 (reuse when running), remove its IPv4 address, route synthesized prefix to NAT64.
    Запускает bind9 (если уже работает - оставляет), убирает IPv4, маршрутизирует префикс на NAT64.
    """
    try:
        ensure_dns64_server(config)
    except SkippingError as e:
        log(str(e), "warn")
    try:
        remove_ipv4_address_on_dns64_server(config)
    except NotPresentError as e:
        log(str(e), "debug")
    try:
        add_route_for_dns64_network(config)
    except SkippingError as e:
        log(str(e), "warn")
    log("Контейнер DNS64 подготовлен", "ok")


def remove_dns64_config(config):
    area = dns64_area(config.general.work_area)
    if not os.path.exists(area):
        raise SkippingError(f"No DNS64 config area {area}")
    shutil.rmtree(area)
    log("Конфигурация DNS64 удалена", "debug")


def cleanup_dns64_server(config):
    log("Очистка DNS64", "info")
    collect_errors([
        lambda: remove_container(DNS64_NAME, config),
        lambda: remove_dns64_config(config),
    ])
    log("DNS64 очищен", "ok")
