"""
Support network used by the DNS64 and NAT64 containers.
Вспомогательная сеть для контейнеров DNS64 и NAT64.
"""

from hypervisor.docker import RESOURCE_NOT_PRESENT, SUPPORT_NET_NAME
from network.addressing import info_for_family
from utils.errors import LazyJackError, NotPresentError, SkippingError
from utils.logger import log


def create_support_network(config):
    """
    Create the user defined network unless it already exists.
    Создаёт пользовательскую сеть, если её ещё нет.
    """
    hyper = config.hyper
    if hyper.resource_state(SUPPORT_NET_NAME) != RESOURCE_NOT_PRESENT:
        raise SkippingError("support network already exists")
    hyper.create_network(
        SUPPORT_NET_NAME,
        config.support.cidr,
        config.support.v4_cidr,
        config.support.info.prefix,
    )
    log("Вспомогательная сеть создана", "ok")


def cleanup_support_network(config):
    hyper = config.hyper
    if hyper.resource_state(SUPPORT_NET_NAME) == RESOURCE_NOT_PRESENT:
        raise SkippingError("support network does not exists")
    try:
        hyper.delete_network(SUPPORT_NET_NAME)
    except LazyJackError as e:
        raise LazyJackError(f"unable to remove support network: {e}") from e
    log("Вспомогательная сеть удалена", "ok")


def remove_container(name, config):
    hyper = config.hyper
    if hyper.resource_state(name) == RESOURCE_NOT_PRESENT:
        raise SkippingError(f'No "{name}" container exists')
    try:
        hyper.delete_container(name)
    except LazyJackError as e:
        raise LazyJackError(f'unable to remove "{name}" container: {e}') from e
    log(f'Контейнер "{name}" удалён', "ok")


def find_host_ip_for_nat64(config, family=None):
    """
    Management IP of the node running NAT64.
    IP в сети управления для ноды, на которой работает NAT64.
    """
    node = config.nat64_node()
    if node is None:
        raise NotPresentError("unable to find node with NAT64 server configured")
    info = info_for_family(config.mgmt.info, family) if family else config.mgmt.info[0]
    return f"{info.prefix}{node.id}"


def collect_errors(steps):
    """
    Run every step, gather failures, raise one error joined with ". ".
    Выполняет все шаги, собирает ошибки и выбрасывает одну общую через ". ".
    """
    errors = []
    for step in steps:
        try:
            step()
        except LazyJackError as e:
            log(str(e), "debug")
            errors.append(str(e))
    if errors:
        raise LazyJackError(". ".join(errors))
