import pytest

from hypervisor.docker import NAT64_NAME, RESOURCE_RUNNING
from support.nat64 import cleanup_nat64_server, prepare_nat64_server
from utils.errors import LazyJackError


def test_prepare_nat64(config, hyper, netlink):
    prepare_nat64_server(config)

    assert hyper.calls[0][0] == "run_container"
    args = hyper.calls[0][2]
    assert "TAYGA_CONF_PREFIX=fd00:10:64:ff9b::/96" in args
    assert "TAYGA_CONF_IPV4_ADDR=172.18.0.200" in args
    assert netlink.routes == [("172.18.0.128/25", "172.18.0.200", 3)]


def test_prepare_nat64_twice(config, hyper, netlink):
    prepare_nat64_server(config)
    prepare_nat64_server(config)
    assert [c[0] for c in hyper.calls] == ["run_container"]
    assert netlink.routes == [("172.18.0.128/25", "172.18.0.200", 3)]


def test_prepare_nat64_without_support_link(config, netlink):
    del netlink.links["br-support"]
    with pytest.raises(LazyJackError, match="unable to find interface for CIDR"):
        prepare_nat64_server(config)


def test_cleanup_nat64(config, hyper, netlink):
    prepare_nat64_server(config)
    assert hyper.states[NAT64_NAME] == RESOURCE_RUNNING

    cleanup_nat64_server(config)

    assert netlink.routes == []
    assert hyper.calls[-1] == ("delete_container", NAT64_NAME)


def test_cleanup_nat64_nothing_there(config):
    with pytest.raises(LazyJackError) as info:
        cleanup_nat64_server(config)
    assert 'No "tayga" container exists' in str(info.value)
