import pytest

from commands.prepare import prepare
from conftest import RESOLV_CONF
from hypervisor.docker import RESOURCE_EXISTS
from utils.errors import LazyJackError

DNS64_ROUTE = ("fd00:10:64:ff9b::/96", "fd00:10::200", 3)
NAT64_ROUTE = ("172.18.0.128/25", "172.18.0.200", 3)


def test_prepare_master_with_support_servers(config, netlink, hyper, tmp_path):
    prepare("bob", config)

    assert [c[0] for c in hyper.calls if c[0] in ("create_network", "run_container")] == [
        "create_network", "run_container", "run_container",
    ]
    assert "fd00:100::2/64" in netlink.addrs[2]
    assert netlink.mtu[2] == 9000
    assert NAT64_ROUTE in netlink.routes
    assert DNS64_ROUTE in netlink.routes
    # на NAT64 ноде маршрут к вспомогательной сети не нужен
    assert all(route[0] != "fd00:10::/64" for route in netlink.routes)

    assert (tmp_path / "work" / "dns64" / "conf" / "named.conf").exists()
    assert "fd00:100::3 alice  #[+]" in (tmp_path / "etc" / "hosts").read_text()
    assert (tmp_path / "etc" / "resolv.conf").read_text().startswith(
        "search example.com\nnameserver fd00:10::100  #[+]\n"
    )
    assert (tmp_path / "systemd" / "20-extra-dns-args.conf").exists()
    assert "nodeName: bob" in (tmp_path / "work" / "kubeadm.conf").read_text()


def test_prepare_minion(config, netlink, hyper, tmp_path):
    prepare("alice", config)

    assert hyper.calls == []
    assert "fd00:100::3/64" in netlink.addrs[2]
    assert netlink.routes == [
        ("fd00:10:64:ff9b::/96", "fd00:100::2", 2),
        ("fd00:10::/64", "fd00:100::2", 2),
    ]
    assert not (tmp_path / "work" / "kubeadm.conf").exists()
    assert (tmp_path / "systemd" / "20-extra-dns-args.conf").exists()


def test_prepare_twice_skips_existing(config, netlink, tmp_path):
    prepare("alice", config)
    hosts = (tmp_path / "etc" / "hosts").read_text()
    prepare("alice", config)

    assert len(netlink.routes) == 2
    assert (tmp_path / "etc" / "hosts").read_text() == hosts


def test_prepare_existing_support_network(config, hyper):
    hyper.states["support_net"] = RESOURCE_EXISTS
    prepare("bob", config)
    assert "create_network" not in [c[0] for c in hyper.calls]


def test_prepare_ipv4_master(ipv4_config, netlink, tmp_path):
    prepare("master", ipv4_config)

    assert "10.192.0.10/16" in netlink.addrs[2]
    assert netlink.routes == []
    assert (tmp_path / "etc" / "resolv.conf").read_text() == RESOLV_CONF
    hosts = (tmp_path / "etc" / "hosts").read_text()
    assert "10.192.0.10 master  #[+]" in hosts
    assert "10.192.0.20 minion1  #[+]" in hosts
    assert "--cluster-dns=10.96.0.10 " in (tmp_path / "systemd" / "20-extra-dns-args.conf").read_text()


def test_prepare_stops_on_missing_interface(ipv4_config, tmp_path):
    with pytest.raises(LazyJackError, match='unable to find interface "eth2"'):
        prepare("minion1", ipv4_config)
    assert not (tmp_path / "systemd").exists()
