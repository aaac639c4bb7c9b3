from conftest import HOSTS
from hostfiles.etc_hosts import NodeInfo, add_host_entries, build_node_info, revert_host_entries, update_hosts_info
from utils.files import annotated_revert

PREPARED = """\
127.0.0.1 localhost
#[-] 10.86.7.91 bob
::1 ip6-localhost
fd00:100::3 alice  #[+]
fd00:100::2 bob  #[+]
"""


def test_node_info_sorted(config):
    assert build_node_info(config) == [NodeInfo("alice", "fd00:100::3"), NodeInfo("bob", "fd00:100::2")]


def test_node_info_dual_stack_uses_ipv6(dual_config):
    assert [n.ip for n in build_node_info(dual_config)] == ["fd00:100::10", "fd00:100::20"]


def test_update_hosts(config):
    assert update_hosts_info(HOSTS, build_node_info(config)) == PREPARED


def test_update_hosts_twice_is_stable(config):
    once = update_hosts_info(HOSTS, build_node_info(config))
    assert update_hosts_info(once, build_node_info(config)) == once


def test_existing_correct_entry_is_kept(config):
    contents = "127.0.0.1 localhost\nfd00:100::2 bob\n"
    assert update_hosts_info(contents, build_node_info(config)) == (
        "127.0.0.1 localhost\nfd00:100::2 bob\nfd00:100::3 alice  #[+]\n"
    )


def test_similar_names_not_touched(config):
    contents = "10.0.0.1 bobby\n"
    assert update_hosts_info(contents, build_node_info(config)).startswith("10.0.0.1 bobby\n")


def test_revert_gives_original(config):
    assert annotated_revert(update_hosts_info(HOSTS, build_node_info(config))) == HOSTS


def test_add_and_revert_file(config, tmp_path):
    hosts = tmp_path / "etc" / "hosts"
    add_host_entries(config)
    assert hosts.read_text() == PREPARED
    assert (tmp_path / "etc" / "hosts.bak").read_text() == HOSTS

    revert_host_entries(config)
    assert hosts.read_text() == HOSTS


def test_empty_hosts_round_trip(config):
    prepared = update_hosts_info("", build_node_info(config))
    assert prepared == "fd00:100::3 alice  #[+]\nfd00:100::2 bob  #[+]\n"
    assert annotated_revert(prepared) == ""
