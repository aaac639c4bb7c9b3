import pytest
import yaml

from cluster.config import DEFAULT_TOKEN, Node
from kubeadm.kubeadm_config import (
    build_kubeadm_command,
    collect_kubeadm_config_info,
    create_kubeadm_config_contents,
    create_kubeadm_config_file,
    master_endpoint,
)
from utils.errors import UnsupportedError

MASTER = Node("master", interface="eth1", id=10, opmodes="master", is_master=True)
MINION = Node("minion", interface="eth1", id=20, opmodes="minion", is_minion=True)


def test_v1_10_contents(config):
    config.general.token = "56cdce.7b18ad347f3de81c"
    contents = create_kubeadm_config_contents(MASTER, config)
    assert 'advertiseAddress: "fd00:100::10"' in contents
    assert 'serviceSubnet: "fd00:30::/110"' in contents
    assert "nodeName: master" in contents
    assert 'token: "56cdce.7b18ad347f3de81c"' in contents
    assert "tokenTTL: 0s" in contents
    assert 'insecure-bind-address: "::"' in contents
    assert 'insecure-port: "8080"' in contents
    assert 'kubernetesVersion: "v1.10.3"' in contents

    doc = yaml.safe_load(contents)
    assert doc["api"]["advertiseAddress"] == "fd00:100::10"
    assert doc["featureGates"] == {"CoreDNS": False}


@pytest.mark.parametrize("version", ["1.11", "1.12", "1.13"])
def test_newer_versions_are_valid_yaml(config, version):
    config.general.kubeadm_version = version
    docs = [d for d in yaml.safe_load_all(create_kubeadm_config_contents(MASTER, config)) if d]
    assert docs
    assert "fd00:100::10" in str(docs)


def test_unsupported_version(config):
    config.general.kubeadm_version = "1.9"
    with pytest.raises(UnsupportedError, match="unsupported kubeadm version 1.9"):
        create_kubeadm_config_contents(MASTER, config)


def test_insecure_uses_default_token(config):
    config.general.insecure = True
    assert collect_kubeadm_config_info(MASTER, config).AuthToken == DEFAULT_TOKEN


def test_no_kubernetes_version_is_commented(config):
    config.general.kubernetes_version = ""
    assert collect_kubeadm_config_info(MASTER, config).K8sVersion == "# kubernetesVersion:"


def test_ipv4_info(ipv4_config):
    info = collect_kubeadm_config_info(MASTER, ipv4_config)
    assert info.AdvertiseAddress == "10.192.0.10"
    assert info.BindAddress == "0.0.0.0"
    assert info.DNS_ServiceIP == "10.96.0.10"
    assert info.PodNetworkCIDR == "10.244.0.0/16"


def test_dual_stack_follows_service_family(dual_config):
    info = collect_kubeadm_config_info(MASTER, dual_config)
    assert info.AdvertiseAddress == "fd00:100::10"
    assert info.PodNetworkCIDR == "fd00:40::/72"
    assert info.DNS_ServiceIP == "fd00:30::a"


def test_create_file_keeps_backup(config, tmp_path):
    create_kubeadm_config_file(MASTER, config)
    create_kubeadm_config_file(MASTER, config)
    conf = tmp_path / "work" / "kubeadm.conf"
    assert "nodeName: master" in conf.read_text()
    assert (tmp_path / "work" / "kubeadm.conf.bak").exists()


def test_init_command(config):
    config.general.work_area = "/tmp"
    assert build_kubeadm_command(MASTER, MASTER, config) == ["init", "--config=/tmp/kubeadm.conf"]


def test_join_command(config):
    config.general.token = "T"
    config.general.token_cert_hash = "H"
    assert build_kubeadm_command(MINION, MASTER, config) == [
        "join", "--token", "T", "[fd00:100::10]:6443", "--discovery-token-ca-cert-hash", "sha256:H",
    ]


def test_ipv4_endpoint_has_no_brackets(ipv4_config):
    assert master_endpoint(MASTER, ipv4_config) == "10.192.0.10:6443"
