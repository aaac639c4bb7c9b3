"""
Render kubeadm.conf for the control-plane node and build kubeadm arguments.
Генерация kubeadm.conf для control-plane ноды и аргументов kubeadm.
"""

import os
from dataclasses import asdict, dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from cluster.config import DEFAULT_TOKEN, KUBEADM_CONF_FILE
from kubelet.dropin import service_dns_ip
from network.addressing import IPV6, info_for_family
from utils.errors import UnsupportedError
from utils.files import save_file_contents
from utils.logger import log

TEMPLATE_DIR = Path(__file__).parent / "templates"
SUPPORTED_VERSIONS = ("1.10", "1.11", "1.12", "1.13")
INSECURE_PORT = 8080
API_PORT = 6443


@dataclass
class KubeAdmConfigInfo:
    AdvertiseAddress: str = ""
    AuthToken: str = ""
    BindAddress: str = ""
    BindPort: int = INSECURE_PORT
    DNS_ServiceIP: str = ""
    K8sVersion: str = ""
    KubeMasterName: str = ""
    PodNetworkCIDR: str = ""
    ServiceSubnet: str = ""
    # featureGates ожидает yaml-литерал
    UseCoreDNS: str = "false"


def collect_kubeadm_config_info(node, config) -> KubeAdmConfigInfo:
    """
    Values for the template, following the family of the service network.
    Значения для шаблона по семейству адресов сервисной сети.
    """
    family = config.service.info.mode
    mgmt = info_for_family(config.mgmt.info, family)
    pod = info_for_family(config.pod.info, family)
    version = config.general.kubernetes_version
    return KubeAdmConfigInfo(
        AdvertiseAddress=f"{mgmt.prefix}{node.id}",
        AuthToken=DEFAULT_TOKEN if config.general.insecure else config.general.token,
        BindAddress="::" if family == IPV6 else "0.0.0.0",
        DNS_ServiceIP=service_dns_ip(config),
        K8sVersion=f'kubernetesVersion: "{version}"' if version else "# kubernetesVersion:",
        KubeMasterName=node.name,
        PodNetworkCIDR=pod.cidr,
        ServiceSubnet=config.service.cidr,
    )


def create_kubeadm_config_contents(node, config) -> str:
    version = config.general.kubeadm_version or SUPPORTED_VERSIONS[0]
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    try:
        template = env.get_template(f"kubeadm-v{version}.yaml.j2")
    except TemplateNotFound as e:
        raise UnsupportedError(
            f"unsupported kubeadm version {version} (supported: {', '.join(SUPPORTED_VERSIONS)})"
        ) from e
    return template.render(**asdict(collect_kubeadm_config_info(node, config)))


def kubeadm_conf_path(config):
    return os.path.join(config.general.work_area, KUBEADM_CONF_FILE)


def create_kubeadm_config_file(node, config):
    """
    Write <work-area>/kubeadm.conf, keeping the previous one as .bak.
    Пишет <work-area>/kubeadm.conf, сохраняя предыдущий как .bak.
    """
    path = kubeadm_conf_path(config)
    log(f"Генерация {path} (kubeadm {config.general.kubeadm_version})", "info")
    save_file_contents(create_kubeadm_config_contents(node, config), path, f"{path}.bak")
    log(f"Создан {KUBEADM_CONF_FILE}", "ok")


def master_endpoint(master, config):
    info = info_for_family(config.mgmt.info, IPV6)
    ip = f"{info.prefix}{master.id}"
    if info.mode == IPV6:
        return f"[{ip}]:{API_PORT}"
    return f"{ip}:{API_PORT}"


def build_kubeadm_command(node, master, config):
    if node.is_master:
        return ["init", f"--config={kubeadm_conf_path(config)}"]
    return [
        "join",
        "--token", config.general.token,
        master_endpoint(master, config),
        "--discovery-token-ca-cert-hash", f"sha256:{config.general.token_cert_hash}",
    ]
