"""
init: CA materials, bootstrap token and hash on the control-plane node.
init: материалы CA, bootstrap токен и хеш на control-plane ноде.
"""

from certs.generate_ca import (
    create_cert_key_area,
    create_certificate_for_ca,
    create_digest_for_ca,
    create_key_for_ca,
    create_rsa_for_ca,
    create_token,
    create_x509_cert_for_ca,
)
from cluster.update_config import update_config_yaml
from network.addressing import IPV6, info_for_family
from utils.logger import log


def initialize(name, config, config_file):
    """
    Run the CA pipeline and write token and hash back into the config file.
    Выполняет генерацию CA и записывает токен и хеш обратно в конфиг.
    """
    node = config.topology[name]
    if not node.is_master:
        log(f'Нода "{name}" не является master, init не требуется', "warn")
        return

    log(f'Инициализация на "{name}"', "step")
    base = config.general.work_area
    executor = config.executor
    prefix = info_for_family(config.mgmt.info, IPV6).prefix

    create_cert_key_area(base)
    create_key_for_ca(executor, base)
    create_certificate_for_ca(executor, prefix, node.id, base)
    create_x509_cert_for_ca(executor, base)
    create_rsa_for_ca(executor, base)
    cert_hash = create_digest_for_ca(executor, base)
    token = create_token(executor)

    update_config_yaml(config_file, token, cert_hash)
    config.general.token = token
    config.general.token_cert_hash = cert_hash
    log(f'Нода "{name}" инициализирована', "ok")
