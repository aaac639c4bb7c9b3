"""
CA key/certificate, CA public key hash and bootstrap token for kubeadm.
Ключ и сертификат CA, хеш публичного ключа CA и bootstrap токен для kubeadm.
"""

import os

from cluster.validate import validate_token, validate_token_cert_hash
from utils.errors import ConfigError, ExecError, LazyJackError, TranslationError
from utils.files import recreate_dir, write_file
from utils.logger import log

CERT_AREA = "certs"
CERT_AREA_MODE = 0o700
X509_MODE = 0o644
CA_KEY = "ca.key"
CA_CERT = "ca.crt"
CA_X509 = "ca.x509"
CA_RSA = "ca.rsa"
CA_DAYS = "10000"
KEY_BITS = "2048"


def cert_area(base):
    return os.path.join(base, CERT_AREA)


def create_cert_key_area(base):
    """
    rm -rf the certificate area and recreate it (0700).
    Пересоздаёт каталог сертификатов с правами 0700.
    """
    try:
        recreate_dir(cert_area(base), CERT_AREA_MODE)
    except LazyJackError as e:
        raise LazyJackError(f"unable to create area for certificates ({cert_area(base)}): {e}") from e
    log("Создан каталог для сертификатов", "ok")


def build_args_for_ca_key(base):
    return ["genrsa", "-out", os.path.join(cert_area(base), CA_KEY), KEY_BITS]


def build_args_for_ca_cert(mgmt_prefix, node_id, base):
    return [
        "req", "-x509", "-new", "-nodes",
        "-key", os.path.join(cert_area(base), CA_KEY),
        "-subj", f"/CN={mgmt_prefix}{node_id}",
        "-days", CA_DAYS,
        "-out", os.path.join(cert_area(base), CA_CERT),
    ]


def build_args_for_x509_cert(base):
    return ["x509", "-pubkey", "-in", os.path.join(cert_area(base), CA_CERT)]


def build_args_for_rsa(base):
    return [
        "rsa", "-pubin",
        "-in", os.path.join(cert_area(base), CA_X509),
        "-outform", "der",
        "-out", os.path.join(cert_area(base), CA_RSA),
    ]


def build_args_for_ca_digest(base):
    return ["dgst", "-sha256", "-hex", os.path.join(cert_area(base), CA_RSA)]


def _openssl(executor, args, what):
    try:
        return executor.run("openssl", args)
    except ExecError as e:
        raise ExecError(f"unable to create {what}: {e}", e.cmd, e.args_list, e.returncode, e.output) from e


def create_key_for_ca(executor, base):
    log("Создание ключа CA", "info")
    _openssl(executor, build_args_for_ca_key(base), "CA key")
    log("Ключ CA создан", "ok")


def create_certificate_for_ca(executor, mgmt_prefix, node_id, base):
    log("Создание сертификата CA", "info")
    _openssl(executor, build_args_for_ca_cert(mgmt_prefix, node_id, base), "CA certificate")
    log("Сертификат CA создан", "ok")


def create_x509_cert_for_ca(executor, base):
    """
    Public key of the CA in PEM, saved as ca.x509.
    Публичный ключ CA в PEM, сохраняется как ca.x509.
    """
    output = _openssl(executor, build_args_for_x509_cert(base), "X509 cert")
    if not output:
        raise TranslationError("unable to create X509 cert: no output")
    try:
        write_file(output, os.path.join(cert_area(base), CA_X509), X509_MODE)
    except LazyJackError as e:
        raise LazyJackError(f"unable to save X509 cert for CA: {e}") from e
    log("X509 сертификат CA создан", "debug")


def create_rsa_for_ca(executor, base):
    _openssl(executor, build_args_for_rsa(base), "RSA key for CA")
    log("RSA ключ CA создан", "debug")


def extract_digest(output):
    """
    Parse "SHA256(file)= <hash>" and validate the hash.
    Разбирает "SHA256(file)= <hash>" и проверяет хеш.
    """
    log(f'Разбор дайджеста "{output}"', "debug")
    parts = output.strip().split("= ")
    if len(parts) != 2:
        raise TranslationError("unable to parse digest info for CA key")
    cert_hash = parts[1].strip()
    try:
        validate_token_cert_hash(cert_hash, True)
    except ConfigError as e:
        raise TranslationError(str(e)) from e
    log(f"Дайджест CA: {cert_hash}", "ok")
    return cert_hash


def create_digest_for_ca(executor, base):
    output = _openssl(executor, build_args_for_ca_digest(base), "CA digest")
    return extract_digest(output)


def extract_token(output):
    token = output.strip()
    try:
        validate_token(token, False)
    except ConfigError as e:
        raise TranslationError(f"internal error, token is malformed: {e}") from e
    log(f"Создан общий токен ({token})", "ok")
    return token


def create_token(executor):
    try:
        output = executor.run("kubeadm", ["token", "generate"])
    except ExecError as e:
        raise ExecError(f"unable to create shared token: {e}", e.cmd, e.args_list, e.returncode, e.output) from e
    return extract_token(output)
