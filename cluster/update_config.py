"""
Embed the generated token and CA cert hash into the config YAML, as a line edit.
Вставка сгенерированных токена и хеша CA в YAML конфигурации построчно.

(EN) The file is edited line by line instead of load/dump through a YAML DOM,
so operator comments and formatting survive.
(RU) Файл правится построчно, без загрузки/выгрузки через YAML, чтобы
сохранить комментарии и форматирование оператора.
"""

from utils.files import open_permissions, read_file, save_file_contents, split_lines
from utils.logger import log

ANCHOR = "plugin:"
SECRET_KEYS = ("token:", "token-cert-hash:")


def update_config_yaml_contents(contents, token, cert_hash):
    lines = [line for line in split_lines(contents) if not line.lstrip().startswith(SECRET_KEYS)]
    output = []
    inserted = False
    for line in lines:
        output.append(line)
        if not inserted and line.lstrip().startswith(ANCHOR):
            indent = line[: len(line) - len(line.lstrip())]
            output.append(f'{indent}token: "{token}"')
            output.append(f'{indent}token-cert-hash: "{cert_hash}"')
            inserted = True
    if not inserted:
        output.append(f'token: "{token}"')
        output.append(f'token-cert-hash: "{cert_hash}"')
    return "".join(line + "\n" for line in output)


def update_config_yaml(path, token, cert_hash):
    """
    Rewrite config file with token and hash, keep .bak, open permissions on both.
    Перезаписывает конфиг с токеном и хешем, сохраняет .bak, открывает права на оба файла.
    """
    log(f"Обновление файла {path}", "info")
    contents = update_config_yaml_contents(read_file(path), token, cert_hash)
    backup = f"{path}.bak"
    save_file_contents(contents, path, backup)
    open_permissions(path)
    open_permissions(backup)
    log(f"Файл {path} обновлён", "ok")
