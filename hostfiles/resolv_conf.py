"""
Annotated edit of /etc/resolv.conf so the DNS64 server is asked first.
Правка /etc/resolv.conf с пометками, чтобы первым спрашивался DNS64 сервер.
"""

import os

from cluster.config import ETC_RESOLV_CONF_BACKUP_FILE, ETC_RESOLV_CONF_FILE
from utils.files import ADDED_MARK, REMOVED_MARK, read_file, revert_entries, save_file_contents, split_lines
from utils.logger import log


def update_resolv_conf_info(contents, ns):
    output = []
    first = True
    for line in split_lines(contents):
        if line.endswith(ADDED_MARK):
            continue
        if line.startswith("nameserver"):
            matches = ns in line
            if first and not matches:
                output.append(f"nameserver {ns}{ADDED_MARK}\n")
            elif not first and matches:
                line = REMOVED_MARK + line
            first = False
        output.append(line + "\n")
    if first:
        output.append(f"nameserver {ns}{ADDED_MARK}\n")
    return "".join(output)


def add_resolv_conf_entry(config):
    path = os.path.join(config.general.etc_area, ETC_RESOLV_CONF_FILE)
    backup = os.path.join(config.general.etc_area, ETC_RESOLV_CONF_BACKUP_FILE)
    log(f"Подготовка файла {path}", "info")
    contents = update_resolv_conf_info(read_file(path), config.dns64.server_ip)
    save_file_contents(contents, path, backup)
    log(f"Файл {path} подготовлен", "ok")


def revert_resolv_conf_entry(config):
    path = os.path.join(config.general.etc_area, ETC_RESOLV_CONF_FILE)
    backup = os.path.join(config.general.etc_area, ETC_RESOLV_CONF_BACKUP_FILE)
    revert_entries(path, backup)
    log(f"Файл {path} восстановлен", "ok")
