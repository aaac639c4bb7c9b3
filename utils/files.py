"""
File and backup store: read, save with backup, restore, annotated revert.
Работа с файлами: чтение, сохранение с резервной копией, восстановление, откат пометок.
"""

import os
import shutil
from pathlib import Path

from utils.errors import CompositeError, FileOpError, NotPresentError
from utils.logger import log

ADDED_MARK = "  #[+]"
REMOVED_MARK = "#[-] "
FILE_MODE = 0o755
OPEN_MODE = 0o777


def read_file(path) -> str:
    """
    Read the whole text file.
    Читает текстовый файл целиком.
    """
    log(f"Чтение файла {path}", "debug")
    try:
        return Path(path).read_text()
    except OSError as e:
        raise FileOpError(f"unable to read {path}: {e}") from e


def write_file(contents, path, mode=FILE_MODE):
    try:
        Path(path).write_text(contents)
        os.chmod(path, mode)
    except OSError as e:
        raise FileOpError(f"unable to write {path}: {e}") from e


def recover_file(path, backup, save_err):
    """
    Put the backup back in place after a failed save.
    Возвращает резервную копию на место после неудачной записи.

    (EN) When the restore fails too, both failures are raised together.
    (RU) Если восстановить тоже не удалось, обе ошибки выбрасываются вместе.
    """
    try:
        os.rename(backup, path)
    except OSError as e:
        restore_err = FileOpError(f"unable to restore backup file {backup}: {e}")
        raise CompositeError(
            f"unable to save updated {path} ({save_err}) AND unable to restore backup file {backup} ({e})",
            [save_err, restore_err],
        ) from e
    raise FileOpError(f"unable to save updated {path} ({save_err}), but restored from backup")


def save_file_contents(contents, path, backup):
    """
    Rename existing file to backup, then write new contents (mode 0755).
    Переименовывает существующий файл в backup и пишет новое содержимое (права 0755).
    """
    log(f"Сохранение {path}", "debug")
    exists = os.path.exists(path)
    if exists:
        try:
            os.rename(path, backup)
        except OSError as e:
            raise FileOpError(f"unable to backup existing file {path} to {backup}: {e}") from e
        log(f"Резервная копия {path} -> {backup}", "debug")
    try:
        Path(path).write_text(contents)
        os.chmod(path, FILE_MODE)
    except OSError as e:
        if exists:
            recover_file(path, backup, FileOpError(str(e)))
        raise FileOpError(f"unable to save {path}: {e}") from e
    log(f"Сохранён {path}", "debug")


def ensure_dir(path, mode=FILE_MODE):
    try:
        os.makedirs(path, mode=mode, exist_ok=True)
    except OSError as e:
        raise FileOpError(f"unable to create area {path}: {e}") from e


def recreate_dir(path, mode):
    """
    rm -rf the directory and create it again with the given mode.
    Удаляет каталог целиком и создаёт заново с указанными правами.
    """
    try:
        shutil.rmtree(path, ignore_errors=False)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise FileOpError(f"unable to remove {path}: {e}") from e
    try:
        os.makedirs(path, mode=mode)
        # makedirs mode is filtered by umask
        os.chmod(path, mode)
    except OSError as e:
        raise FileOpError(f"unable to create {path}: {e}") from e


def remove_dir(path):
    try:
        shutil.rmtree(path)
    except FileNotFoundError as e:
        raise NotPresentError(f"area {path} does not exist") from e
    except OSError as e:
        raise FileOpError(f"unable to remove {path}: {e}") from e


def open_permissions(path):
    try:
        os.chmod(path, OPEN_MODE)
    except OSError as e:
        raise FileOpError(f"unable to open permissions on {path}: {e}") from e


def copy_file(name, src, dst):
    """
    Copy src/name to dst/name.
    Копирует src/name в dst/name.
    """
    source = os.path.join(src, name)
    target = os.path.join(dst, name)
    try:
        shutil.copyfile(source, target)
    except OSError as e:
        raise FileOpError(f"unable to copy {source} to {target}: {e}") from e


def split_lines(contents):
    if not contents:
        return []
    return contents.rstrip("\n").split("\n")


def annotated_revert(contents):
    """
    Undo the #[-] / #[+] annotations.
    Откатывает изменения, помеченные #[-] и #[+].

    (EN) Lines starting with "#[-] " are uncommented, lines ending with
    "  #[+]" are dropped, everything else passes through.
    (RU) Строки с префиксом "#[-] " раскомментируются, строки с суффиксом
    "  #[+]" удаляются, остальные остаются как есть.
    """
    output = []
    for line in split_lines(contents):
        if line.startswith(REMOVED_MARK):
            line = line[len(REMOVED_MARK):]
        if line.endswith(ADDED_MARK):
            continue
        output.append(line + "\n")
    return "".join(output)


def revert_entries(path, backup):
    try:
        contents = read_file(path)
    except FileOpError as e:
        raise FileOpError(f"unable to read file {path} to revert: {e}") from e
    save_file_contents(annotated_revert(contents), path, backup)
    log(f"Восстановлено содержимое {path}", "debug")
