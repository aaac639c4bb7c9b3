"""
Run external binaries (kubeadm, openssl, docker, systemctl) and capture output.
Запуск внешних программ (kubeadm, openssl, docker, systemctl) с перехватом вывода.
"""

import subprocess

from utils.errors import ExecError
from utils.logger import log


class Executor:
    """
    Thin wrapper around subprocess.run, kept as an object so tests can swap it.
    Тонкая обёртка над subprocess.run, объект можно подменить в тестах.
    """

    def run(self, cmd, args) -> str:
        joined = " ".join(args)
        log(f"Запуск: {cmd} {joined}", "debug")
        try:
            result = subprocess.run(
                [cmd] + list(args),
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise ExecError(f'failed running "{cmd}" with args "{joined}": {e}', cmd, args) from e
        except subprocess.CalledProcessError as e:
            output = (e.stderr or e.stdout or "").strip()
            raise ExecError(
                f'failed running "{cmd}" with args "{joined}": exit status {e.returncode} ({output})',
                cmd, args, e.returncode, output,
            ) from e
        log(f'Команда "{cmd}" с аргументами "{joined}" выполнена', "debug")
        return result.stdout
