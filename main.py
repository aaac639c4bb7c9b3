#!/usr/bin/env python3
import argparse
import os
import socket
import sys

import argcomplete

from cluster.config import DEFAULT_CONFIG_FILE, load_config
from cluster.validate import VALID_COMMANDS, validate_command, validate_config_contents, validate_host
from cni.plugins import make_plugin
from commands.bring_up import bring_up
from commands.cleanup import clean
from commands.initialize import initialize
from commands.prepare import prepare
from commands.tear_down import tear_down
from hypervisor.docker import Docker
from network.netmgr import NetMgr
from utils.errors import LazyJackError
from utils.executor import Executor
from utils.logger import log, set_verbose

VERSION = "1.3.4"

# Команды, которым нужна проверенная конфигурация
COMMANDS = {
    "init": lambda host, config, path: initialize(host, config, path),
    "prepare": lambda host, config, path: prepare(host, config),
    "up": lambda host, config, path: bring_up(host, config),
    "down": lambda host, config, path: tear_down(host, config),
    "clean": lambda host, config, path: clean(host, config),
}


def build_parser():
    """
    Command line arguments with optional shell completion.
    Аргументы командной строки с поддержкой автодополнения.
    """
    parser = argparse.ArgumentParser(
        prog="lazyjack",
        description="Развёртывание Kubernetes кластера IPv6/IPv4/dual-stack на текущем хосте",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="",
        help=f"Команда: {', '.join(VALID_COMMANDS)}",
    ).completer = argcomplete.ChoicesCompleter(VALID_COMMANDS)
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="Файл конфигурации кластера")
    parser.add_argument("--host", default=socket.gethostname(), help="Имя текущего хоста в топологии")
    parser.add_argument("-v", "--verbose", action="store_true", help="Отладочный вывод")

    # Автоматически активируем autocompletion только если переменная окружения выставлена
    if "_ARGCOMPLETE" in os.environ:
        argcomplete.autocomplete(parser)
    return parser


def setup_handles(config):
    """
    Attach real drivers unless already injected.
    Подключает реальные драйверы, если они не подставлены заранее.
    """
    if config.executor is None:
        config.executor = Executor()
    if config.net_mgr is None:
        config.net_mgr = NetMgr()
    if config.hyper is None:
        config.hyper = Docker(config.executor)
    if config.cni_plugin is None:
        config.cni_plugin = make_plugin(config)


def run(argv=None):
    args = build_parser().parse_args(argv)
    set_verbose(args.verbose)

    command = validate_command(args.command)
    if command == "version":
        print(f"Version: {VERSION}")
        return

    config = load_config(args.config)
    validate_config_contents(config, ignore_missing=(command == "init"))
    validate_host(args.host, config)
    setup_handles(config)

    log(f"Команда {command} для хоста {args.host}", "info")
    COMMANDS[command](args.host, config, args.config)


def main(argv=None):
    try:
        run(argv)
    except LazyJackError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    return 0


if __name__ == '__main__':
    main()
