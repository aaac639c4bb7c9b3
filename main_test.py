import pytest

import main
from conftest import IPV6_CONFIG
from network.netmgr import NetMgr
from utils.executor import Executor

NO_TOKEN_CONFIG = "\n".join(
    line for line in IPV6_CONFIG.splitlines() if not line.startswith("token")
) + "\n"


@pytest.fixture
def recorded(monkeypatch):
    calls = []
    for name in main.COMMANDS:
        monkeypatch.setitem(
            main.COMMANDS, name,
            lambda host, config, path, name=name: calls.append((name, host, config, path)),
        )
    return calls


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(IPV6_CONFIG)
    return str(path)


def test_version(capsys):
    main.main(["version"])
    assert capsys.readouterr().out.strip() == f"Version: {main.VERSION}"


def test_command_is_case_insensitive(recorded, config_file):
    main.main(["PrePare", "--config", config_file, "--host", "bob"])
    name, host, config, path = recorded[0]
    assert (name, host, path) == ("prepare", "bob", config_file)
    assert isinstance(config.executor, Executor)
    assert isinstance(config.net_mgr, NetMgr)
    assert config.cni_plugin.name == "bridge"
    assert config.general.kubeadm_version == "1.10"


def test_init_allows_missing_token(recorded, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(NO_TOKEN_CONFIG)
    main.main(["init", "--config", str(path), "--host", "bob"])
    assert recorded[0][0] == "init"


def test_prepare_requires_token(recorded, tmp_path, capsys):
    path = tmp_path / "config.yaml"
    path.write_text(NO_TOKEN_CONFIG)
    with pytest.raises(SystemExit) as exc:
        main.main(["prepare", "--config", str(path), "--host", "bob"])
    assert exc.value.code == 1
    assert recorded == []
    assert "ERROR:" in capsys.readouterr().err


@pytest.mark.parametrize("argv, message", [
    ([], "missing command"),
    (["launch"], 'unknown command "launch"'),
    (["up", "--config", "/nonexistent/config.yaml", "--host", "bob"], "unable to open config file"),
])
def test_errors_exit_with_status_1(argv, message, capsys):
    with pytest.raises(SystemExit) as exc:
        main.main(argv)
    assert exc.value.code == 1
    assert message in capsys.readouterr().err


def test_unknown_host(recorded, config_file, capsys):
    with pytest.raises(SystemExit):
        main.main(["down", "--config", config_file, "--host", "carol"])
    assert 'unable to find info for host "carol"' in capsys.readouterr().err
    assert recorded == []
