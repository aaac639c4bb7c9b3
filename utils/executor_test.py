import subprocess

import pytest

from utils.errors import ExecError
from utils.executor import Executor


def test_run_returns_stdout(monkeypatch):
    seen = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        seen["kwargs"] = kwargs
        return subprocess.CompletedProcess(cmd, 0, stdout="abcdef.0123456789abcdef\n", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    assert Executor().run("kubeadm", ["token", "generate"]) == "abcdef.0123456789abcdef\n"
    assert seen["cmd"] == ["kubeadm", "token", "generate"]
    assert seen["kwargs"]["check"] is True


def test_run_failure(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.CalledProcessError(2, cmd, output="", stderr="RTNETLINK answers: File exists\n")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ExecError) as info:
        Executor().run("docker", ["exec", "bind9", "ip"])
    assert info.value.returncode == 2
    assert info.value.output == "RTNETLINK answers: File exists"
    assert 'failed running "docker" with args "exec bind9 ip": exit status 2' in str(info.value)


def test_run_missing_binary(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ExecError):
        Executor().run("openssl", ["version"])
