import subprocess
from types import SimpleNamespace

import pytest

from commit_explainer.runner import CommandResult, ExecutionError, SubprocessRunner


def test_run_returns_result_for_non_zero_exit(monkeypatch):
    captured = {}

    def fake_run(cmd, **kwargs):
        captured["cmd"] = cmd
        captured.update(kwargs)
        return SimpleNamespace(returncode=128, stdout="", stderr="fatal: not a git repository")

    monkeypatch.setattr("subprocess.run", fake_run)
    result = SubprocessRunner().run(["git", "show"], timeout=5)

    assert result.returncode == 128
    assert not result.ok
    assert result.stderr == "fatal: not a git repository"
    assert captured["cmd"] == ["git", "show"]
    assert captured["timeout"] == 5
    assert captured["stderr"] == subprocess.PIPE


def test_run_forwards_stderr_when_requested(monkeypatch):
    captured = {}

    def fake_run(cmd, **kwargs):
        captured.update(kwargs)
        return SimpleNamespace(returncode=0, stdout="out", stderr=None)

    monkeypatch.setattr("subprocess.run", fake_run)
    result = SubprocessRunner().run(["git", "show"], forward_stderr=True)

    # None means the child inherits our stderr
    assert captured["stderr"] is None
    assert captured["stdout"] == subprocess.PIPE
    assert result.stdout == "out"
    assert result.stderr == ""


def test_run_missing_executable_raises(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr("subprocess.run", fake_run)
    with pytest.raises(ExecutionError, match="Command not found: lms"):
        SubprocessRunner().run(["lms", "version"])


def test_run_timeout_raises(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

    monkeypatch.setattr("subprocess.run", fake_run)
    with pytest.raises(ExecutionError, match="timed out"):
        SubprocessRunner().run(["lms", "load", "model"], timeout=1)


def test_spawn_detaches_process(monkeypatch):
    captured = {}

    def fake_popen(cmd, **kwargs):
        captured["cmd"] = cmd
        captured.update(kwargs)
        return SimpleNamespace(pid=1234)

    monkeypatch.setattr("subprocess.Popen", fake_popen)
    monkeypatch.setattr("sys.platform", "linux")
    SubprocessRunner().spawn(["open", "-a", "LM Studio"])

    assert captured["cmd"] == ["open", "-a", "LM Studio"]
    assert captured["start_new_session"] is True
    assert captured["stdout"] == subprocess.DEVNULL


def test_spawn_failure_raises(monkeypatch):
    def fake_popen(cmd, **kwargs):
        raise OSError("permission denied")

    monkeypatch.setattr("subprocess.Popen", fake_popen)
    with pytest.raises(ExecutionError, match="permission denied"):
        SubprocessRunner().spawn(["/opt/lm-studio"])


def test_command_result_output_combines_streams():
    result = CommandResult(args=["lms"], returncode=1, stdout="partial\n", stderr="boom\n")
    assert result.output == "partial\n\nboom"
    assert CommandResult(args=["lms"], returncode=1).output == ""
