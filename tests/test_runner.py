from __future__ import annotations

import inspect
import io
import time
from pathlib import Path

import pytest

from atk_lib import executor, provision
from atk_lib.config import WorkspaceConfig
from atk_lib.runner import CommandFailed, CommandRunner, log_progress


def _runner(tmp_path: Path, lines: list[str]) -> CommandRunner:
    return CommandRunner(tmp_path, echo=lines.append, stdout=io.StringIO(), stderr=io.StringIO())


def test_run_captures_and_strips_output(tmp_path: Path) -> None:
    lines: list[str] = []
    result = _runner(tmp_path, lines).run("printf '  hello \\n'; printf 'warn\\n' >&2")
    assert result.success
    assert result.exit_code == 0
    assert result.stdout == "hello"
    assert result.stderr == "warn"
    assert lines[0].startswith("🔧 Executing: printf")
    assert f"📁 Working directory: {tmp_path}" in lines


def test_run_reports_failure_without_raising(tmp_path: Path) -> None:
    lines: list[str] = []
    result = _runner(tmp_path, lines).run("echo nope >&2; exit 3")
    assert not result.success
    assert result.exit_code == 3
    assert result.stderr == "nope"
    assert any(line.startswith("❌ Command failed") for line in lines)


def test_run_failure_without_stderr_gets_message(tmp_path: Path) -> None:
    result = _runner(tmp_path, []).run("exit 2")
    assert result.stderr == "exit code 2"


def test_run_timeout_is_a_failed_result(tmp_path: Path) -> None:
    result = _runner(tmp_path, []).run("sleep 5", timeout=0.2)
    assert not result.success
    assert result.exit_code == 1
    assert "timed out" in result.stderr


def test_run_missing_cwd_is_a_failed_result(tmp_path: Path) -> None:
    result = _runner(tmp_path, []).run("true", cwd=tmp_path / "missing")
    assert not result.success
    assert result.exit_code == 1
    assert result.stderr


def test_run_uses_extra_env(tmp_path: Path) -> None:
    runner = CommandRunner(tmp_path, env={"ATK_TEST_VALUE": "42"}, echo=lambda _: None)
    assert runner.run("echo $ATK_TEST_VALUE").stdout == "42"


def test_stream_echoes_and_accumulates(tmp_path: Path) -> None:
    out = io.StringIO()
    err = io.StringIO()
    runner = CommandRunner(tmp_path, echo=lambda _: None, stdout=out, stderr=err)
    result = runner.stream("echo one; echo two; echo oops >&2; exit 4")
    assert not result.success
    assert result.exit_code == 4
    assert result.stdout == "one\ntwo"
    assert result.stderr == "oops"
    assert out.getvalue() == "📤 one\n📤 two\n"
    assert err.getvalue() == "📤 ERROR: oops\n"


def test_stream_spawn_error_raises(tmp_path: Path) -> None:
    runner = CommandRunner(tmp_path, echo=lambda _: None)
    with pytest.raises(CommandFailed):
        runner.stream("true", cwd=tmp_path / "missing")


def test_spawn_detached_returns_immediately_and_writes_log(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "auth.log"
    log_path.parent.mkdir()
    log_path.write_text("stale\n", encoding="utf-8")
    runner = CommandRunner(tmp_path, echo=lambda _: None)
    start = time.monotonic()
    pid = runner.spawn_detached("echo started; echo problem >&2; sleep 2", log_path=log_path)
    assert pid > 0
    assert time.monotonic() - start < 1.5
    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        content = log_path.read_text(encoding="utf-8")
        if "problem" in content:
            break
        time.sleep(0.05)
    assert "stale" not in content
    assert "started" in content
    assert "problem" in content



def test_log_progress_flushes_each_line(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[tuple, dict]] = []
    monkeypatch.setattr("builtins.print", lambda *args, **kwargs: calls.append((args, kwargs)))

    log_progress("🔧 step")

    assert calls == [(("🔧 step",), {"flush": True})]


def test_default_echo_is_flushing(tmp_path: Path) -> None:
    assert CommandRunner(tmp_path).echo is log_progress
    assert executor.AtkExecutor(WorkspaceConfig(workspace_root=tmp_path)).echo is log_progress
    for func in (executor.run_auth_check, executor.print_forwarding_links, provision.provision_environment, provision.status_report):
        assert inspect.signature(func).parameters["echo"].default is log_progress
