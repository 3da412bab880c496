from __future__ import annotations

import logging
import os
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TextIO

LOGGER = logging.getLogger("atk.runner")

DEFAULT_TIMEOUT = 30.0
MAX_CAPTURE_CHARS = 1024 * 1024


@dataclass
class CommandResult:
    command: str
    success: bool
    stdout: str
    stderr: str
    exit_code: int


class CommandFailed(RuntimeError):
    def __init__(self, result: CommandResult):
        detail = f": {result.stderr}" if result.stderr else ""
        super().__init__(f"Command '{result.command}' failed with exit code {result.exit_code}{detail}")
        self.result = result


def log_progress(message: str) -> None:
    print(message, flush=True)


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class CommandRunner:
    """Run shell command strings the way the setup scripts expect.

    ``run`` captures output and never raises for a failing command; ``stream``
    echoes child output as it arrives; ``spawn_detached`` fires and forgets.
    """

    def __init__(
        self,
        cwd: Path | None = None,
        *,
        env: dict[str, str] | None = None,
        echo: Callable[[str], None] = log_progress,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ):
        self.cwd = cwd or Path.cwd()
        self.env = env
        self.echo = echo
        self._stdout = stdout
        self._stderr = stderr

    def _merged_env(self) -> dict[str, str]:
        merged = os.environ.copy()
        if self.env:
            merged.update(self.env)
        return merged

    def _announce(self, label: str, command: str, cwd: Path) -> None:
        self.echo(f"🔧 {label}: {command}")
        if cwd.resolve() != Path.cwd().resolve():
            self.echo(f"📁 Working directory: {cwd}")

    def run(self, command: str, *, cwd: Path | None = None, timeout: float | None = DEFAULT_TIMEOUT) -> CommandResult:
        workdir = cwd or self.cwd
        self._announce("Executing", command, workdir)
        start = time.monotonic()
        try:
            proc = subprocess.run(
                command,
                shell=True,
                cwd=workdir,
                capture_output=True,
                text=True,
                errors="replace",
                env=self._merged_env(),
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            message = f"Command timed out after {timeout}s"
            self.echo(f"❌ Command failed: {message}")
            LOGGER.warning("%s: %s", message, command)
            return CommandResult(
                command=command,
                success=False,
                stdout=_decode(exc.stdout).strip(),
                stderr=_decode(exc.stderr).strip() or message,
                exit_code=1,
            )
        except OSError as exc:
            self.echo(f"❌ Command failed: {exc}")
            LOGGER.warning("Unable to spawn %s: %s", command, exc)
            return CommandResult(command=command, success=False, stdout="", stderr=str(exc), exit_code=1)

        stdout = proc.stdout[:MAX_CAPTURE_CHARS].strip()
        stderr = proc.stderr[:MAX_CAPTURE_CHARS].strip()
        duration = time.monotonic() - start
        LOGGER.info("%s → rc=%s in %.1fs", command, proc.returncode, duration)
        if proc.returncode != 0:
            self.echo(f"❌ Command failed: {command} (exit code {proc.returncode})")
            return CommandResult(
                command=command,
                success=False,
                stdout=stdout,
                stderr=stderr or f"exit code {proc.returncode}",
                exit_code=proc.returncode,
            )
        return CommandResult(command=command, success=True, stdout=stdout, stderr=stderr, exit_code=0)

    def stream(self, command: str, *, cwd: Path | None = None) -> CommandResult:
        workdir = cwd or self.cwd
        self._announce("Executing (streaming)", command, workdir)
        out = self._stdout or sys.stdout
        err = self._stderr or sys.stderr
        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                ["sh", "-c", command],
                cwd=workdir,
                env=self._merged_env(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise CommandFailed(
                CommandResult(command=command, success=False, stdout="", stderr=str(exc), exit_code=1)
            ) from exc

        # stderr gets its own reader so a chatty installer cannot fill the pipe.
        stderr_lines: list[str] = []

        def _drain_stderr() -> None:
            assert proc.stderr is not None
            for line in proc.stderr:
                stderr_lines.append(line)
                err.write(f"📤 ERROR: {line}")
                err.flush()

        reader = threading.Thread(target=_drain_stderr, name="atk-stream-stderr", daemon=True)
        reader.start()
        stdout_lines: list[str] = []
        assert proc.stdout is not None
        for line in proc.stdout:
            stdout_lines.append(line)
            out.write(f"📤 {line}")
            out.flush()
        proc.wait()
        reader.join()
        duration = time.monotonic() - start
        LOGGER.info("%s (streamed) → rc=%s in %.1fs", command, proc.returncode, duration)
        return CommandResult(
            command=command,
            success=proc.returncode == 0,
            stdout="".join(stdout_lines).strip(),
            stderr="".join(stderr_lines).strip(),
            exit_code=proc.returncode,
        )

    def spawn_detached(self, command: str, *, log_path: Path, cwd: Path | None = None) -> int:
        """Start ``command`` in its own session with output written to ``log_path``."""

        workdir = cwd or self.cwd
        self._announce("Starting in background", command, workdir)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("wb") as handle:
            proc = subprocess.Popen(
                ["sh", "-c", command],
                cwd=workdir,
                env=self._merged_env(),
                stdin=subprocess.DEVNULL,
                stdout=handle,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
        LOGGER.info("Spawned %s (pid=%s) → %s", command, proc.pid, log_path)
        return proc.pid
