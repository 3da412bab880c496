from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Tuple

from atk_lib.runner import CommandResult


def ok(command: str, stdout: str = "") -> CommandResult:
    return CommandResult(command=command, success=True, stdout=stdout, stderr="", exit_code=0)


def failed(command: str, stderr: str = "boom", exit_code: int = 1) -> CommandResult:
    return CommandResult(command=command, success=False, stdout="", stderr=stderr, exit_code=exit_code)


class FakeRunner:
    """Scripted stand-in for ``CommandRunner``; unknown commands succeed with no output."""

    def __init__(
        self,
        results: Dict[str, CommandResult] | None = None,
        *,
        on_stream: Dict[str, Callable[[Path | None], None]] | None = None,
        auth_output: str | None = None,
    ):
        self.results = results or {}
        self.on_stream = on_stream or {}
        self.auth_output = auth_output
        self.calls: List[Tuple[str, str, Path | None]] = []
        self.spawned: List[Tuple[str, Path, Path | None]] = []

    def _result(self, command: str) -> CommandResult:
        return self.results.get(command) or ok(command)

    def run(self, command: str, *, cwd: Path | None = None, timeout: float | None = None) -> CommandResult:
        self.calls.append(("run", command, cwd))
        return self._result(command)

    def stream(self, command: str, *, cwd: Path | None = None) -> CommandResult:
        self.calls.append(("stream", command, cwd))
        hook = self.on_stream.get(command)
        if hook:
            hook(cwd)
        return self._result(command)

    def spawn_detached(self, command: str, *, log_path: Path, cwd: Path | None = None) -> int:
        self.spawned.append((command, log_path, cwd))
        if self.auth_output is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            log_path.write_text(self.auth_output, encoding="utf-8")
        return 4242

    def commands(self, kind: str | None = None) -> List[str]:
        return [command for call_kind, command, _ in self.calls if kind is None or call_kind == kind]
