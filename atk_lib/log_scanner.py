#!/usr/bin/env python3
"""Best-effort extraction of the ATK login URL and auth server port from log text.

`atk auth login m365` prints free-form progress text with no stable format, so
everything here is pattern matching over whatever has been written so far.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

DEFAULT_AUTH_PORT = 3978
MIN_PORT = 1000
MAX_PORT = 65535
MAX_PORT_DIGITS = len(str(MAX_PORT))

LOGIN_URL_PATTERN = re.compile(r"https://login\.microsoftonline\.com/\S+")
ALT_LOGIN_URL_PATTERN = re.compile(r"https://\S*login\S*")
PORT_PATTERNS = (
    re.compile(r"localhost:(\d+)", re.ASCII),
    re.compile(r"127\.0\.0\.1:(\d+)", re.ASCII),
    re.compile(r"port (\d+)", re.IGNORECASE | re.ASCII),
    re.compile(r"server.*?(\d+)", re.IGNORECASE | re.ASCII),
)


@dataclass(frozen=True)
class AuthHint:
    login_url: str | None
    port: int = DEFAULT_AUTH_PORT

    @property
    def found(self) -> bool:
        return self.login_url is not None


def extract_login_url(text: str | None) -> str | None:
    """Return the first Microsoft login URL, else any https URL mentioning ``login``."""

    if not text:
        return None
    match = LOGIN_URL_PATTERN.search(text)
    if match:
        return match.group(0)
    match = ALT_LOGIN_URL_PATTERN.search(text)
    return match.group(0) if match else None


def extract_port(text: str | None) -> int:
    """Return the first plausible listening port in ``text`` or the ATK default."""

    if not text:
        return DEFAULT_AUTH_PORT
    for pattern in PORT_PATTERNS:
        match = pattern.search(text)
        if not match or len(match.group(1)) > MAX_PORT_DIGITS:
            continue
        port = int(match.group(1))
        if MIN_PORT < port < MAX_PORT:
            return port
    return DEFAULT_AUTH_PORT


def build_forwarding_url(
    port: int,
    *,
    codespace_name: str | None = None,
    forwarding_domain: str | None = None,
) -> str:
    """Map a container port to its Codespaces public URL (loopback when not in a Codespace)."""

    if codespace_name:
        return f"https://{codespace_name}-{port}.app.github.dev"
    if forwarding_domain:
        return f"https://{forwarding_domain}-{port}.githubpreview.dev"
    return f"http://localhost:{port}"


def scan_auth_log(text: str | None) -> AuthHint:
    return AuthHint(login_url=extract_login_url(text), port=extract_port(text))


def archive_log_path(logs_dir: Path, now: datetime | None = None) -> Path:
    stamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).isoformat(timespec="milliseconds")
    stamp = stamp.replace("+00:00", "Z")
    stamp = stamp.replace(":", "-").replace(".", "-")
    return logs_dir / f"auth-{stamp}.log"


def read_log(path: Path) -> str | None:
    """Return the log text, or ``None`` if it does not exist yet. Other ``OSError``s propagate."""

    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return None


def wait_for_auth_log(
    path: Path,
    *,
    timeout: float,
    interval: float = 1.0,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> str | None:
    """Poll ``path`` until it contains a login URL or ``timeout`` seconds pass.

    Returns the last content read, which may be partial, or ``None`` when the
    file never appeared.
    """

    deadline = clock() + timeout
    content = read_log(path)
    while extract_login_url(content) is None:
        remaining = deadline - clock()
        if remaining <= 0:
            break
        sleep(min(interval, remaining))
        content = read_log(path)
    return content
