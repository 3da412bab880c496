#!/usr/bin/env python3
"""Start `atk auth login m365` in the background and print the login URL it reports."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from atk_lib.config import WorkspaceConfig  # noqa: E402
from atk_lib.executor import AtkError, run_auth_check  # noqa: E402
from atk_lib.logs import configure_logger  # noqa: E402


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Kick off ATK authentication and scrape the OAuth URL")
    parser.add_argument("--workspace-root", type=Path, help="Override ${WORKSPACE_ROOT}")
    parser.add_argument("--agent-path", type=Path, help="Override ${ATK_AGENT_PATH}")
    parser.add_argument("--auth-wait", type=float, default=None, help="Seconds to wait before reading the log (default: 8)")
    args = parser.parse_args(argv)
    if args.auth_wait is not None and args.auth_wait < 0:
        parser.error("--auth-wait cannot be negative")
    return args


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    config = WorkspaceConfig.from_env(
        workspace_root=args.workspace_root,
        agent_path=args.agent_path,
        auth_wait=args.auth_wait,
    )
    configure_logger("atk.auth", config.logs_dir / "atk-auth.log")
    try:
        run_auth_check(config)
    except AtkError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
