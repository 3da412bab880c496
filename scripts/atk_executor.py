#!/usr/bin/env python3
"""Run the ATK smoke sequence inside the Codespace and print the OAuth/forwarding URLs."""

from __future__ import annotations

import argparse
import sys
import traceback
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from atk_lib.config import WorkspaceConfig  # noqa: E402
from atk_lib.executor import AtkExecutor  # noqa: E402
from atk_lib.logs import configure_logger  # noqa: E402


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Codespace-native M365 Agents Toolkit smoke run")
    parser.add_argument("--workspace-root", type=Path, help="Override ${WORKSPACE_ROOT} (default /workspaces/m365-test)")
    parser.add_argument("--agent-path", type=Path, help="Override ${ATK_AGENT_PATH} (default <workspace>/agents/myagent)")
    parser.add_argument(
        "--auth-wait",
        type=float,
        default=None,
        help="Seconds to wait for the auth server before reading auth.log (default: 8)",
    )
    parser.add_argument(
        "--poll",
        action="store_true",
        help="Poll auth.log for the login URL (up to --auth-wait seconds) instead of a fixed sleep",
    )
    parser.add_argument("--probe", action="store_true", help="HTTP-probe the public auth URL once it is known")
    args = parser.parse_args(argv)
    if args.auth_wait is not None and args.auth_wait < 0:
        parser.error("--auth-wait cannot be negative")
    return args


def build_config(args: argparse.Namespace) -> WorkspaceConfig:
    return WorkspaceConfig.from_env(
        workspace_root=args.workspace_root,
        agent_path=args.agent_path,
        auth_wait=args.auth_wait,
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    config = build_config(args)
    configure_logger("atk.executor", config.logs_dir / "atk-executor.log")
    executor = AtkExecutor(config, poll=args.poll, probe=args.probe)
    try:
        executor.run()
    except Exception as exc:
        print(f"\n❌ Execution test failed: {exc}", file=sys.stderr)
        traceback.print_exc()
        raise SystemExit(1)


if __name__ == "__main__":
    main()
