#!/usr/bin/env python3
"""Report ATK version, workspace layout and agent readiness."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from atk_lib.config import WorkspaceConfig  # noqa: E402
from atk_lib.provision import status_report  # noqa: E402


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check the ATK environment inside the Codespace")
    parser.add_argument("--workspace-root", type=Path, help="Override ${WORKSPACE_ROOT}")
    parser.add_argument("--agent-path", type=Path, help="Override ${ATK_AGENT_PATH}")
    parser.add_argument("--strict", action="store_true", help="Exit 1 when the agent is missing or has no package.json")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    config = WorkspaceConfig.from_env(workspace_root=args.workspace_root, agent_path=args.agent_path)
    ready = status_report(config)
    if args.strict and not ready:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
