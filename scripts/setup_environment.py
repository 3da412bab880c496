#!/usr/bin/env python3
"""Provision the Codespace: ATK CLI, workspace layout, sample TypeScript agent."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from atk_lib.config import WorkspaceConfig  # noqa: E402
from atk_lib.logs import configure_logger  # noqa: E402
from atk_lib.provision import SetupError, provision_environment  # noqa: E402


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Install the M365 Agents Toolkit and scaffold the sample agent")
    parser.add_argument("--workspace-root", type=Path, help="Override ${WORKSPACE_ROOT} (default /workspaces/m365-test)")
    parser.add_argument("--agent-path", type=Path, help="Override ${ATK_AGENT_PATH} (default <workspace>/agents/myagent)")
    parser.add_argument("--skip-system-packages", action="store_true", help="Do not run apt-get update/install")
    parser.add_argument(
        "--skip-extra-tools",
        action="store_true",
        help="Do not install concurrently/dotenv-cli/typescript globally",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    config = WorkspaceConfig.from_env(workspace_root=args.workspace_root, agent_path=args.agent_path)
    configure_logger("atk.provision", config.logs_dir / "setup-environment.log")
    try:
        summary = provision_environment(
            config,
            skip_system_packages=args.skip_system_packages,
            skip_extra_tools=args.skip_extra_tools,
        )
    except SetupError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        raise SystemExit(1)
    if summary.warnings:
        print(f"\n⚠️ Completed with {len(summary.warnings)} warning(s):")
        for warning in summary.warnings:
            print(f"  - {warning}")


if __name__ == "__main__":
    main()
