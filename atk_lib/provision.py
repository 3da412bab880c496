from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List

from atk_lib.config import WorkspaceConfig
from atk_lib.manifest import read_manifest
from atk_lib.runner import CommandRunner, log_progress

LOGGER = logging.getLogger("atk.provision")

SYSTEM_PACKAGES = ("curl", "wget", "git", "build-essential")
EXTRA_GLOBAL_TOOLS = ("concurrently", "dotenv-cli", "typescript")
INSTALL_TIMEOUT = 900.0


class SetupError(RuntimeError):
    pass


@dataclass
class SetupSummary:
    atk_version: str | None = None
    agent_created: bool = False
    dependencies_installed: bool = False
    warnings: List[str] = field(default_factory=list)


def _warn(summary: SetupSummary, echo: Callable[[str], None], message: str) -> None:
    summary.warnings.append(message)
    LOGGER.warning(message)
    echo(f"⚠️ {message}")


def provision_environment(
    config: WorkspaceConfig,
    *,
    runner: CommandRunner | None = None,
    echo: Callable[[str], None] = log_progress,
    skip_system_packages: bool = False,
    skip_extra_tools: bool = False,
) -> SetupSummary:
    """Install the ATK CLI, lay out the workspace and scaffold the sample agent.

    Only a failed ATK install stops the run; everything else degrades to a warning.
    """

    runner = runner or CommandRunner(echo=echo)
    summary = SetupSummary()
    echo("🚀 Setting up M365 Agent Toolkit Environment...")
    echo("=" * 46)

    if not skip_system_packages:
        echo("\n1️⃣  Updating system packages...")
        packages = " ".join(SYSTEM_PACKAGES)
        result = runner.run(
            f"sudo apt-get update > /dev/null 2>&1 && sudo apt-get install -y {packages} > /dev/null 2>&1",
            timeout=INSTALL_TIMEOUT,
        )
        if result.success:
            echo("✅ System packages updated")
        else:
            _warn(summary, echo, f"System package update failed: {result.stderr}")

    echo("\n2️⃣  Installing M365 Agent Toolkit CLI...")
    install = runner.stream(f"npm install -g {config.atk_package}")
    version = runner.run("atk --version")
    if not install.success or not version.success:
        detail = install.stderr if not install.success else version.stderr
        raise SetupError(f"Failed to install ATK CLI: {detail}")
    summary.atk_version = version.stdout
    echo(f"✅ ATK CLI installed: {version.stdout}")

    echo("\n3️⃣  Creating workspace structure...")
    for directory in (config.agents_dir, config.logs_dir, config.scripts_dir):
        directory.mkdir(parents=True, exist_ok=True)
    echo("✅ Workspace directories created")

    echo("\n4️⃣  Creating M365 Agent...")
    command = config.new_agent_command()
    echo(f"   Command: {command}")
    if config.agent_path.is_dir():
        echo(f"✅ Agent '{config.agent_name}' already present at {config.agent_path}")
    else:
        created = runner.stream(command, cwd=config.agents_dir)
        if created.success:
            summary.agent_created = True
            echo(f"✅ M365 Agent '{config.agent_name}' created successfully")
        else:
            _warn(summary, echo, f"Failed to create M365 Agent: {created.stderr}")

    if config.agent_path.is_dir():
        echo("\n5️⃣  Installing agent dependencies...")
        deps = runner.stream("npm install", cwd=config.agent_path)
        if deps.success:
            summary.dependencies_installed = True
            echo("✅ Agent dependencies installed")
        else:
            _warn(summary, echo, "Some issues with dependency installation")
        if config.manifest_path.exists():
            echo("✅ Package.json found - TypeScript configuration ready")
    else:
        _warn(summary, echo, "Agent directory not found, skipping dependency installation")

    if not skip_extra_tools:
        echo("\n6️⃣  Installing additional development tools...")
        tools = runner.run(f"npm install -g {' '.join(EXTRA_GLOBAL_TOOLS)}", timeout=INSTALL_TIMEOUT)
        if tools.success:
            echo("✅ Additional tools installed")
        else:
            _warn(summary, echo, f"Additional tools failed to install: {tools.stderr}")

    echo("\n🎉 M365 Agent Toolkit Environment Setup Complete!")
    echo(f"📁 Agent Location: {config.agent_path}")
    return summary


def status_report(
    config: WorkspaceConfig,
    *,
    runner: CommandRunner | None = None,
    echo: Callable[[str], None] = log_progress,
) -> bool:
    """Print the ATK/workspace/agent state. Returns whether the agent is ready."""

    runner = runner or CommandRunner(echo=echo)
    echo("🔍 ATK Environment Status Check")
    echo("=" * 30)

    echo("📦 ATK Version:")
    version = runner.run("atk --version")
    echo(version.stdout if version.success else f"❌ ATK CLI unavailable: {version.stderr}")

    echo("\n📁 Workspace Structure:")
    if config.workspace_root.is_dir():
        listing = runner.run("ls -la", cwd=config.workspace_root)
        echo(listing.stdout)
    else:
        echo(f"❌ Workspace not found: {config.workspace_root}")

    echo("\n🤖 Agent Directory:")
    ready = False
    if config.agent_path.is_dir():
        echo(f"✅ Agent '{config.agent_name}' found")
        listing = runner.run("ls -la", cwd=config.agent_path)
        echo(listing.stdout)
        echo("\n📄 Package.json Summary:")
        try:
            manifest = read_manifest(config.manifest_path)
        except (OSError, ValueError) as exc:
            echo(f"⚠️ Package.json not found, agent may need reinitialization ({exc})")
        else:
            ready = True
            for line in manifest.lines():
                echo(line)
    else:
        echo(f"❌ Agent '{config.agent_name}' not found")

    echo("\n🌐 Environment Variables:")
    echo(f"WORKSPACE_ROOT: {config.workspace_root}")
    echo(f"ATK_AGENT_PATH: {config.agent_path}")
    echo(f"CODESPACE_NAME: {config.codespace_name or ''}")

    echo("\n✅ Status check completed!")
    return ready
