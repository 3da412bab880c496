#!/usr/bin/env python3
"""Codespace-native ATK smoke run: verify tooling, scaffold the agent, start auth, scrape the login URL."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from atk_lib.config import AGENT_UI_PORT, DEFAULT_AUTH_PORT, DEV_SERVER_PORT, WorkspaceConfig
from atk_lib.fileio import copy_file
from atk_lib.log_scanner import AuthHint, archive_log_path, read_log, scan_auth_log, wait_for_auth_log
from atk_lib.manifest import read_manifest
from atk_lib.probe import ProbeResult, probe_url
from atk_lib.runner import CommandRunner, log_progress

LOGGER = logging.getLogger("atk.executor")

AUTH_COMMAND = "atk auth login m365"
PROCESS_CHECK_COMMAND = 'ps aux | grep atk || echo "No ATK processes found"'
LOG_PREVIEW_CHARS = 500


class AtkError(RuntimeError):
    """A step the rest of the run depends on could not be completed."""


class AtkExecutor:
    def __init__(
        self,
        config: WorkspaceConfig,
        *,
        runner: CommandRunner | None = None,
        echo: Callable[[str], None] = log_progress,
        sleep: Callable[[float], None] = time.sleep,
        poll: bool = False,
        probe: bool = False,
        prober: Callable[[str], ProbeResult] = probe_url,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.echo = echo
        self.runner = runner or CommandRunner(echo=echo)
        self.sleep = sleep
        self.poll = poll
        self.probe = probe
        self.prober = prober
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.hint: AuthHint | None = None
        self.archived_log: Path | None = None

    def _step(self, title: str) -> None:
        self.echo(f"\n{title}")
        LOGGER.info(title.strip())

    # -------------------------------------------------------------------- stages
    def run(self) -> AuthHint | None:
        self.echo("🚀 M365 Agent Toolkit - Codespace Native Execution")
        self.echo("=" * 50)
        self.echo("🌍 Running inside GitHub Codespace environment")
        self.echo(f"📁 Workspace: {self.config.workspace_root}")
        self.echo(f"🤖 Agent Path: {self.config.agent_path}")
        self.verify_environment()
        self.ensure_atk()
        self.ensure_agent()
        self.check_dependencies()
        self.start_auth()
        self.hint = self.read_auth_log()
        self.print_summary()
        return self.hint

    def verify_environment(self) -> None:
        self._step("1️⃣  Verifying environment...")
        for label, command in (("Node.js", "node --version"), ("npm", "npm --version")):
            result = self.runner.run(command)
            if result.success:
                self.echo(f"✅ {label}: {result.stdout}")

    def ensure_atk(self) -> None:
        self._step("2️⃣  Verifying ATK installation...")
        version = self.runner.run("atk --version")
        if version.success:
            self.echo(f"✅ ATK CLI: {version.stdout}")
            return
        self.echo("❌ ATK CLI not found. Installing...")
        install = self.runner.stream(f"npm install -g {self.config.atk_package}")
        if not install.success:
            raise AtkError(f"Failed to install ATK CLI: {install.stderr}")
        self.echo("✅ ATK CLI installed successfully")

    def ensure_agent(self) -> None:
        self._step("3️⃣  Verifying M365 agent...")
        agent_path = self.config.agent_path
        if agent_path.is_dir():
            self.echo(f"✅ Agent directory found: {agent_path}")
            listing = self.runner.run("ls -la", cwd=agent_path)
            if listing.success:
                self.echo("📁 Agent contents:")
                self.echo(listing.stdout)
            return
        self.echo("❌ Agent directory not found. Creating agent...")
        agents_dir = self.config.agents_dir
        agents_dir.mkdir(parents=True, exist_ok=True)
        created = self.runner.stream(self.config.new_agent_command(), cwd=agents_dir)
        if not created.success:
            raise AtkError(f"Failed to create M365 agent: {created.stderr}")
        self.echo("✅ M365 agent created successfully")

    def check_dependencies(self) -> None:
        self._step("4️⃣  Checking agent dependencies...")
        try:
            summary = read_manifest(self.config.manifest_path)
        except (OSError, ValueError) as exc:
            self.echo(f"⚠️ Could not read package.json: {exc}")
            return
        self.echo("✅ Package.json found:")
        for line in summary.lines():
            self.echo(line)
        if (self.config.agent_path / "node_modules").exists():
            self.echo("✅ Dependencies already installed")
            return
        self.echo("📦 Installing dependencies...")
        installed = self.runner.stream("npm install", cwd=self.config.agent_path)
        if installed.success:
            self.echo("✅ Dependencies installed")
        else:
            self.echo(f"⚠️ Dependency installation had issues: {installed.stderr}")

    def start_auth(self) -> None:
        self._step("5️⃣  Testing ATK authentication...")
        self.echo(f"   Command: nohup {AUTH_COMMAND} > auth.log 2>&1 &")
        self.config.logs_dir.mkdir(parents=True, exist_ok=True)
        try:
            pid = self.runner.spawn_detached(AUTH_COMMAND, log_path=self.config.auth_log, cwd=self.config.agent_path)
        except OSError as exc:
            self.echo(f"⚠️ ATK auth start result: {exc}")
            return
        self.echo(f"✅ ATK auth command started (PID: {pid})")

    def _collect_log(self) -> str | None:
        wait = self.config.auth_wait
        if self.poll:
            self.echo(f"   ⏳ Polling up to {wait:g} seconds for the login URL...")
            return wait_for_auth_log(self.config.auth_log, timeout=wait, sleep=self.sleep)
        self.echo(f"   ⏳ Waiting {wait:g} seconds for auth server to start...")
        self.sleep(wait)
        return read_log(self.config.auth_log)

    def read_auth_log(self) -> AuthHint | None:
        self._step("6️⃣  Reading authentication log...")
        auth_log = self.config.auth_log
        try:
            content = self._collect_log()
        except OSError as exc:
            content, reason = None, str(exc)
        else:
            reason = f"{auth_log} does not exist"
        if content is None:
            self.echo(f"❌ Could not read auth log: {reason}")
            LOGGER.warning("Auth log %s unreadable after wait: %s", auth_log, reason)
            self.echo("🔍 Checking for running ATK processes...")
            processes = self.runner.run(PROCESS_CHECK_COMMAND)
            if processes.success:
                self.echo(f"Process status: {processes.stdout}")
            return None

        self.echo("✅ Auth log contents:")
        self.echo("---START AUTH LOG---")
        self.echo(content)
        self.echo("---END AUTH LOG---")

        hint = scan_auth_log(content)
        if not hint.found:
            self.echo("⚠️ No OAuth URL found in auth log")
            self.echo(f"Log preview: {content[:LOG_PREVIEW_CHARS]}")
            return hint

        public_url = self.config.forwarding_url(hint.port)
        self.echo("\n7️⃣  OAuth URL extraction successful!")
        self.echo(f"✅ OAuth URL: {hint.login_url}")
        self.echo(f"🔌 Auth server port: {hint.port}")
        self.echo(f"🌐 Public auth URL: {public_url}")
        LOGGER.info("Extracted login URL on port %s", hint.port)
        if self.probe:
            self.echo(f"📡 Probe: {self.prober(public_url).describe()}")

        self.echo("\n🎯 Authentication Instructions:")
        self.echo("1. Open the OAuth URL above in your browser")
        self.echo("2. Complete Microsoft 365 authentication")
        self.echo("3. Or access the auth server via the public URL")
        self.echo("4. Use VS Code port forwarding if URLs don't work")

        try:
            self.archived_log = copy_file(auth_log, archive_log_path(self.config.logs_dir, self.clock()))
        except OSError as exc:
            self.echo(f"⚠️ Could not archive auth log: {exc}")
        else:
            self.echo(f"📄 Log saved to: {self.archived_log}")
        return hint

    def print_summary(self) -> None:
        self.echo("\n🎉 ATK Execution Test Complete!")
        self.echo("=" * 31)
        self.echo("✅ Environment: GitHub Codespace")
        self.echo("✅ ATK CLI: Installed and working")
        self.echo(f"✅ M365 Agent: Ready ({self.config.agent_language})")
        self.echo("✅ ATK Auth: Executed")
        if self.hint and self.hint.found:
            self.echo(f"✅ OAuth URL: {self.hint.login_url}")
        else:
            self.echo("⚠️ OAuth URL: not found yet")
        print_forwarding_links(self.config, self.echo)
        self.echo("\n📖 Next Steps:")
        self.echo("1. Complete M365 authentication using the OAuth URL above")
        self.echo("2. Test agent functionality after authentication")
        self.echo("3. Verify port forwarding in VS Code (Ports tab)")
        self.echo("4. Re-run scripts/atk_auth.py to restart authentication")


def print_forwarding_links(config: WorkspaceConfig, echo: Callable[[str], None] = log_progress) -> None:
    echo("\n🔗 Codespace Port Forwarding:")
    echo(f"   Auth Server: {config.forwarding_url(DEFAULT_AUTH_PORT)}")
    echo(f"   Agent UI: {config.forwarding_url(AGENT_UI_PORT)}")
    echo(f"   Development: {config.forwarding_url(DEV_SERVER_PORT)}")


def run_auth_check(
    config: WorkspaceConfig,
    *,
    runner: CommandRunner | None = None,
    echo: Callable[[str], None] = log_progress,
    sleep: Callable[[float], None] = time.sleep,
    now: datetime | None = None,
) -> AuthHint:
    """Start auth straight into a timestamped log under ``logs/`` and report what it printed."""

    runner = runner or CommandRunner(echo=echo)
    echo("🔐 Testing ATK Authentication...")
    if not config.agent_path.is_dir():
        raise AtkError(f"Agent directory not found: {config.agent_path}")
    log_file = archive_log_path(config.logs_dir, now)
    echo(f"📄 Starting ATK auth, logging to: {log_file}")
    try:
        pid = runner.spawn_detached(AUTH_COMMAND, log_path=log_file, cwd=config.agent_path)
    except OSError as exc:
        raise AtkError(f"Could not start ATK auth: {exc}") from exc
    echo(f"🔄 Auth process started (PID: {pid})")
    echo(f"⏳ Waiting {config.auth_wait:g} seconds for auth server to start...")
    sleep(config.auth_wait)

    echo("\n📋 Auth log contents:")
    echo("---")
    try:
        content = read_log(log_file)
    except OSError as exc:
        content = None
        echo(f"❌ Could not read log file: {exc}")
    else:
        if content is None:
            echo("❌ Log file not created")
    hint = scan_auth_log(content)
    if content is not None:
        echo(content)
        echo("---")
        if hint.found:
            echo(f"\n🌐 OAuth URL found: {hint.login_url}")
            echo("📝 Open this URL in your browser to complete authentication")
        else:
            echo("⚠️ No OAuth URL found in logs yet")
    print_forwarding_links(config, echo)
    echo("\n✅ ATK Auth test completed!")
    return hint
