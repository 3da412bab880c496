from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from atk_lib.log_scanner import DEFAULT_AUTH_PORT, build_forwarding_url

DEFAULT_WORKSPACE_ROOT = Path("/workspaces/m365-test")
DEFAULT_AGENT_NAME = "myagent"
AGENT_UI_PORT = 56150
DEV_SERVER_PORT = 3000
ATK_PACKAGE = "@microsoft/m365agentstoolkit-cli"
AGENT_TEMPLATE = "basic-custom-engine-agent"
AGENT_LANGUAGE = "typescript"
AUTH_WAIT_SECONDS = 8.0

CONFIG_ENV_KEYS = (
    "WORKSPACE_ROOT",
    "ATK_AGENT_PATH",
    "CODESPACE_NAME",
    "GITHUB_CODESPACES_PORT_FORWARDING_DOMAIN",
)


def _env_value(environ: Mapping[str, str], key: str) -> str | None:
    value = environ.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class WorkspaceConfig:
    """Paths and naming inputs shared by the setup, status and auth scripts."""

    workspace_root: Path = DEFAULT_WORKSPACE_ROOT
    agent_path: Path = DEFAULT_WORKSPACE_ROOT / "agents" / DEFAULT_AGENT_NAME
    codespace_name: str | None = None
    forwarding_domain: str | None = None
    agent_name: str = DEFAULT_AGENT_NAME
    agent_template: str = AGENT_TEMPLATE
    agent_language: str = AGENT_LANGUAGE
    atk_package: str = ATK_PACKAGE
    auth_wait: float = AUTH_WAIT_SECONDS

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        workspace_root: Path | None = None,
        agent_path: Path | None = None,
        auth_wait: float | None = None,
    ) -> "WorkspaceConfig":
        """Build a config from ``environ`` (default ``os.environ``); explicit paths win."""
        env = os.environ if environ is None else environ
        if workspace_root is None:
            raw_root = _env_value(env, "WORKSPACE_ROOT")
            workspace_root = Path(raw_root).expanduser() if raw_root else DEFAULT_WORKSPACE_ROOT
        if agent_path is None:
            raw_agent = _env_value(env, "ATK_AGENT_PATH")
            agent_path = (
                Path(raw_agent).expanduser()
                if raw_agent
                else workspace_root / "agents" / DEFAULT_AGENT_NAME
            )
        return cls(
            workspace_root=workspace_root,
            agent_path=agent_path,
            codespace_name=_env_value(env, "CODESPACE_NAME"),
            forwarding_domain=_env_value(env, "GITHUB_CODESPACES_PORT_FORWARDING_DOMAIN"),
            agent_name=agent_path.name or DEFAULT_AGENT_NAME,
            auth_wait=AUTH_WAIT_SECONDS if auth_wait is None else auth_wait,
        )

    @property
    def agents_dir(self) -> Path:
        return self.workspace_root / "agents"

    @property
    def logs_dir(self) -> Path:
        return self.workspace_root / "logs"

    @property
    def scripts_dir(self) -> Path:
        return self.workspace_root / "scripts"

    @property
    def auth_log(self) -> Path:
        return self.agent_path / "auth.log"

    @property
    def manifest_path(self) -> Path:
        return self.agent_path / "package.json"

    def new_agent_command(self) -> str:
        return (
            f"atk new -c {self.agent_template} -l {self.agent_language} "
            f"-n {self.agent_name} -i false"
        )

    def forwarding_url(self, port: int) -> str:
        return build_forwarding_url(
            port,
            codespace_name=self.codespace_name,
            forwarding_domain=self.forwarding_domain,
        )
