from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from atk_lib.fileio import load_json


@dataclass(frozen=True)
class ManifestSummary:
    """Display fields from the scaffolded agent's ``package.json``."""

    name: str | None
    version: str | None
    scripts: List[str] = field(default_factory=list)

    def lines(self) -> List[str]:
        return [
            f"   Name: {self.name}",
            f"   Version: {self.version}",
            f"   Scripts: {', '.join(self.scripts)}",
        ]


def read_manifest(path: Path) -> ManifestSummary:
    """Summarize ``path``; raises ``FileNotFoundError``/``ValueError`` when unreadable."""

    data = load_json(path, default=None)
    if data is None:
        raise FileNotFoundError(f"{path} not found")
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    scripts = data.get("scripts") or {}
    if not isinstance(scripts, dict):
        scripts = {}
    name = data.get("name")
    version = data.get("version")
    return ManifestSummary(
        name=str(name) if name is not None else None,
        version=str(version) if version is not None else None,
        scripts=list(scripts.keys()),
    )
