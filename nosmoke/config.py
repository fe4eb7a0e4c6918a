"""Workspace root, profile settings and path helpers for NoSmoke Days."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml


DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M"


def workspace_root() -> Path:
    """Get the workspace root directory (holds profile.yaml and state.json)."""
    return Path(
        os.environ.get("NOSMOKE_ROOT", str(Path.home() / "nosmoke"))
    ).expanduser().resolve()


def read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping, returning empty dict if missing, empty or not a mapping."""
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    result = yaml.safe_load(text)
    return result if isinstance(result, dict) else {}


# ── Profile ───────────────────────────────────────────────────


@dataclass
class Profile:
    timezone: str = "UTC"
    date_format: str = DEFAULT_DATE_FORMAT
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Profile:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            timezone=str(d.get("timezone") or "UTC"),
            date_format=str(d.get("date_format") or DEFAULT_DATE_FORMAT),
            log_level=str(d.get("log_level") or "INFO").upper(),
            log_json=bool(d.get("log_json", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timezone": self.timezone,
            "date_format": self.date_format,
            "log_level": self.log_level,
            "log_json": self.log_json,
        }

    def tz(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            return ZoneInfo("UTC")


def load_profile(root: Path | None = None) -> Profile:
    """Load profile.yaml; a missing or unreadable profile yields defaults."""
    if root is None:
        root = workspace_root()
    try:
        return Profile.from_dict(read_yaml(profile_path(root)))
    except (OSError, yaml.YAMLError):
        return Profile()


def write_default_profile(root: Path | None = None) -> Path:
    """Create profile.yaml with default settings unless one already exists."""
    if root is None:
        root = workspace_root()
    path = profile_path(root)
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        content = yaml.dump(Profile().to_dict(), default_flow_style=False, allow_unicode=True, sort_keys=False)
        path.write_text(content, encoding="utf-8")
    return path


# ── Path helpers ──────────────────────────────────────────────

def profile_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "profile.yaml"


def state_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "state.json"


def log_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "nosmoke.log"
