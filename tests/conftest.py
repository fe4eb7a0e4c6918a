"""Shared test fixtures for NoSmoke Days tests."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
import yaml

from nosmoke.clock import FixedClock
from nosmoke.store import MemoryStore, StoreError


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class FailingStore(MemoryStore):
    """MemoryStore whose reads and/or writes raise StoreError."""

    def __init__(self, data: dict[str, Any] | None = None, fail_get: bool = False, fail_put: bool = True) -> None:
        super().__init__(data)
        self.fail_get = fail_get
        self.fail_put = fail_put

    def get(self, key: str) -> Any | None:
        if self.fail_get:
            raise StoreError("store unavailable")
        return super().get(key)

    def put(self, key: str, value: Any) -> None:
        if self.fail_put:
            raise StoreError("disk full")
        super().put(key, value)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with a UTC profile."""
    root = tmp_path / "workspace"
    root.mkdir(parents=True)

    profile = {
        "timezone": "UTC",
        "date_format": "%Y-%m-%d %H:%M",
        "log_level": "INFO",
    }
    (root / "profile.yaml").write_text(
        yaml.dump(profile, default_flow_style=False), encoding="utf-8"
    )

    # Set env var
    os.environ["NOSMOKE_ROOT"] = str(root)
    yield root
    # Cleanup
    if "NOSMOKE_ROOT" in os.environ:
        del os.environ["NOSMOKE_ROOT"]
