"""Key-value store collaborators for session persistence.

The tracker only needs get/put. MemoryStore backs tests and embedding;
JsonFileStore keeps every key in one JSON document written atomically.
"""

from __future__ import annotations

import copy
import fcntl
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol


class StoreError(Exception):
    """Raised by a store when a read or write cannot be completed."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any) -> None: ...


class MemoryStore:
    """Dict-backed store. Values are deep-copied in and out."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = copy.deepcopy(data) if data else {}

    def get(self, key: str) -> Any | None:
        return copy.deepcopy(self.data.get(key))

    def put(self, key: str, value: Any) -> None:
        self.data[key] = copy.deepcopy(value)


class JsonFileStore:
    """All keys live in a single JSON object on disk (state.json)."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Cannot read {self.path}: {e}") from e
        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StoreError(f"Malformed JSON in {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Expected a JSON object in {self.path}")
        return data

    def get(self, key: str) -> Any | None:
        return self._read().get(key)

    def put(self, key: str, value: Any) -> None:
        try:
            data = self._read()
        except StoreError:
            # Unreadable document: rewrite it from the current key only.
            data = {}
        data[key] = value
        try:
            _atomic_write_json(self.path, data)
        except OSError as e:
            raise StoreError(f"Cannot write {self.path}: {e}") from e


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    """Temp file + flock + fsync + rename, so readers never see a partial document."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                f.write(json.dumps(data, indent=2, ensure_ascii=False) + "\n")
                f.flush()
                os.fsync(f.fileno())
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
