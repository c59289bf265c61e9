"""Key-value persistence for small string markers.

Two stores share one protocol:
- ``MemoryStore``: a dict, for tests and throwaway sessions.
- ``JsonFileStore``: one JSON object on disk, written atomically.

Both raise ``StorageError`` when the backing storage cannot be read or
written; callers decide whether that is fatal.

Example:
    >>> store = JsonFileStore(Path("~/.moodjournal/quota.json"))
    >>> store.set("ai_analysis_u1_2024-05-01", "2024-05-01T08:00:00+00:00")
    >>> store.get("ai_analysis_u1_2024-05-01")
    '2024-05-01T08:00:00+00:00'
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """The backing store could not be read or written."""

    pass


class KeyValueStore(Protocol):
    """String-to-string persistence."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self) -> list[str]: ...


class MemoryStore:
    """In-process store. Contents are lost with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)


class JsonFileStore:
    """Store backed by a single JSON file.

    Every ``set``/``delete`` rewrites the file through a temp file in the
    same directory followed by an atomic rename. A missing file reads as
    empty. A corrupt or unreadable file raises ``StorageError``.

    Attributes:
        path: Location of the JSON file.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot read {self.path.name}: {type(e).__name__}") from e
        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt store file {self.path.name}: {e.msg}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Store file {self.path.name} does not hold an object")
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=self.path.parent,
                suffix=".tmp",
                prefix=".store_",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, sort_keys=True)
                Path(temp_path).replace(self.path)
            except Exception:
                Path(temp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {self.path.name}: {type(e).__name__}") from e

        logger.debug(f"Saved {len(data)} entries to {self.path.name}")

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key: str) -> bool:
        with self._lock:
            data = self._load()
            if key not in data:
                return False
            del data[key]
            self._save(data)
            return True

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._load())
