"""Local key-value persistence for the task list.

The whole list lives under a single key as a JSON array of
``{"id", "text", "completed"}`` objects. Stores only deal in text; turning
that text into task records is done by :func:`encode_tasks` and
:func:`decode_tasks`.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from PySide6.QtCore import QSettings


STORAGE_KEY = "TASKS_V1"
SETTINGS_ORGANIZATION = "TodaysTasks"
SETTINGS_APPLICATION = "TodaysTasks"


class StoreError(Exception):
    """Raised when the snapshot cannot be read, written or decoded."""


class KeyValueStore(Protocol):
    """Interface the task model needs from a persistent store."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemoryStore:
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class SettingsStore:
    """Store backed by the platform's QSettings location."""

    def __init__(
        self,
        organization: str = SETTINGS_ORGANIZATION,
        application: str = SETTINGS_APPLICATION,
        settings: Optional[QSettings] = None,
    ):
        self._settings = settings if settings is not None else QSettings(organization, application)

    def _check_status(self, action: str) -> None:
        status = self._settings.status()
        if status == QSettings.Status.AccessError:
            raise StoreError(f"Cannot {action} settings: access denied")
        if status == QSettings.Status.FormatError:
            raise StoreError(f"Cannot {action} settings: file is malformed")

    def get(self, key: str) -> Optional[str]:
        self._check_status("read")
        value = self._settings.value(key)
        if value is None:
            return None
        # QSettings may hand back bytes or QByteArray depending on backend
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8")
        if not isinstance(value, str):
            raise StoreError(f"Unexpected value type for {key!r}: {type(value).__name__}")
        return value

    def set(self, key: str, value: str) -> None:
        self._settings.setValue(key, value)
        self._settings.sync()  # Ensure settings are written to disk
        self._check_status("write")


class JsonFileStore:
    """One file per key inside ``directory``.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, directory: str | os.PathLike):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StoreError(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp_name = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self._directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Failed to write {path}: {e}") from e


def encode_tasks(records: Iterable[Mapping[str, Any]]) -> str:
    """Serialize task records to the stored JSON text."""
    payload = [
        {
            "id": str(record["id"]),
            "text": str(record["text"]),
            "completed": bool(record.get("completed", False)),
        }
        for record in records
    ]
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def decode_tasks(text: str) -> List[Dict[str, Any]]:
    """Parse stored JSON text back into task records.

    Raises:
        StoreError: If the text is not JSON or its top level is not an array.

    Entries are cleaned up by :func:`normalize_tasks`.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise StoreError(f"Invalid task snapshot: {e}") from e

    if not isinstance(data, list):
        raise StoreError(f"Invalid task snapshot: expected a list, got {type(data).__name__}")
    return normalize_tasks(data)


def normalize_tasks(entries: Iterable[Any]) -> List[Dict[str, Any]]:
    """Keep only entries that form a valid task list.

    Entries that are not mappings, lack an id, or have blank text are skipped.
    Later entries repeating an id already seen are dropped. Text is trimmed.
    """
    records: List[Dict[str, Any]] = []
    seen_ids = set()
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        task_id = entry.get("id")
        if task_id is None or isinstance(task_id, bool):
            continue
        task_id = str(task_id)
        text_value = entry.get("text")
        if not isinstance(text_value, str) or not text_value.strip():
            continue
        if task_id in seen_ids:
            continue
        seen_ids.add(task_id)
        records.append({
            "id": task_id,
            "text": text_value.strip(),
            "completed": bool(entry.get("completed", False)),
        })
    return records
