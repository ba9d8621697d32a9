"""
Local Preference Storage

Remembers "last active profile" per user and "last viewed month" per
profile so a new session resumes where the previous one stopped.

Values are plain strings with last-write-wins semantics. There is no
conflict resolution: one process writes, the next one reads.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


def active_profile_key(user_id: str) -> str:
    return f"fintrack_active_profile_id:{user_id}"


def current_month_key(profile_id: str) -> str:
    return f"fintrack_current_month:{profile_id}"


class PreferenceStore(ABC):
    """Abstract key/value store for session preferences."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass


class MemoryPreferenceStore(PreferenceStore):
    """Preferences that live as long as the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFilePreferenceStore(PreferenceStore):
    """
    Preferences persisted to a JSON file.

    The file is re-read on every get so two sessions sharing it see each
    other's last write. A corrupt file is treated as empty and replaced on
    the next write.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("preferences_unreadable", path=str(self._path), error=str(e))
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): str(value) for key, value in data.items()}

    def _save(self, values: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(values, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self._path)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._load()
        values[key] = value
        self._save(values)

    def remove(self, key: str) -> None:
        values = self._load()
        if values.pop(key, None) is not None:
            self._save(values)
