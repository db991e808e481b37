"""
Key-value persistence for the service log state.

The state lives under two keys: the active snapshot and the trash. Values
are UTF-8 JSON text. Reads fall back to empty state on bad data and writes
never raise; both log the problem instead.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import structlog

STORAGE_KEY = "cars-service-log-state"
TRASH_STORAGE_KEY = "cars-service-log-trash"
DEFAULT_SCHEMA_VERSION = 1

logger = structlog.get_logger(__name__)


class KeyValueStore:
    """Interface for string key-value stores."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """Dict-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileStore(KeyValueStore):
    """One UTF-8 file per key inside a directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def remove(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


def ensure_list(value: Any) -> List[Any]:
    """Return value if it is a list, else an empty list."""
    return value if isinstance(value, list) else []


def empty_state() -> Dict[str, Any]:
    return {
        "schemaVersion": DEFAULT_SCHEMA_VERSION,
        "vehicles": [],
        "serviceEntries": [],
        "serviceIntervals": [],
    }


def _read_json(store: KeyValueStore, key: str) -> Any:
    try:
        raw = store.get(key)
    except (OSError, UnicodeDecodeError) as e:
        logger.error("storage_read_failed", key=key, error=str(e))
        return None
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        logger.error("storage_parse_failed", key=key, error=str(e))
        return None


def _write_json(store: KeyValueStore, key: str, value: Any) -> bool:
    try:
        store.set(key, json.dumps(value, ensure_ascii=False))
    except (OSError, TypeError, ValueError) as e:
        logger.error("storage_write_failed", key=key, error=str(e))
        return False
    return True


def load_state(store: KeyValueStore) -> Dict[str, Any]:
    """Load the active snapshot, coercing malformed fields to empty lists."""
    stored = _read_json(store, STORAGE_KEY)
    if not isinstance(stored, dict):
        if stored is not None:
            logger.warning("storage_state_malformed", key=STORAGE_KEY)
        return empty_state()
    schema_version = stored.get("schemaVersion")
    return {
        "schemaVersion": (
            DEFAULT_SCHEMA_VERSION if schema_version is None else schema_version
        ),
        "vehicles": ensure_list(stored.get("vehicles")),
        "serviceEntries": ensure_list(stored.get("serviceEntries")),
        "serviceIntervals": ensure_list(stored.get("serviceIntervals")),
    }


def persist_state(store: KeyValueStore, snapshot: Dict[str, Any]) -> bool:
    """Write the active snapshot. Returns False (and logs) on failure."""
    return _write_json(store, STORAGE_KEY, snapshot)


def load_trash_state(store: KeyValueStore) -> List[Any]:
    """Load the trash collection; anything but a list becomes empty."""
    return ensure_list(_read_json(store, TRASH_STORAGE_KEY))


def persist_trash_state(store: KeyValueStore, trash: List[Any]) -> bool:
    """Write the trash collection. Returns False (and logs) on failure."""
    return _write_json(store, TRASH_STORAGE_KEY, trash)
