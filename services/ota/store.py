"""Persistent per-native-app-version key/value state."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol

from services.ota.constants import (
    BASE_URL_KEY,
    BUNDLE_VERSION_KEY,
    PERSISTED_BASE_URL_KEY,
    PERSISTED_BUNDLE_VERSION_PREFIX,
    STORE_KEYS,
)

_LOGGER = logging.getLogger(__name__)


class VersionStore(Protocol):
    """Key/value state scoped to a native-app-version.

    Absent values read back as ``""``.  Writes are last-writer-wins.
    """

    def get(self, native_app_version: str, key: str) -> str:
        """Return the stored value or ``""``."""

    def set(self, native_app_version: str, key: str, value: str) -> None:
        """Persist ``value`` for ``key``."""


def persisted_key(native_app_version: str, key: str) -> str:
    """Map a logical store key onto its persisted name.

    The base URL is shared by every native-app-version; bundle versions are
    recorded per native-app-version.
    """

    if key == BASE_URL_KEY:
        return PERSISTED_BASE_URL_KEY
    if key == BUNDLE_VERSION_KEY:
        return f"{PERSISTED_BUNDLE_VERSION_PREFIX}{native_app_version}"
    raise KeyError(f"Unsupported store key {key!r}; expected one of {STORE_KEYS}")


class InMemoryVersionStore:
    """Store that lives for the lifetime of the object."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, native_app_version: str, key: str) -> str:
        with self._lock:
            return self._values.get(persisted_key(native_app_version, key), "")

    def set(self, native_app_version: str, key: str, value: str) -> None:
        with self._lock:
            self._values[persisted_key(native_app_version, key)] = value

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._values)


class JsonFileVersionStore:
    """Store persisted as a flat JSON object on disk.

    Each write rewrites the whole file through a temporary sibling and
    ``os.replace`` so a crash never leaves a truncated state file.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, native_app_version: str, key: str) -> str:
        name = persisted_key(native_app_version, key)
        with self._lock:
            value = self._read().get(name, "")
        return value if isinstance(value, str) else ""

    def set(self, native_app_version: str, key: str, value: str) -> None:
        name = persisted_key(native_app_version, key)
        with self._lock:
            values = self._read()
            values[name] = value
            self._write(values)
        _LOGGER.debug("Stored %s in %s", name, self._path)

    def _read(self) -> dict[str, object]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            _LOGGER.warning("Unable to read OTA state from %s: %s", self._path, exc)
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            _LOGGER.warning("Ignoring corrupt OTA state file %s", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, values: dict[str, object]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(values, handle, sort_keys=True, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise


__all__ = [
    "InMemoryVersionStore",
    "JsonFileVersionStore",
    "VersionStore",
    "persisted_key",
]
