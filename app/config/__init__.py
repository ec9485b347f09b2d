"""OTA configuration loaded from JSON resources."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from importlib import resources
from math import isfinite
from pathlib import Path
from typing import Any, Mapping

_CONFIG_RESOURCE = "ota.json"
_OTA_CONFIG_CACHE: OtaConfig | None = None

STORAGE_ROOT_ENV = "OTA_STORAGE_ROOT"
SUPPORTED_PLATFORMS = ("android", "ios")

_DEFAULT_STORAGE_ROOT = "~/.overtheair"
_DEFAULT_PLATFORM = "android"
_DEFAULT_CHECK_TIMEOUT = 10.0
_DEFAULT_DOWNLOAD_TIMEOUT = 30.0
_DEFAULT_STATE_FILE = "ota-state.json"
_DEFAULT_OUTPUT_DIR = "ota-server-files"
_DEFAULT_ENTRY_FILE = "index.js"
_DEFAULT_BUNDLER_COMMAND = ("npx", "react-native", "bundle")


@dataclass(frozen=True)
class ClientConfig:
    """Settings for the on-device update engine."""

    storage_root: Path
    platform: str
    check_timeout_seconds: float
    download_timeout_seconds: float
    state_file: str

    @property
    def state_path(self) -> Path:
        return self.storage_root / self.state_file


@dataclass(frozen=True)
class PackagingConfig:
    """Settings for the build-time packaging command."""

    output_dir: str
    entry_file: str
    bundler_command: tuple[str, ...]


@dataclass(frozen=True)
class OtaConfig:
    client: ClientConfig
    packaging: PackagingConfig


def get_ota_config() -> OtaConfig:
    """Return the cached OTA configuration."""

    global _OTA_CONFIG_CACHE
    if _OTA_CONFIG_CACHE is None:
        _OTA_CONFIG_CACHE = load_ota_config()
    return _OTA_CONFIG_CACHE


def reset_ota_config_cache() -> None:
    global _OTA_CONFIG_CACHE
    _OTA_CONFIG_CACHE = None


def load_ota_config(path: str | Path | None = None) -> OtaConfig:
    """Load configuration from ``path`` or the bundled JSON resource."""

    data = _read_config_data(path)
    client = _parse_client_section(data.get("client"))
    packaging = _parse_packaging_section(data.get("packaging"))
    return OtaConfig(client=client, packaging=packaging)


def _read_config_data(path: str | Path | None) -> Mapping[str, Any]:
    if path is not None:
        return _load_json_from_path(Path(path).expanduser())
    return _load_default_config_data()


def _load_json_from_path(path: Path) -> Mapping[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    return _parse_json(raw)


def _load_default_config_data() -> Mapping[str, Any]:
    try:
        raw = resources.files(__package__).joinpath(_CONFIG_RESOURCE).read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return {}
    return _parse_json(raw)


def _parse_json(raw: str) -> Mapping[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, Mapping):
        return parsed
    return {}


def _parse_client_section(section: Any) -> ClientConfig:
    if not isinstance(section, Mapping):
        section = {}
    storage_root = os.environ.get(STORAGE_ROOT_ENV) or _coerce_text(
        section.get("storage_root"), default=_DEFAULT_STORAGE_ROOT
    )
    platform = _coerce_text(section.get("platform"), default=_DEFAULT_PLATFORM).lower()
    if platform not in SUPPORTED_PLATFORMS:
        platform = _DEFAULT_PLATFORM
    return ClientConfig(
        storage_root=Path(storage_root).expanduser(),
        platform=platform,
        check_timeout_seconds=_coerce_positive_float(
            section.get("check_timeout_seconds"), default=_DEFAULT_CHECK_TIMEOUT
        ),
        download_timeout_seconds=_coerce_positive_float(
            section.get("download_timeout_seconds"), default=_DEFAULT_DOWNLOAD_TIMEOUT
        ),
        state_file=_coerce_text(section.get("state_file"), default=_DEFAULT_STATE_FILE),
    )


def _parse_packaging_section(section: Any) -> PackagingConfig:
    if not isinstance(section, Mapping):
        section = {}
    command = section.get("bundler_command")
    if (
        isinstance(command, list)
        and command
        and all(isinstance(part, str) and part.strip() for part in command)
    ):
        bundler_command = tuple(part.strip() for part in command)
    else:
        bundler_command = _DEFAULT_BUNDLER_COMMAND
    return PackagingConfig(
        output_dir=_coerce_text(section.get("output_dir"), default=_DEFAULT_OUTPUT_DIR),
        entry_file=_coerce_text(section.get("entry_file"), default=_DEFAULT_ENTRY_FILE),
        bundler_command=bundler_command,
    )


def _coerce_text(value: Any, *, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _coerce_positive_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = float(value)
    elif isinstance(value, str):
        try:
            candidate = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not isfinite(candidate) or candidate <= 0:
        return default
    return candidate


__all__ = [
    "ClientConfig",
    "OtaConfig",
    "PackagingConfig",
    "STORAGE_ROOT_ENV",
    "SUPPORTED_PLATFORMS",
    "get_ota_config",
    "load_ota_config",
    "reset_ota_config_cache",
]
