"""Public API for the over-the-air bundle client."""

from __future__ import annotations

from services.ota.builder import build_update_engine, run_in_background, schedule_startup_sync
from services.ota.constants import (
    BASE_URL_KEY,
    BUNDLE_VERSION_KEY,
    MANIFEST_FILE,
    MAX_ARCHIVE_ENTRIES,
    MAX_ARCHIVE_FILE_SIZE,
    MAX_ARCHIVE_TOTAL_BYTES,
    MAX_COMPRESSION_RATIO,
    PERSISTED_BASE_URL_KEY,
    PERSISTED_BUNDLE_VERSION_PREFIX,
    bundle_file_name,
)
from services.ota.engine import UpdateEngine
from services.ota.host import HostRuntime, LoggingHost, ProcessRestartHost
from services.ota.installer import BundleInstaller
from services.ota.layout import InstallLayout
from services.ota.manifest import ManifestResolver, manifest_url, parse_manifest
from services.ota.models import (
    CheckFailure,
    ConfigurationError,
    DownloadError,
    HttpError,
    OtaError,
    ParseError,
    SecurityViolation,
    UpdateEntry,
)
from services.ota.store import InMemoryVersionStore, JsonFileVersionStore, VersionStore

__all__ = [
    "BASE_URL_KEY",
    "BUNDLE_VERSION_KEY",
    "MANIFEST_FILE",
    "MAX_ARCHIVE_ENTRIES",
    "MAX_ARCHIVE_FILE_SIZE",
    "MAX_ARCHIVE_TOTAL_BYTES",
    "MAX_COMPRESSION_RATIO",
    "PERSISTED_BASE_URL_KEY",
    "PERSISTED_BUNDLE_VERSION_PREFIX",
    "BundleInstaller",
    "CheckFailure",
    "ConfigurationError",
    "DownloadError",
    "HostRuntime",
    "HttpError",
    "InMemoryVersionStore",
    "InstallLayout",
    "JsonFileVersionStore",
    "LoggingHost",
    "ManifestResolver",
    "OtaError",
    "ParseError",
    "ProcessRestartHost",
    "SecurityViolation",
    "UpdateEngine",
    "UpdateEntry",
    "VersionStore",
    "build_update_engine",
    "bundle_file_name",
    "manifest_url",
    "parse_manifest",
    "run_in_background",
    "schedule_startup_sync",
]
