"""Filesystem layout of installed OTA bundles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from services.ota.constants import OTA_DIR, bundle_file_name

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallLayout:
    """``<storage_root>/ota/<native_app_version>/index.<platform>.bundle``.

    A version directory belongs to exactly one native-app-version, so a
    bundle built for an older store release is never picked up after the
    store build changes.
    """

    storage_root: Path
    platform: str

    @property
    def ota_root(self) -> Path:
        return self.storage_root / OTA_DIR

    @property
    def bundle_name(self) -> str:
        return bundle_file_name(self.platform)

    def version_dir(self, native_app_version: str) -> Path:
        name = native_app_version.strip()
        if not name or name in {".", ".."} or "/" in name or "\\" in name:
            raise ValueError(f"Unusable native app version for a directory name: {native_app_version!r}")
        return self.ota_root / name

    def bundle_path(self, native_app_version: str) -> Path:
        return self.version_dir(native_app_version) / self.bundle_name

    def existing_bundle_path(self, native_app_version: str) -> Path | None:
        """Return the installed bundle path when the file exists."""

        candidate = self.bundle_path(native_app_version)
        if candidate.is_file():
            return candidate
        return None

    def working_path(self, native_app_version: str) -> Path:
        """Return the bundle path, creating its version directory on demand."""

        directory = self.version_dir(native_app_version)
        if not directory.exists():
            _LOGGER.debug("Creating OTA version directory %s", directory)
            directory.mkdir(parents=True, exist_ok=True)
        return directory / self.bundle_name


__all__ = ["InstallLayout"]
