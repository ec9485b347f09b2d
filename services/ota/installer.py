"""Download bundle payloads and promote them into a version directory."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
import uuid
import zipfile
import zlib
from http.client import HTTPException
from pathlib import Path
from typing import Callable
from urllib.parse import urlsplit

from services.ota import constants
from services.ota.archive import extract_zip_safely
from services.ota.models import DownloadError, HttpError, OtaError
from services.ota.transport import http_get


_LOGGER = logging.getLogger(__name__)

_REGISTRY_LOCK = threading.Lock()
_INSTALL_LOCKS: dict[str, threading.Lock] = {}

# Raised by zipfile for damaged, encrypted or unsupported members.
_EXTRACTION_ERRORS = (
    OSError,
    EOFError,
    zipfile.BadZipFile,
    zlib.error,
    NotImplementedError,
    RuntimeError,
)


def install_lock(version_dir: Path) -> threading.Lock:
    """Return the process-wide lock guarding ``version_dir``."""

    key = os.path.normcase(str(Path(version_dir).resolve()))
    with _REGISTRY_LOCK:
        lock = _INSTALL_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _INSTALL_LOCKS[key] = lock
        return lock


def is_archive_url(url: str) -> bool:
    path = urlsplit(url).path.lower()
    return path.endswith(constants.ARCHIVE_EXTENSIONS)


class BundleInstaller:
    """Replace a version directory with a freshly downloaded payload.

    The payload is written into a hidden sibling staging directory first.
    Only after it is complete is the old directory moved aside and the
    staging directory renamed into place, so a failed download never touches
    the installed bundle.  Installs into the same directory are serialised.
    """

    def __init__(self, *, timeout: float = constants.DOWNLOAD_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout

    def install(
        self,
        url: str,
        version_dir: Path,
        bundle_name: str,
        *,
        on_installed: Callable[[], None] | None = None,
    ) -> bool:
        """Install the payload at ``url``; raise on failure, return ``True`` on success.

        ``on_installed`` runs after promotion while the directory lock is still
        held, so whatever it records matches the files on disk.
        """

        version_dir = Path(version_dir)
        version_dir.parent.mkdir(parents=True, exist_ok=True)
        with install_lock(version_dir):
            staging = Path(
                tempfile.mkdtemp(
                    prefix=constants.STAGING_PREFIX_TEMPLATE.format(name=version_dir.name),
                    dir=version_dir.parent,
                )
            )
            _LOGGER.debug("Staging bundle from %s in %s", url, staging)
            try:
                self._populate(url, staging, bundle_name)
                self._promote(staging, version_dir)
            except BaseException:
                shutil.rmtree(staging, ignore_errors=True)
                raise
            if on_installed is not None:
                on_installed()
        _LOGGER.info("Installed bundle from %s into %s", url, version_dir)
        return True

    def _populate(self, url: str, staging: Path, bundle_name: str) -> None:
        if is_archive_url(url):
            self._install_archive(url, staging)
        else:
            self._install_single_file(url, staging / bundle_name)

    def _install_single_file(self, url: str, destination: Path) -> None:
        try:
            with http_get(url, timeout=self._timeout) as response:
                _raise_for_status(response.status, url)
                with destination.open("wb") as target:
                    shutil.copyfileobj(response.body, target)
        except (OSError, HTTPException) as exc:
            raise DownloadError(f"Failed to download bundle from {url}: {exc}", exc) from exc
        _LOGGER.debug("Wrote %s bytes to %s", destination.stat().st_size, destination)

    def _install_archive(self, url: str, staging: Path) -> None:
        fd, download_name = tempfile.mkstemp(
            prefix=f"{staging.name}{constants.DOWNLOAD_FILE_NAME}-", dir=staging.parent
        )
        download_path = Path(download_name)
        try:
            try:
                with os.fdopen(fd, "wb") as target:
                    with http_get(url, timeout=self._timeout) as response:
                        _raise_for_status(response.status, url)
                        shutil.copyfileobj(response.body, target)
            except (OSError, HTTPException) as exc:
                raise DownloadError(f"Failed to download archive from {url}: {exc}", exc) from exc
            _LOGGER.info("Extracting bundle archive downloaded from %s", url)
            try:
                with zipfile.ZipFile(download_path) as archive:
                    extract_zip_safely(archive, staging)
            except OtaError:
                raise
            except _EXTRACTION_ERRORS as exc:
                raise DownloadError(f"Failed to extract bundle archive: {exc}", exc) from exc
        finally:
            try:
                download_path.unlink()
            except FileNotFoundError:
                pass

    def _promote(self, staging: Path, version_dir: Path) -> None:
        previous: Path | None = None
        try:
            if version_dir.exists():
                previous = version_dir.with_name(
                    f"{constants.PREVIOUS_PREFIX_TEMPLATE.format(name=version_dir.name)}{uuid.uuid4().hex}"
                )
                os.replace(version_dir, previous)
            os.replace(staging, version_dir)
        except OSError as exc:
            if previous is not None and not version_dir.exists():
                os.replace(previous, version_dir)
            raise DownloadError(f"Failed to activate bundle in {version_dir}: {exc}", exc) from exc
        if previous is not None:
            _remove_tree(previous)


def _raise_for_status(status: int, url: str) -> None:
    if not 200 <= status < 300:
        _LOGGER.warning("Bundle request %s returned HTTP %s", url, status)
        raise HttpError(status, url)


def _remove_tree(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except OSError:
        _LOGGER.warning("Unable to remove superseded bundle directory %s", path, exc_info=True)


__all__ = ["BundleInstaller", "install_lock", "is_archive_url"]
