"""Orchestrates manifest checks, bundle installs and recorded state."""

from __future__ import annotations

import logging
from pathlib import Path

from services.ota.constants import BASE_URL_KEY, BUNDLE_VERSION_KEY
from services.ota.host import HostRuntime, LoggingHost
from services.ota.installer import BundleInstaller
from services.ota.layout import InstallLayout
from services.ota.manifest import CheckResult, ManifestResolver
from services.ota.models import ConfigurationError, OtaError, UpdateEntry
from services.ota.store import VersionStore


_LOGGER = logging.getLogger(__name__)


class UpdateEngine:
    """Client-side update engine bound to one native-app-version.

    The recorded bundle version only ever changes after the matching bytes
    are fully installed.
    """

    def __init__(
        self,
        store: VersionStore,
        resolver: ManifestResolver,
        installer: BundleInstaller,
        layout: InstallLayout,
        *,
        native_app_version: str,
        host: HostRuntime | None = None,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._installer = installer
        self._layout = layout
        self._native_app_version = native_app_version
        self._host = host or LoggingHost()

    @property
    def layout(self) -> InstallLayout:
        return self._layout

    def get_app_version(self) -> str:
        return self._native_app_version

    def get_bundle_version(self) -> str:
        return self._store.get(self._native_app_version, BUNDLE_VERSION_KEY)

    def get_base_url(self) -> str:
        return self._store.get(self._native_app_version, BASE_URL_KEY)

    def get_bundle_file_path(self) -> Path | None:
        """Return the installed bundle for this native-app-version, if any."""

        return self._layout.existing_bundle_path(self._native_app_version)

    def get_working_path(self) -> Path:
        return self._layout.working_path(self._native_app_version)

    def set_base_url(self, url: str) -> None:
        self._store.set(self._native_app_version, BASE_URL_KEY, url)
        _LOGGER.debug("OTA base URL set to %s", url)

    def check(self) -> CheckResult:
        """Resolve the manifest, keeping "nothing to do" and "check failed" apart."""

        base_url = self.get_base_url()
        if not base_url:
            raise ConfigurationError("Base URL not set. Call set_base_url first.")
        return self._resolver.resolve(base_url, self._native_app_version, self.get_bundle_version())

    def check_for_updates(self) -> UpdateEntry | None:
        """Return the available update entry or ``None``.

        Raises :class:`ConfigurationError` when no base URL is configured;
        every other failure resolves to ``None``.
        """

        result = self.check()
        if result.is_err():
            _LOGGER.info("Update check unavailable: %s", result.error.reason)
        return result.value_or_none()

    def download_bundle(self, url: str, version: str) -> bool:
        """Install the payload at ``url`` and record ``version`` on success.

        Raises :class:`~services.ota.models.HttpError` or
        :class:`~services.ota.models.DownloadError` on failure, in which case
        the recorded version is left unchanged.
        """

        version_dir = self._layout.version_dir(self._native_app_version)
        _LOGGER.info("Downloading bundle %s from %s", version, url)

        def _record_version() -> None:
            self._store.set(self._native_app_version, BUNDLE_VERSION_KEY, version)

        installed = self._installer.install(
            url, version_dir, self._layout.bundle_name, on_installed=_record_version
        )
        _LOGGER.info(
            "Bundle %s installed for native app version %s", version, self._native_app_version
        )
        return installed

    def sync(self) -> None:
        """Check and automatically install mandatory updates; never raises."""

        try:
            entry = self.check_for_updates()
            if entry is None:
                _LOGGER.debug("Sync found no update to apply")
                return
            if not entry.is_mandatory:
                _LOGGER.info("Optional bundle %s available; leaving it to the host", entry.version)
                return
            self.download_bundle(entry.url, entry.version)
        except OtaError as exc:
            _LOGGER.warning("Automatic sync failed: %s", exc)
        except Exception:
            _LOGGER.exception("Unexpected error during automatic sync")

    def reload_bundle(self) -> None:
        """Ask the host to restart onto the installed bundle.

        Must be called from the host's primary thread.
        """

        bundle_path = self.get_bundle_file_path()
        if bundle_path is None:
            _LOGGER.error(
                "No OTA bundle installed at %s", self._layout.bundle_path(self._native_app_version)
            )
        self._host.reload(bundle_path)


__all__ = ["UpdateEngine"]
