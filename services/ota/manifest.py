"""Remote manifest fetching and update resolution."""

from __future__ import annotations

import json
import logging
from http.client import HTTPException
from typing import Any, Mapping

from services.ota.constants import CHECK_TIMEOUT_SECONDS, MANIFEST_FILE
from services.ota.models import CheckFailure, ParseError, UpdateEntry
from services.ota.transport import http_get
from shared.result import Result


_LOGGER = logging.getLogger(__name__)

CheckResult = Result[UpdateEntry | None, CheckFailure]


def manifest_url(base_url: str) -> str:
    """Return ``<base_url>/manifest.json`` joined with exactly one slash."""

    return f"{base_url.rstrip('/')}/{MANIFEST_FILE}"


def parse_manifest(text: str | bytes) -> dict[str, Any]:
    """Parse manifest JSON into ``{platform: {native_version: raw_entry}}``.

    Only the root object is validated here; platforms and entries are
    validated on demand so that a malformed value for another platform or
    release does not poison the one the caller needs.
    """

    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParseError(f"Manifest is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError("Manifest root must be a JSON object")
    return {str(platform): releases for platform, releases in data.items()}


def select_entry(
    manifest: Mapping[str, Any], platform: str, native_app_version: str
) -> UpdateEntry | None:
    """Return the entry for exactly ``platform`` and ``native_app_version``."""

    releases = manifest.get(platform)
    if releases is None:
        _LOGGER.debug("Manifest has no entries for platform %s", platform)
        return None
    if not isinstance(releases, Mapping):
        raise ParseError(f"Manifest platform {platform!r} must map to an object")
    raw_entry = releases.get(native_app_version)
    if raw_entry is None:
        _LOGGER.debug(
            "Manifest has no %s entry for native app version %s", platform, native_app_version
        )
        return None
    if not isinstance(raw_entry, Mapping):
        raise ParseError(
            f"Manifest entry for {platform}/{native_app_version} must be an object"
        )
    return UpdateEntry.from_mapping(raw_entry)


class ManifestResolver:
    """Decide whether the remote manifest offers a different bundle."""

    def __init__(self, platform: str, *, timeout: float = CHECK_TIMEOUT_SECONDS) -> None:
        self._platform = platform
        self._timeout = timeout

    @property
    def platform(self) -> str:
        return self._platform

    def resolve(
        self, base_url: str, native_app_version: str, installed_version: str
    ) -> CheckResult:
        """Fetch the manifest and compare its entry with ``installed_version``.

        ``Result.ok(entry)`` means a different bundle is available,
        ``Result.ok(None)`` means there is nothing to install and
        ``Result.err(CheckFailure)`` means the check itself did not complete.
        Nothing is raised.
        """

        url = manifest_url(base_url)
        try:
            with http_get(url, timeout=self._timeout) as response:
                if not response.ok:
                    _LOGGER.info("Manifest request %s returned HTTP %s", url, response.status)
                    return Result.err(
                        CheckFailure(f"HTTP {response.status}", status=response.status)
                    )
                payload = response.body.read()
        except (OSError, HTTPException, ValueError) as exc:
            _LOGGER.warning("Failed to fetch manifest %s: %s", url, exc)
            return Result.err(CheckFailure(f"Network error: {exc}"))

        try:
            manifest = parse_manifest(payload)
            entry = select_entry(manifest, self._platform, native_app_version)
        except ParseError as exc:
            _LOGGER.warning("Ignoring malformed manifest %s: %s", url, exc)
            return Result.err(CheckFailure(f"Malformed manifest: {exc}"))

        if entry is None:
            return Result.ok(None)
        if entry.version == installed_version:
            _LOGGER.debug("Installed bundle %s is current", installed_version or "<none>")
            return Result.ok(None)

        _LOGGER.info(
            "Bundle update available for %s: %s -> %s (mandatory=%s)",
            native_app_version,
            installed_version or "<none>",
            entry.version,
            entry.is_mandatory,
        )
        return Result.ok(entry)


__all__ = [
    "CheckResult",
    "ManifestResolver",
    "manifest_url",
    "parse_manifest",
    "select_entry",
]
