"""Reading and writing asset manifests on disk."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Mapping

_LOGGER = logging.getLogger(__name__)

MANIFEST_FILE_TEMPLATE = "ota-assets-manifest.{platform}.json"


def asset_manifest_name(platform: str) -> str:
    return MANIFEST_FILE_TEMPLATE.format(platform=platform)


def load_asset_manifest(path: Path) -> dict[str, str] | None:
    """Return the manifest stored at ``path`` or ``None`` when unusable.

    A missing or malformed base manifest only costs bandwidth: every asset is
    packaged again.
    """

    try:
        raw = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        _LOGGER.info("No base asset manifest at %s; packaging all assets", path)
        return None
    except OSError as exc:
        _LOGGER.error("Unable to read base asset manifest %s: %s", path, exc)
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        _LOGGER.error("Ignoring malformed base asset manifest %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        _LOGGER.error("Ignoring base asset manifest %s: expected a JSON object", path)
        return None
    return {str(key): str(value) for key, value in data.items() if isinstance(value, str)}


def save_asset_manifest(path: Path, manifest: Mapping[str, str]) -> Path:
    """Atomically write ``manifest`` with sorted keys."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(dict(manifest), handle, sort_keys=True, indent=2)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    _LOGGER.debug("Wrote asset manifest with %s entries to %s", len(manifest), path)
    return path


__all__ = [
    "MANIFEST_FILE_TEMPLATE",
    "asset_manifest_name",
    "load_asset_manifest",
    "save_asset_manifest",
]
