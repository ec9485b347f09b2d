from __future__ import annotations

"""Native application version helpers.

The native-app-version keys every piece of installed OTA state, so it must be
the version of the store-installed shell, never the bundle version.
"""

from functools import lru_cache
import os
from importlib import resources

NATIVE_VERSION_ENV = "OTA_NATIVE_APP_VERSION"
UNKNOWN_VERSION = "unknown"


def _version_from_env() -> str | None:
    env_version = os.environ.get(NATIVE_VERSION_ENV)
    if not env_version:
        return None
    return _normalize(env_version)


def _read_version_file() -> str | None:
    try:
        text = resources.files(__package__).joinpath("VERSION").read_text(encoding="utf-8")
    except (FileNotFoundError, ModuleNotFoundError, NotADirectoryError):
        return None
    version = text.strip()
    return version or None


def _normalize(raw_version: str) -> str:
    version = raw_version.strip()
    if version.startswith("v"):
        version = version[1:]
    return version


@lru_cache(maxsize=1)
def get_native_app_version() -> str:
    """Return the version of the running native application shell.

    Precedence: the ``OTA_NATIVE_APP_VERSION`` environment variable, then a
    ``VERSION`` file packaged next to this module, then ``"unknown"``.
    """

    for resolver in (_version_from_env, _read_version_file):
        version = resolver()
        if version:
            return version
    return UNKNOWN_VERSION


__all__ = ["NATIVE_VERSION_ENV", "UNKNOWN_VERSION", "get_native_app_version"]
