"""Invocation of the external JavaScript bundler and asset discovery."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Callable, Sequence

from app.config import PackagingConfig
from services.ota.constants import bundle_file_name

_LOGGER = logging.getLogger(__name__)

ANDROID_ASSET_PREFIX = "drawable-"
ANDROID_RAW_DIR = "raw"
IOS_ASSET_DIR = "assets"

Runner = Callable[..., object]


class PackagingError(RuntimeError):
    """Raised when a platform package cannot be produced."""

    def __init__(self, platform: str, message: str) -> None:
        super().__init__(message)
        self.platform = platform


class BundlerError(PackagingError):
    """The external bundler failed or produced no bundle file."""


def bundle_command(
    config: PackagingConfig, platform: str, output_dir: Path
) -> list[str]:
    return [
        *config.bundler_command,
        "--platform",
        platform,
        "--dev",
        "false",
        "--entry-file",
        config.entry_file,
        "--bundle-output",
        str(output_dir / bundle_file_name(platform)),
        "--assets-dest",
        str(output_dir),
    ]


def run_bundler(
    config: PackagingConfig,
    platform: str,
    output_dir: Path,
    *,
    runner: Runner = subprocess.run,
) -> Path:
    """Run the bundler for ``platform`` and return the produced bundle path."""

    command = bundle_command(config, platform, output_dir)
    _LOGGER.info("Generating %s bundle: %s", platform, " ".join(command))
    try:
        runner(command, check=True)
    except subprocess.CalledProcessError as exc:
        raise BundlerError(platform, f"Bundling failed for {platform} (exit {exc.returncode})") from exc
    except OSError as exc:
        raise BundlerError(platform, f"Unable to launch bundler for {platform}: {exc}") from exc
    bundle_path = output_dir / bundle_file_name(platform)
    if not bundle_path.is_file():
        raise BundlerError(platform, f"Bundler did not produce {bundle_path.name}")
    return bundle_path


def select_asset_dirs(output_dir: Path, platform: str) -> list[str]:
    """Return the top-level asset directories the platform ships.

    Android emits ``drawable-*`` and ``raw`` resource folders; iOS emits a
    single ``assets`` folder.
    """

    if not output_dir.is_dir():
        return []
    names = sorted(entry.name for entry in output_dir.iterdir() if entry.is_dir())
    if platform == "android":
        return [
            name
            for name in names
            if name.startswith(ANDROID_ASSET_PREFIX) or name == ANDROID_RAW_DIR
        ]
    if platform == "ios":
        return [name for name in names if name == IOS_ASSET_DIR]
    raise PackagingError(platform, f"Unsupported platform: {platform}")


__all__ = [
    "BundlerError",
    "PackagingError",
    "bundle_command",
    "run_bundler",
    "select_asset_dirs",
]
