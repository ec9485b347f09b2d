"""Incremental packaging of bundler output into a deployable archive."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping
from zipfile import ZIP_DEFLATED, ZipFile

from services.bundling.bundler import PackagingError, select_asset_dirs
from services.bundling.hashing import hash_asset_tree
from services.bundling.manifest_io import save_asset_manifest
from services.ota.constants import bundle_file_name

_LOGGER = logging.getLogger(__name__)

PACKAGE_SUFFIX = "-package.zip"


@dataclass(frozen=True)
class PackageResult:
    """Outcome of packaging one platform."""

    platform: str
    archive_path: Path
    manifest_path: Path | None
    included: int
    skipped: int
    manifest: Mapping[str, str]


def package_name(platform: str) -> str:
    return f"{platform}{PACKAGE_SUFFIX}"


def unchanged_assets(
    current: Mapping[str, str], base: Mapping[str, str] | None
) -> list[str]:
    """Return the paths whose hash matches ``base`` exactly."""

    if not base:
        return []
    return [path for path, digest in current.items() if base.get(path) == digest]


def prune_empty_dirs(root: Path, directories: Iterable[str]) -> int:
    """Remove directories under ``root`` left empty, deepest first."""

    removed = 0
    for name in directories:
        top = root / name
        if not top.is_dir():
            continue
        for current, _dirs, _files in os.walk(top, topdown=False):
            path = Path(current)
            if not any(path.iterdir()):
                path.rmdir()
                removed += 1
    return removed


def remove_build_leftovers(output_dir: Path) -> None:
    """Delete everything in ``output_dir`` except finished package archives."""

    for entry in output_dir.iterdir():
        if entry.name.endswith(PACKAGE_SUFFIX):
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


class IncrementalPackager:
    """Diff bundler output against a base manifest and zip what changed."""

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = Path(output_dir)

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def package(
        self,
        platform: str,
        *,
        base_manifest: Mapping[str, str] | None = None,
        manifest_path: Path | None = None,
        asset_dirs: Iterable[str] | None = None,
    ) -> PackageResult:
        """Package ``platform``'s bundle plus every new or changed asset.

        Assets whose (path, hash) pair appears in ``base_manifest`` are
        removed from the output tree and left out of the archive.  The
        unfiltered manifest is written to ``manifest_path`` for the next run.
        """

        bundle_name = bundle_file_name(platform)
        bundle_path = self._output_dir / bundle_name
        if not bundle_path.is_file():
            raise PackagingError(platform, f"Bundle file missing: {bundle_path}")

        directories = (
            list(asset_dirs) if asset_dirs is not None else select_asset_dirs(self._output_dir, platform)
        )
        current = hash_asset_tree(self._output_dir, directories)

        skipped = unchanged_assets(current, base_manifest)
        for relative in skipped:
            (self._output_dir / relative).unlink()
        prune_empty_dirs(self._output_dir, directories)
        included = len(current) - len(skipped)

        if manifest_path is not None:
            save_asset_manifest(manifest_path, current)
            _LOGGER.info("Saved %s asset manifest to %s", platform, manifest_path)

        archive_path = self._output_dir / package_name(platform)
        self._write_archive(archive_path, bundle_name, directories)

        _LOGGER.info(
            "Packaged %s: %s assets included, %s unchanged assets skipped -> %s",
            platform,
            included,
            len(skipped),
            archive_path,
        )
        return PackageResult(
            platform=platform,
            archive_path=archive_path,
            manifest_path=manifest_path,
            included=included,
            skipped=len(skipped),
            manifest=current,
        )

    def _write_archive(self, archive_path: Path, bundle_name: str, directories: Iterable[str]) -> None:
        with ZipFile(archive_path, "w", compression=ZIP_DEFLATED) as archive:
            archive.write(self._output_dir / bundle_name, bundle_name)
            for name in directories:
                top = self._output_dir / name
                if not top.is_dir():
                    continue
                for path in sorted(top.rglob("*")):
                    if path.is_file():
                        archive.write(path, path.relative_to(self._output_dir).as_posix())


__all__ = [
    "IncrementalPackager",
    "PACKAGE_SUFFIX",
    "PackageResult",
    "package_name",
    "prune_empty_dirs",
    "remove_build_leftovers",
    "unchanged_assets",
]
