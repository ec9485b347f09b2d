"""Command line entry point producing OTA server packages."""

from __future__ import annotations

import argparse
import logging
import shutil
from pathlib import Path
from typing import Sequence

from app.config import SUPPORTED_PLATFORMS, OtaConfig, get_ota_config, load_ota_config
from services.bundling.bundler import PackagingError, run_bundler
from services.bundling.manifest_io import asset_manifest_name, load_asset_manifest
from services.bundling.packager import IncrementalPackager, PackageResult, remove_build_leftovers
from shared.logging_config import ensure_app_logging

_LOGGER = logging.getLogger(__name__)

ALL_PLATFORMS = "all"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ota", description=__doc__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    bundle = subparsers.add_parser("bundle", help="Bundle and package OTA updates.")
    bundle.add_argument(
        "platform",
        nargs="?",
        default=ALL_PLATFORMS,
        choices=(*SUPPORTED_PLATFORMS, ALL_PLATFORMS),
        help="Platform to package (default: all).",
    )
    bundle.add_argument(
        "--incremental",
        action="store_true",
        help="Skip assets unchanged since the previous manifest and save a new one.",
    )
    bundle.add_argument(
        "--base-manifest",
        type=Path,
        default=None,
        help="Asset manifest to diff against (implies --incremental).",
    )
    bundle.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to an OTA configuration JSON file.",
    )
    return parser.parse_args(argv)


def selected_platforms(choice: str) -> tuple[str, ...]:
    if choice == ALL_PLATFORMS:
        return SUPPORTED_PLATFORMS
    return (choice,)


def prepare_output_dir(output_dir: Path) -> Path:
    if output_dir.exists():
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True)
    return output_dir


def build_platform(
    config: OtaConfig,
    platform: str,
    output_dir: Path,
    *,
    incremental: bool,
    base_manifest_path: Path | None,
    working_dir: Path,
) -> PackageResult:
    """Bundle, diff and zip one platform."""

    _LOGGER.info("Building OTA package for %s", platform.upper())
    run_bundler(config.packaging, platform, output_dir)

    manifest_path: Path | None = None
    base_manifest = None
    if incremental:
        manifest_path = working_dir / asset_manifest_name(platform)
        base_path = base_manifest_path or manifest_path
        base_manifest = load_asset_manifest(base_path)

    result = IncrementalPackager(output_dir).package(
        platform, base_manifest=base_manifest, manifest_path=manifest_path
    )
    remove_build_leftovers(output_dir)
    return result


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    ensure_app_logging(console=True)

    config = load_ota_config(args.config) if args.config is not None else get_ota_config()
    working_dir = Path.cwd()
    output_dir = prepare_output_dir(working_dir / config.packaging.output_dir)
    incremental = args.incremental or args.base_manifest is not None

    results: list[PackageResult] = []
    platforms = selected_platforms(args.platform)
    for platform in platforms:
        try:
            result = build_platform(
                config,
                platform,
                output_dir,
                incremental=incremental,
                base_manifest_path=args.base_manifest,
                working_dir=working_dir,
            )
        except PackagingError as exc:
            _LOGGER.error("Skipping %s: %s", platform, exc)
            continue
        results.append(result)
        _LOGGER.info(
            "Success: %s (%s included, %s skipped)",
            result.archive_path.relative_to(working_dir).as_posix(),
            result.included,
            result.skipped,
        )

    if not results:
        _LOGGER.error("No OTA packages were produced")
        return 1
    _LOGGER.info("OTA packages are ready in %s", output_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
