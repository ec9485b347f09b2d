"""Public API for build-time OTA packaging."""

from __future__ import annotations

from services.bundling.bundler import (
    BundlerError,
    PackagingError,
    bundle_command,
    run_bundler,
    select_asset_dirs,
)
from services.bundling.hashing import HASH_ALGORITHM, calculate_sha256, hash_asset_tree
from services.bundling.manifest_io import (
    asset_manifest_name,
    load_asset_manifest,
    save_asset_manifest,
)
from services.bundling.packager import (
    IncrementalPackager,
    PackageResult,
    package_name,
    remove_build_leftovers,
)

__all__ = [
    "BundlerError",
    "HASH_ALGORITHM",
    "IncrementalPackager",
    "PackageResult",
    "PackagingError",
    "asset_manifest_name",
    "bundle_command",
    "calculate_sha256",
    "hash_asset_tree",
    "load_asset_manifest",
    "package_name",
    "remove_build_leftovers",
    "run_bundler",
    "save_asset_manifest",
    "select_asset_dirs",
]
