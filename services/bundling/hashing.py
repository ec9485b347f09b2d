"""Content hashing for build output asset trees."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Iterable

_LOGGER = logging.getLogger(__name__)

# Fixed for the lifetime of the system; manifests from different algorithms
# cannot be diffed against each other.
HASH_ALGORITHM = "sha256"


def calculate_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as source:
        for chunk in iter(lambda: source.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _iter_files(directory: Path) -> Iterable[Path]:
    for path in directory.rglob("*"):
        if path.is_file():
            yield path


def hash_asset_tree(root: Path, directories: Iterable[str] | None = None) -> dict[str, str]:
    """Map every regular file below ``root`` to its SHA-256 hex digest.

    Keys are POSIX paths relative to ``root`` and the mapping is ordered by
    key, so identical trees always produce identical manifests.  When
    ``directories`` is given only those top-level directories are walked.
    """

    root = Path(root)
    if directories is None:
        candidates = list(_iter_files(root))
    else:
        candidates = []
        for name in directories:
            directory = root / name
            if directory.is_dir():
                candidates.extend(_iter_files(directory))
            else:
                _LOGGER.debug("Asset directory %s not present under %s", name, root)

    relative = sorted((path.relative_to(root).as_posix(), path) for path in candidates)
    manifest = {key: calculate_sha256(path) for key, path in relative}
    _LOGGER.debug("Hashed %s assets under %s", len(manifest), root)
    return manifest


__all__ = ["HASH_ALGORITHM", "calculate_sha256", "hash_asset_tree"]
