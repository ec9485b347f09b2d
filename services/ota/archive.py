"""Safe ZIP extraction for bundle archives."""

from __future__ import annotations

import logging
import re
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path

from services.ota import constants
from services.ota.models import DownloadError, SecurityViolation


_LOGGER = logging.getLogger(__name__)

_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:")


@dataclass(frozen=True)
class ExtractionReport:
    """Summary of one archive extraction."""

    files: int
    directories: int
    total_bytes: int
    skipped: tuple[str, ...] = ()


def _is_root_entry(name: str) -> bool:
    """``./`` style entries that name the extraction root itself."""

    parts = name.replace("\\", "/").split("/")
    return all(part in {"", "."} for part in parts)


def resolve_member_path(root: Path, name: str) -> Path:
    """Return where archive entry ``name`` lands below the resolved ``root``.

    Both separators are honoured regardless of the host, and the result is
    canonicalised before the containment check.  Raises
    :class:`SecurityViolation` for absolute, drive-qualified or escaping
    names.
    """

    normalised = name.replace("\\", "/")
    if normalised.startswith("/") or _DRIVE_PATTERN.match(normalised):
        raise SecurityViolation(name)
    components = [part for part in normalised.split("/") if part and part != "."]
    if not components:
        raise SecurityViolation(name)
    candidate = root.joinpath(*components).resolve()
    try:
        candidate.relative_to(root)
    except ValueError:
        raise SecurityViolation(name) from None
    if candidate == root:
        raise SecurityViolation(name)
    return candidate


def extract_zip_safely(archive: zipfile.ZipFile, target_dir: Path) -> ExtractionReport:
    """Extract ``archive`` below ``target_dir``.

    Entries escaping ``target_dir`` are skipped and logged; the remaining
    entries still extract.  Oversized or suspiciously compressed archives
    raise :class:`DownloadError`.
    """

    root = target_dir.resolve()
    total_bytes = 0
    processed_entries = 0
    files = 0
    directories = 0
    skipped: list[str] = []
    for member in archive.infolist():
        name = member.filename
        if not name:
            continue
        processed_entries += 1
        if _is_root_entry(name):
            _LOGGER.debug("Ignoring archive root entry %r", name)
            continue
        if processed_entries > constants.MAX_ARCHIVE_ENTRIES:
            _LOGGER.error(
                "Archive entry count %s exceeded limit %s",
                processed_entries,
                constants.MAX_ARCHIVE_ENTRIES,
            )
            raise DownloadError("Bundle archive contained too many entries")
        try:
            destination = resolve_member_path(root, name)
        except SecurityViolation as violation:
            _LOGGER.warning("Skipping unsafe archive entry: %s", violation)
            skipped.append(name)
            continue
        if member.is_dir() or name.endswith("\\"):
            destination.mkdir(parents=True, exist_ok=True)
            directories += 1
            continue
        if member.file_size > constants.MAX_ARCHIVE_FILE_SIZE:
            _LOGGER.error(
                "Archive member %s exceeded file size limit (%s > %s)",
                name,
                member.file_size,
                constants.MAX_ARCHIVE_FILE_SIZE,
            )
            raise DownloadError("Bundle archive contained an oversized file")
        if member.compress_size == 0 and member.file_size > 0:
            _LOGGER.error("Archive member %s reported zero compression size", name)
            raise DownloadError("Bundle archive contained a suspiciously compressed file")
        if (
            member.compress_size > 0
            and member.file_size > member.compress_size * constants.MAX_COMPRESSION_RATIO
        ):
            _LOGGER.error(
                "Archive member %s exceeded compression ratio limit (%s > %s)",
                name,
                member.file_size,
                member.compress_size * constants.MAX_COMPRESSION_RATIO,
            )
            raise DownloadError("Bundle archive exceeded safe compression ratio")
        total_bytes += member.file_size
        if total_bytes > constants.MAX_ARCHIVE_TOTAL_BYTES:
            _LOGGER.error(
                "Archive expanded to %s bytes which exceeds limit %s",
                total_bytes,
                constants.MAX_ARCHIVE_TOTAL_BYTES,
            )
            raise DownloadError("Bundle archive expanded beyond safe limits")
        destination.parent.mkdir(parents=True, exist_ok=True)
        with archive.open(member) as source, destination.open("wb") as target:
            shutil.copyfileobj(source, target)
        files += 1
        _LOGGER.debug("Extracted archive member %s to %s", name, destination)

    _LOGGER.info(
        "Extracted %s files (%s bytes), skipped %s unsafe entries",
        files,
        total_bytes,
        len(skipped),
    )
    return ExtractionReport(
        files=files,
        directories=directories,
        total_bytes=total_bytes,
        skipped=tuple(skipped),
    )


__all__ = ["ExtractionReport", "extract_zip_safely", "resolve_member_path"]
