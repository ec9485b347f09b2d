"""Constants shared across the OTA client modules."""

from __future__ import annotations

MANIFEST_FILE = "manifest.json"
OTA_DIR = "ota"
BUNDLE_FILE_TEMPLATE = "index.{platform}.bundle"
ARCHIVE_EXTENSIONS = (".zip",)

BASE_URL_KEY = "baseURL"
BUNDLE_VERSION_KEY = "bundleVersion"
STORE_KEYS = (BASE_URL_KEY, BUNDLE_VERSION_KEY)

PERSISTED_BASE_URL_KEY = "OverTheAirBaseURL"
PERSISTED_BUNDLE_VERSION_PREFIX = "CurrentBundleVersion_"

CHECK_TIMEOUT_SECONDS = 10.0
DOWNLOAD_TIMEOUT_SECONDS = 30.0

STAGING_PREFIX_TEMPLATE = ".{name}.staging-"
PREVIOUS_PREFIX_TEMPLATE = ".{name}.previous-"
DOWNLOAD_FILE_NAME = ".payload.download"

MAX_ARCHIVE_TOTAL_BYTES = 500 * 1024 * 1024  # 500 MiB
MAX_ARCHIVE_FILE_SIZE = 250 * 1024 * 1024  # 250 MiB per file
MAX_ARCHIVE_ENTRIES = 20_000
MAX_COMPRESSION_RATIO = 100  # Uncompressed vs compressed bytes


def bundle_file_name(platform: str) -> str:
    return BUNDLE_FILE_TEMPLATE.format(platform=platform)
