from __future__ import annotations

import io
import threading
import time
import zlib
from pathlib import Path
from zipfile import ZipFile

import pytest

from services.ota import BUNDLE_VERSION_KEY, BundleInstaller, DownloadError, HttpError
from services.ota import constants
from services.ota.installer import install_lock, is_archive_url
from tests.unit.ota_test_utils import (
    BrokenResponse,
    GatedResponse,
    build_engine,
    install_fake_urlopen,
    zip_bytes,
)

BUNDLE_NAME = "index.android.bundle"


def _version_dir(tmp_path: Path) -> Path:
    return tmp_path / "ota" / "2.0.0"


def _leftovers(version_dir: Path) -> list[str]:
    return sorted(path.name for path in version_dir.parent.iterdir() if path != version_dir)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://x/y.zip", True),
        ("https://x/Y.ZIP?token=abc", True),
        ("https://x/index.android.bundle", False),
        ("https://x/archive.zip/bundle", False),
    ],
)
def test_payload_kind_is_chosen_by_url_suffix(url: str, expected: bool) -> None:
    assert is_archive_url(url) is expected


def test_single_file_bundle_is_written(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    install_fake_urlopen(monkeypatch, {"https://x/index.android.bundle": b"console.log(7)"})
    version_dir = _version_dir(tmp_path)

    assert BundleInstaller().install("https://x/index.android.bundle", version_dir, BUNDLE_NAME)

    assert (version_dir / BUNDLE_NAME).read_bytes() == b"console.log(7)"
    assert _leftovers(version_dir) == []


def test_archive_replaces_directory_contents(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    version_dir = _version_dir(tmp_path)
    version_dir.mkdir(parents=True)
    (version_dir / BUNDLE_NAME).write_bytes(b"old")
    (version_dir / "stale.png").write_bytes(b"stale")
    payload = zip_bytes({BUNDLE_NAME: b"new", "drawable-mdpi/logo.png": b"png"})
    install_fake_urlopen(monkeypatch, {"https://x/y.zip": payload})

    BundleInstaller().install("https://x/y.zip", version_dir, BUNDLE_NAME)

    assert (version_dir / BUNDLE_NAME).read_bytes() == b"new"
    assert (version_dir / "drawable-mdpi" / "logo.png").read_bytes() == b"png"
    assert not (version_dir / "stale.png").exists()
    assert _leftovers(version_dir) == []


def test_http_error_carries_status_and_keeps_previous_bundle(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    version_dir = _version_dir(tmp_path)
    version_dir.mkdir(parents=True)
    (version_dir / BUNDLE_NAME).write_bytes(b"good")
    install_fake_urlopen(monkeypatch, {"https://x/y.zip": (503, b"busy")})

    with pytest.raises(HttpError) as excinfo:
        BundleInstaller().install("https://x/y.zip", version_dir, BUNDLE_NAME)

    assert excinfo.value.status == 503
    assert (version_dir / BUNDLE_NAME).read_bytes() == b"good"
    assert _leftovers(version_dir) == []


def test_interrupted_download_raises_download_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    version_dir = _version_dir(tmp_path)
    version_dir.mkdir(parents=True)
    (version_dir / BUNDLE_NAME).write_bytes(b"good")
    install_fake_urlopen(monkeypatch, {"https://x/index.android.bundle": BrokenResponse(b"")})

    with pytest.raises(DownloadError) as excinfo:
        BundleInstaller().install("https://x/index.android.bundle", version_dir, BUNDLE_NAME)

    assert isinstance(excinfo.value.cause, ConnectionResetError)
    assert (version_dir / BUNDLE_NAME).read_bytes() == b"good"
    assert _leftovers(version_dir) == []


def test_connection_failure_raises_download_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    install_fake_urlopen(monkeypatch, {})

    with pytest.raises(DownloadError):
        BundleInstaller().install("https://x/y.zip", _version_dir(tmp_path), BUNDLE_NAME)


def _damaged_zip_bytes() -> bytes:
    content = "".join(f"console.log({index});\n" for index in range(4000)).encode()
    payload = bytearray(zip_bytes({BUNDLE_NAME: content}))
    with ZipFile(io.BytesIO(bytes(payload))) as archive:
        info = archive.getinfo(BUNDLE_NAME)
    data_start = info.header_offset + 30 + len(BUNDLE_NAME.encode())
    middle = data_start + info.compress_size // 2
    for index in range(middle, middle + 10):
        payload[index] ^= 0xFF
    return bytes(payload)


@pytest.mark.parametrize(
    "payload",
    [b"this is not a zip", _damaged_zip_bytes()],
    ids=["not-a-zip", "damaged-deflate-stream"],
)
def test_corrupt_archive_raises_download_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, payload: bytes
) -> None:
    version_dir = _version_dir(tmp_path)
    install_fake_urlopen(monkeypatch, {"https://x/y.zip": payload})

    with pytest.raises(DownloadError):
        BundleInstaller().install("https://x/y.zip", version_dir, BUNDLE_NAME)

    assert not version_dir.exists()
    assert _leftovers(version_dir) == []


@pytest.mark.parametrize(
    "failure",
    [
        zlib.error("invalid distance too far back"),
        RuntimeError("File is encrypted, password required for extraction"),
        NotImplementedError("That compression method is not supported"),
        EOFError("Compressed file ended before the end-of-stream marker was reached"),
    ],
)
def test_extraction_failures_surface_as_download_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, failure: Exception
) -> None:
    def _fail(archive, target_dir):  # type: ignore[no-untyped-def]
        raise failure

    monkeypatch.setattr("services.ota.installer.extract_zip_safely", _fail)
    install_fake_urlopen(monkeypatch, {"https://x/y.zip": zip_bytes({BUNDLE_NAME: b"bundle"})})

    with pytest.raises(DownloadError) as excinfo:
        BundleInstaller().install("https://x/y.zip", _version_dir(tmp_path), BUNDLE_NAME)

    assert excinfo.value.cause is failure


def test_archive_limit_error_is_not_rewrapped(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(constants, "MAX_ARCHIVE_ENTRIES", 1)
    payload = zip_bytes({BUNDLE_NAME: b"bundle", "raw/ding.mp3": b"mp3"})
    install_fake_urlopen(monkeypatch, {"https://x/y.zip": payload})

    with pytest.raises(DownloadError, match="too many entries"):
        BundleInstaller().install("https://x/y.zip", _version_dir(tmp_path), BUNDLE_NAME)


def test_large_asset_tree_installs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    entries = {BUNDLE_NAME: b"bundle"}
    for density in ("mdpi", "hdpi", "xhdpi", "xxhdpi", "xxxhdpi"):
        entries[f"drawable-{density}/"] = b""
        for index in range(500):
            entries[f"drawable-{density}/image_{index}.png"] = b"png"
    version_dir = _version_dir(tmp_path)
    install_fake_urlopen(monkeypatch, {"https://x/y.zip": zip_bytes(entries)})

    assert BundleInstaller().install("https://x/y.zip", version_dir, BUNDLE_NAME)

    assert (version_dir / "drawable-xxxhdpi" / "image_499.png").read_bytes() == b"png"


def test_archive_with_traversal_entry_still_installs(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    version_dir = _version_dir(tmp_path)
    payload = zip_bytes({"../../evil": b"owned", BUNDLE_NAME: b"bundle"})
    install_fake_urlopen(monkeypatch, {"https://x/y.zip": payload})

    assert BundleInstaller().install("https://x/y.zip", version_dir, BUNDLE_NAME)

    assert (version_dir / BUNDLE_NAME).read_bytes() == b"bundle"
    assert not any(path.name == "evil" for path in tmp_path.rglob("*"))


def test_install_lock_is_shared_per_directory(tmp_path: Path) -> None:
    first = install_lock(tmp_path / "ota" / "2.0.0")
    again = install_lock(tmp_path / "ota" / "2.0.0")
    other = install_lock(tmp_path / "ota" / "3.0.0")

    assert first is again
    assert first is not other


def test_concurrent_downloads_end_with_last_install(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    engine, store = build_engine(tmp_path)
    gate = threading.Event()
    slow = GatedResponse(b"first", gate)
    requested = install_fake_urlopen(
        monkeypatch,
        {"https://x/first.bundle": slow, "https://x/second.bundle": b"second"},
    )
    first = threading.Thread(target=engine.download_bundle, args=("https://x/first.bundle", "7"))
    second = threading.Thread(target=engine.download_bundle, args=("https://x/second.bundle", "8"))

    first.start()
    assert slow.started.wait(timeout=5)
    second.start()
    time.sleep(0.1)
    assert requested == ["https://x/first.bundle"]

    gate.set()
    first.join(timeout=5)
    second.join(timeout=5)

    bundle_path = engine.get_bundle_file_path()
    assert bundle_path is not None
    assert bundle_path.read_bytes() == b"second"
    assert store.get("2.0.0", BUNDLE_VERSION_KEY) == "8"
    assert _leftovers(bundle_path.parent) == []
