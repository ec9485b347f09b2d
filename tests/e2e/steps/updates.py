from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, then, when

from services.ota import BUNDLE_VERSION_KEY, InMemoryVersionStore, UpdateEngine
from tests.unit.ota_test_utils import build_engine, install_fake_urlopen, manifest_bytes, zip_bytes

BASE_URL = "https://cdn.example/ota"
MANIFEST_URL = f"{BASE_URL}/manifest.json"
BUNDLE_URL = "https://cdn.example/bundles/android.zip"


@dataclass
class UpdateWorld:
    tmp_path: Path
    store: InMemoryVersionStore = field(default_factory=InMemoryVersionStore)
    responses: dict[str, object] = field(default_factory=dict)
    requested: list[str] = field(default_factory=list)
    engine: UpdateEngine | None = None


@pytest.fixture
def update_world(tmp_path: Path) -> UpdateWorld:
    return UpdateWorld(tmp_path=tmp_path)


@given(
    parsers.parse(
        'the server publishes bundle "{version}" for android native version "{native}" as {kind}'
    )
)
def publish_bundle(update_world: UpdateWorld, version: str, native: str, kind: str) -> None:
    manifest = {
        "android": {
            native: {"url": BUNDLE_URL, "version": version, "isMandatory": kind == "mandatory"}
        }
    }
    update_world.responses[MANIFEST_URL] = manifest_bytes(manifest)
    update_world.responses.setdefault(
        BUNDLE_URL, zip_bytes({"index.android.bundle": f"bundle {version}".encode()})
    )


@given(parsers.parse("the bundle download fails with HTTP {status:d}"))
def failing_download(update_world: UpdateWorld, status: int) -> None:
    update_world.responses[BUNDLE_URL] = (status, b"")


@given(parsers.parse('bundle "{version}" is installed for native version "{native}"'))
def installed_bundle(update_world: UpdateWorld, version: str, native: str) -> None:
    engine, _ = build_engine(update_world.tmp_path, native_app_version=native, store=update_world.store)
    engine.get_working_path().write_text(f"bundle {version}", encoding="utf-8")
    update_world.store.set(native, BUNDLE_VERSION_KEY, version)


@when(parsers.parse('the app running native version "{native}" syncs'))
def run_sync(update_world: UpdateWorld, monkeypatch: pytest.MonkeyPatch, native: str) -> None:
    engine, _ = build_engine(update_world.tmp_path, native_app_version=native, store=update_world.store)
    engine.set_base_url(BASE_URL)
    update_world.requested = install_fake_urlopen(monkeypatch, update_world.responses)
    update_world.engine = engine
    engine.sync()


@then(parsers.parse('the recorded bundle version is "{version}"'))
def recorded_version(update_world: UpdateWorld, version: str) -> None:
    assert update_world.engine is not None
    assert update_world.engine.get_bundle_version() == version


@then(parsers.parse('the installed bundle contains "{content}"'))
def installed_content(update_world: UpdateWorld, content: str) -> None:
    assert update_world.engine is not None
    bundle_path = update_world.engine.get_bundle_file_path()
    assert bundle_path is not None
    assert bundle_path.read_text(encoding="utf-8") == content


@then("no bundle is installed")
def nothing_installed(update_world: UpdateWorld) -> None:
    assert update_world.engine is not None
    assert update_world.engine.get_bundle_file_path() is None


@then("only the manifest was requested")
def only_manifest_requested(update_world: UpdateWorld) -> None:
    assert update_world.requested == [MANIFEST_URL]


@then("no bundle version is recorded")
def no_recorded_version(update_world: UpdateWorld) -> None:
    assert update_world.engine is not None
    assert update_world.engine.get_bundle_version() == ""
