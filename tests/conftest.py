from __future__ import annotations

import pytest

from app.config import STORAGE_ROOT_ENV, reset_ota_config_cache
from app.version import NATIVE_VERSION_ENV, get_native_app_version
from shared import logging_config


@pytest.fixture(autouse=True)
def _isolated_ota_environment(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Keep log files, device state and cached settings out of the real user profile."""

    monkeypatch.setenv("OTA_LOG_DIR", str(tmp_path_factory.mktemp("logs")))
    monkeypatch.delenv("OTA_LOG_FILE", raising=False)
    monkeypatch.setenv(STORAGE_ROOT_ENV, str(tmp_path_factory.mktemp("device")))
    monkeypatch.delenv(NATIVE_VERSION_ENV, raising=False)
    reset_ota_config_cache()
    get_native_app_version.cache_clear()  # type: ignore[attr-defined]

    yield

    logging_config._reset_for_tests()
    reset_ota_config_cache()
    get_native_app_version.cache_clear()  # type: ignore[attr-defined]
