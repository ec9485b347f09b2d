"""Helpers for constructing the update engine and running it off-thread."""

from __future__ import annotations

import logging
import threading
from typing import Callable, TypeVar

from app.config import ClientConfig, get_ota_config
from app.version import get_native_app_version
from services.ota.engine import UpdateEngine
from services.ota.host import HostRuntime
from services.ota.installer import BundleInstaller
from services.ota.layout import InstallLayout
from services.ota.manifest import ManifestResolver
from services.ota.store import JsonFileVersionStore, VersionStore


_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def build_update_engine(
    config: ClientConfig | None = None,
    *,
    store: VersionStore | None = None,
    host: HostRuntime | None = None,
    native_app_version: str | None = None,
) -> UpdateEngine:
    """Construct an :class:`UpdateEngine` from configuration."""

    config = config or get_ota_config().client
    native_app_version = native_app_version or get_native_app_version()
    store = store or JsonFileVersionStore(config.state_path)
    _LOGGER.debug(
        "Building OTA engine (platform=%s, native=%s, storage=%s)",
        config.platform,
        native_app_version,
        config.storage_root,
    )
    return UpdateEngine(
        store,
        ManifestResolver(config.platform, timeout=config.check_timeout_seconds),
        BundleInstaller(timeout=config.download_timeout_seconds),
        InstallLayout(config.storage_root, config.platform),
        native_app_version=native_app_version,
        host=host,
    )


def _run_guarded(
    operation: Callable[[], T],
    on_result: Callable[[T], None] | None,
    on_error: Callable[[BaseException], None] | None,
) -> None:
    try:
        result = operation()
    except Exception as exc:
        _LOGGER.exception("Background OTA operation failed")
        if on_error is not None:
            on_error(exc)
        return
    if on_result is not None:
        on_result(result)


def run_in_background(
    operation: Callable[[], T],
    *,
    on_result: Callable[[T], None] | None = None,
    on_error: Callable[[BaseException], None] | None = None,
    name: str = "ota-worker",
) -> threading.Thread:
    """Run ``operation`` on a daemon thread and report through the callbacks.

    Callbacks run on the worker thread; hosts marshal them onto their own
    primary thread when they touch UI state.
    """

    thread = threading.Thread(
        target=_run_guarded,
        args=(operation, on_result, on_error),
        name=name,
        daemon=True,
    )
    thread.start()
    return thread


def schedule_startup_sync(
    engine: UpdateEngine | None = None,
    *,
    enabled: bool = True,
    on_complete: Callable[[], None] | None = None,
) -> threading.Thread | None:
    """Kick off :meth:`UpdateEngine.sync` without blocking host start-up."""

    if not enabled:
        _LOGGER.debug("Automatic OTA sync disabled")
        return None

    engine = engine or build_update_engine()

    def _sync_then_notify() -> None:
        try:
            engine.sync()
        finally:
            if on_complete is not None:
                on_complete()

    return run_in_background(_sync_then_notify, name="ota-sync")


__all__ = ["build_update_engine", "run_in_background", "schedule_startup_sync"]
