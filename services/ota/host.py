"""Host runtime collaborators that restart onto the installed bundle."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Protocol, Sequence

_LOGGER = logging.getLogger(__name__)


class HostRuntime(Protocol):
    """Restart the host application onto the installed bundle.

    Implementations are invoked from the host's primary thread.
    """

    def reload(self, bundle_path: Path | None) -> None:
        """Restart using ``bundle_path`` (``None`` means the shipped bundle)."""


class LoggingHost:
    """Host used when nothing can be restarted; records the request."""

    def __init__(self) -> None:
        self.requests: list[Path | None] = []

    def reload(self, bundle_path: Path | None) -> None:
        self.requests.append(bundle_path)
        _LOGGER.info("Reload requested for bundle %s", bundle_path or "<shipped bundle>")


class ProcessRestartHost:
    """Replace the current process with a fresh copy of itself."""

    def __init__(self, argv: Sequence[str] | None = None) -> None:
        self._argv = list(argv) if argv is not None else [sys.executable, *sys.argv]

    def reload(self, bundle_path: Path | None) -> None:  # pragma: no cover - replaces the process
        _LOGGER.info("Restarting %s to apply bundle %s", self._argv[0], bundle_path)
        logging.shutdown()
        try:
            os.execv(self._argv[0], self._argv)
        except OSError as exc:
            raise RuntimeError(f"Failed to restart host process: {exc}") from exc


__all__ = ["HostRuntime", "LoggingHost", "ProcessRestartHost"]
