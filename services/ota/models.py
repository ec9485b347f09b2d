"""Data models and error types for the OTA client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class UpdateEntry:
    """One manifest entry: where the bundle lives and which content it is.

    ``version`` is opaque; two entries describe the same bundle exactly when
    the strings are equal.
    """

    url: str
    version: str
    is_mandatory: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UpdateEntry":
        url = data.get("url")
        version = data.get("version")
        if not isinstance(url, str) or not url.strip():
            raise ParseError("Manifest entry is missing a 'url' string")
        if not isinstance(version, (str, int, float)) or isinstance(version, bool):
            raise ParseError("Manifest entry is missing a 'version' value")
        mandatory = data.get("isMandatory", False)
        if not isinstance(mandatory, bool):
            raise ParseError("Manifest entry 'isMandatory' must be a boolean")
        return cls(url=url.strip(), version=str(version), is_mandatory=mandatory)

    def to_mapping(self) -> dict[str, Any]:
        return {"url": self.url, "version": self.version, "isMandatory": self.is_mandatory}


@dataclass(frozen=True)
class CheckFailure:
    """Why an update check could not produce an answer."""

    reason: str
    status: int | None = None


class OtaError(RuntimeError):
    """Base class for OTA client failures."""


class ConfigurationError(OtaError):
    """A prerequisite such as the base URL has not been set up."""


class HttpError(OtaError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"HTTP {status} for {url}")
        self.status = status
        self.url = url


class DownloadError(OtaError):
    """Fetching or writing the payload failed."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ParseError(OtaError):
    """The manifest is not valid JSON or does not follow the schema."""


class SecurityViolation(OtaError):
    """An archive entry would be written outside the install directory."""

    def __init__(self, entry_name: str) -> None:
        super().__init__(f"Archive entry escapes destination: {entry_name!r}")
        self.entry_name = entry_name


__all__ = [
    "CheckFailure",
    "ConfigurationError",
    "DownloadError",
    "HttpError",
    "OtaError",
    "ParseError",
    "SecurityViolation",
    "UpdateEntry",
]
