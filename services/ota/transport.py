"""Thin HTTP GET collaborator used by the resolver and the installer."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, Mapping
from urllib.error import HTTPError
from urllib.request import Request, urlopen

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Status, headers and a readable body stream."""

    url: str
    status: int
    body: BinaryIO
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@contextmanager
def http_get(url: str, *, timeout: float) -> Iterator[HttpResponse]:
    """GET ``url`` and yield the response, whatever its status.

    Non-2xx answers are yielded rather than raised so callers decide how to
    treat them.  Connection failures propagate as ``OSError``.
    """

    request = Request(url, method="GET")
    try:
        raw = urlopen(request, timeout=timeout)  # nosec - URL supplied by the app owner
    except HTTPError as exc:
        raw = exc
        status = exc.code
    else:
        status = getattr(raw, "status", None)
        if status is None:
            status = raw.getcode()
    headers = getattr(raw, "headers", None)
    _LOGGER.debug("GET %s -> %s", url, status)
    try:
        yield HttpResponse(
            url=url,
            status=int(status),
            body=raw,
            headers=dict(headers.items()) if headers is not None else {},
        )
    finally:
        raw.close()


__all__ = ["HttpResponse", "http_get"]
