"""Ports for reading catalog documents from wherever they are served."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(slots=True, frozen=True)
class FetchResponse:
    """Raw document as returned by a transport, before status interpretation."""

    path: str
    status_code: int
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class DocumentTransport(Protocol):
    """Reads documents addressed by a relative ``/``-separated path.

    ``fetch`` returns every response, whatever its status, and raises only for
    connection-level failures. ``exists`` is a lightweight probe that never
    raises for ordinary absence or unreachability.
    """

    async def fetch(self, path: str) -> FetchResponse:
        ...

    async def exists(self, path: str) -> bool:
        ...


__all__ = ["DocumentTransport", "FetchResponse"]
