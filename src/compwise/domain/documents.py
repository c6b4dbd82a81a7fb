"""Fetching a single document and interpreting its status."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from .errors import AccessDeniedError, HttpStatusError, ServerError, SourceNotFoundError
from .retry import with_retry

if TYPE_CHECKING:
    from compwise.config.http_resilience import RetryPolicy

    from .ports.fetching import DocumentTransport, FetchResponse
    from .retry import Sleep

_NOT_FOUND_STATUSES = frozenset({404, 410})
_FORBIDDEN_STATUSES = frozenset({401, 403})


def raise_for_status(response: FetchResponse) -> None:
    if response.ok:
        return
    status = response.status_code
    path = response.path
    if status in _NOT_FOUND_STATUSES:
        raise SourceNotFoundError(f"Document not found: {path}", path=path)
    if status in _FORBIDDEN_STATUSES:
        raise AccessDeniedError(f"Access denied: {path}", path=path)
    if status >= 500:
        raise ServerError(f"Server error {status}: {path}", path=path, status_code=status)
    raise HttpStatusError(f"HTTP {status}: {path}", path=path, status_code=status)


async def fetch_document(
    transport: DocumentTransport,
    path: str,
    policy: RetryPolicy,
    *,
    deadline: float | None = None,
    sleep: Sleep = asyncio.sleep,
) -> str:
    """Return the body of ``path``, retrying per ``policy`` until ``deadline`` (loop time)."""

    async def attempt() -> str:
        response = await transport.fetch(path)
        raise_for_status(response)
        return response.body

    return await with_retry(
        attempt, policy, name=f"fetch {path}", deadline=deadline, sleep=sleep
    )
