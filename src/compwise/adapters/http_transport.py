"""Document transport over HTTP."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote, urlsplit

import httpx

from compwise.domain.ports.fetching import DocumentTransport, FetchResponse

from .http_resilience import ResilienceConfig, ResilientClient

if TYPE_CHECKING:
    from types import TracebackType

log = getLogger(__name__)


def encode_path(path: str) -> str:
    """Percent-encode a relative document path; absolute URLs pass through."""

    if urlsplit(path).scheme:
        return path
    return quote(path, safe="/")


class HttpDocumentTransport:
    def __init__(self, client: ResilientClient) -> None:
        self.client = client

    @classmethod
    def from_config(
        cls,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> HttpDocumentTransport:
        return cls(ResilientClient(config, transport=transport))

    async def __aenter__(self) -> HttpDocumentTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def fetch(self, path: str) -> FetchResponse:
        response = await self.client.get(encode_path(path))
        return FetchResponse(path=path, status_code=response.status_code, body=response.text)

    async def exists(self, path: str) -> bool:
        try:
            response = await self.client.head(encode_path(path))
        except httpx.HTTPError as exc:
            log.debug("HEAD %s failed: %r", path, exc)
            return False
        return response.is_success


if TYPE_CHECKING:
    _transport_check: DocumentTransport = HttpDocumentTransport(
        ResilientClient(ResilienceConfig(name="check"))
    )
