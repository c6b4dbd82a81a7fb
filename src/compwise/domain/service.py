"""Query facade consumed by the presentation layer."""

from __future__ import annotations

import time
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from compwise.config.catalog import DEFAULT_CACHE_TTL_SECONDS

from .coalescing import CoalescingCache
from .sources import validate_entity_name

if TYPE_CHECKING:
    from collections.abc import Callable

    from .catalog import CatalogLoader, CatalogResult
    from .entities import EntityLoader, EntityRecords
    from .model import Entity, Record

log = getLogger(__name__)

CATALOG_KEY: Final[str] = "catalog"
DEFAULT_DEGRADED_TTL_SECONDS: Final[float] = 5 * 60


@dataclass(slots=True, frozen=True)
class ServiceStats:
    catalog_cached: bool
    catalog_degraded: bool | None
    cached_entities: tuple[str, ...]
    loading_entities: tuple[str, ...]
    loads_started: int


class CatalogService:
    """Cached, coalesced access to the catalog and per-entity records.

    Cached values expire after ``ttl_seconds``; a degraded catalog expires after
    ``degraded_ttl_seconds`` so the primary document is retried sooner.
    Failures are never cached.
    """

    def __init__(
        self,
        *,
        catalog_loader: CatalogLoader,
        entity_loader: EntityLoader,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        degraded_ttl_seconds: float = DEFAULT_DEGRADED_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.catalog_loader = catalog_loader
        self.entity_loader = entity_loader
        self.ttl_seconds = ttl_seconds
        self.degraded_ttl_seconds = min(degraded_ttl_seconds, ttl_seconds)
        self._catalog: CoalescingCache[str, CatalogResult] = CoalescingCache(clock=clock)
        self._records: CoalescingCache[str, EntityRecords] = CoalescingCache(clock=clock)

    async def get_catalog(self) -> CatalogResult:
        cached = self._catalog.peek(CATALOG_KEY)
        ttl = self.degraded_ttl_seconds if cached and cached.degraded else self.ttl_seconds
        if self._catalog.is_stale(CATALOG_KEY, ttl):
            log.debug("Catalog cache expired")
            self._catalog.invalidate(CATALOG_KEY)
        return await self._catalog.get_or_load(CATALOG_KEY, self.catalog_loader.load)

    async def get_entities(self) -> tuple[Entity, ...]:
        return (await self.get_catalog()).entities

    async def get_entity_details(self, name: str) -> EntityRecords:
        key = validate_entity_name(name)
        if self._records.is_stale(key, self.ttl_seconds):
            log.debug("Record cache for %s expired", key)
            self._records.invalidate(key)
        return await self._records.get_or_load(key, lambda: self.entity_loader.load(key))

    async def get_entity_records(self, name: str) -> tuple[Record, ...]:
        return (await self.get_entity_details(name)).records

    async def refresh(self) -> CatalogResult:
        """Drop every cached value and reload the catalog."""

        log.info("Refreshing catalog and clearing cached records")
        self._catalog.invalidate_all()
        self._records.invalidate_all()
        return await self.get_catalog()

    def invalidate(self, name: str) -> bool:
        return self._records.invalidate(validate_entity_name(name))

    def stats(self) -> ServiceStats:
        catalog = self._catalog.peek(CATALOG_KEY)
        return ServiceStats(
            catalog_cached=CATALOG_KEY in self._catalog,
            catalog_degraded=catalog.degraded if catalog is not None else None,
            cached_entities=tuple(sorted(self._records.cached_keys())),
            loading_entities=tuple(sorted(self._records.in_flight_keys())),
            loads_started=self._catalog.loads_started + self._records.loads_started,
        )
