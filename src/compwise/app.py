"""Application wiring and entry points."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from compwise.adapters.filesystem import (
    LocalDocumentTransport,
    build_catalog_document,
    write_catalog_document,
)
from compwise.adapters.http_transport import HttpDocumentTransport
from compwise.config import CatalogConfig, get_catalog_config
from compwise.domain.catalog import CatalogLoader, FallbackPlan
from compwise.domain.entities import EntityLoader
from compwise.domain.icons import IconResolver
from compwise.domain.service import CatalogService
from compwise.domain.sources import SourceLayout, SourceResolver

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from compwise.domain.catalog import CatalogResult
    from compwise.domain.entities import EntityRecords
    from compwise.domain.ports.fetching import DocumentTransport

log = getLogger(__name__)


def build_catalog_service(config: CatalogConfig, transport: DocumentTransport) -> CatalogService:
    layout = SourceLayout(root=config.source_root, suffixes=config.source_suffixes)
    probe_timeout = config.retry.attempt_timeout_seconds
    icons = (
        IconResolver(
            transport,
            icon_dir=config.icon_dir,
            placeholder=config.placeholder_icon,
            probe_timeout_seconds=probe_timeout,
        )
        if config.resolve_icons
        else None
    )
    catalog_loader = CatalogLoader(
        transport,
        catalog_path=config.catalog_path,
        retry=config.retry,
        layout=layout,
        fallback=FallbackPlan(
            probe_names=config.fallback_probe_names,
            minimal_names=config.minimal_entity_names,
        ),
        icons=icons,
        deadline_seconds=config.load_deadline_seconds,
    )
    entity_loader = EntityLoader(
        transport,
        resolver=SourceResolver(transport, layout=layout, probe_timeout_seconds=probe_timeout),
        retry=config.retry,
        deadline_seconds=config.load_deadline_seconds,
    )
    return CatalogService(
        catalog_loader=catalog_loader,
        entity_loader=entity_loader,
        ttl_seconds=config.cache_ttl_seconds,
    )


@asynccontextmanager
async def open_catalog_service(
    config: CatalogConfig | None = None,
    *,
    transport: DocumentTransport | None = None,
) -> AsyncIterator[CatalogService]:
    """Yield a service bound to the configured transport, closing it afterwards."""

    active_config = config or get_catalog_config()
    if transport is not None:
        yield build_catalog_service(active_config, transport)
        return

    if active_config.data_dir is not None:
        log.debug("Serving catalog from %s", active_config.data_dir)
        yield build_catalog_service(active_config, LocalDocumentTransport(active_config.data_dir))
        return

    async with HttpDocumentTransport.from_config(active_config.resilience_config()) as http:
        log.debug("Serving catalog from %s", active_config.base_url)
        yield build_catalog_service(active_config, http)


def list_entities(*, config: CatalogConfig | None = None) -> CatalogResult:
    async def run() -> CatalogResult:
        async with open_catalog_service(config) as service:
            return await service.get_catalog()

    return asyncio.run(run())


def load_entity_records(name: str, *, config: CatalogConfig | None = None) -> EntityRecords:
    async def run() -> EntityRecords:
        async with open_catalog_service(config) as service:
            return await service.get_entity_details(name)

    return asyncio.run(run())


def build_catalog(
    data_dir: Path,
    *,
    output: Path | None = None,
    config: CatalogConfig | None = None,
) -> Path:
    """Index ``data_dir`` and write its catalog document, returning the written path."""

    active_config = config or CatalogConfig(data_dir=data_dir)
    document = build_catalog_document(
        data_dir,
        layout=SourceLayout(root=active_config.source_root, suffixes=active_config.source_suffixes),
        icon_dir=active_config.icon_dir,
        placeholder_icon=active_config.placeholder_icon,
    )
    target = output or data_dir / active_config.catalog_path
    write_catalog_document(document, target)
    log.info("Wrote %s entities to %s", document["totalEntities"], target)
    return target
