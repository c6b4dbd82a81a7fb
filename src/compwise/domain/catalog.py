"""Catalog loading with a degraded fallback chain."""

from __future__ import annotations

import asyncio
import dataclasses
import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from compwise.config.catalog import (
    DEFAULT_CATALOG_PATH,
    DEFAULT_FALLBACK_PROBE_NAMES,
    DEFAULT_MINIMAL_ENTITY_NAMES,
)
from compwise.config.http_resilience import RetryPolicy

from .documents import fetch_document
from .errors import (
    CatalogFormatError,
    CatalogPipelineError,
    CatalogUnavailableError,
    InvalidEntityNameError,
)
from .model import Entity
from .retry import deadline_after
from .schema import EntityDescriptor, describe_validation_error
from .sources import SourceLayout, probe

if TYPE_CHECKING:
    from .icons import IconResolver
    from .ports.fetching import DocumentTransport
    from .retry import Sleep

log = getLogger(__name__)

WRAPPER_KEYS = ("entities", "companies")


class CatalogOrigin(StrEnum):
    PRIMARY = "primary"
    PROBED = "probed"
    MINIMAL = "minimal"


@dataclass(slots=True, frozen=True)
class CatalogResult:
    """Entities plus where they came from.

    ``degraded`` is true whenever the entities were produced by a fallback stage
    rather than the catalog document.
    """

    entities: tuple[Entity, ...]
    origin: CatalogOrigin = CatalogOrigin.PRIMARY
    errors: tuple[str, ...] = ()

    @property
    def degraded(self) -> bool:
        return self.origin is not CatalogOrigin.PRIMARY

    def get(self, name: str) -> Entity | None:
        return next((entity for entity in self.entities if entity.name == name), None)

    def names(self) -> list[str]:
        return [entity.name for entity in self.entities]


@dataclass(slots=True, frozen=True)
class FallbackPlan:
    """Entity names used when the catalog document cannot be loaded."""

    probe_names: tuple[str, ...] = DEFAULT_FALLBACK_PROBE_NAMES
    minimal_names: tuple[str, ...] = DEFAULT_MINIMAL_ENTITY_NAMES


def _unwrap(payload: object) -> list[object]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in WRAPPER_KEYS:
            wrapped = payload.get(key)
            if isinstance(wrapped, list):
                return wrapped
    raise CatalogFormatError(
        "Catalog must be an array or an object with an 'entities' array"
    )


def _descriptor_label(index: int, raw: object) -> str:
    if isinstance(raw, Mapping) and isinstance(raw.get("name"), str):
        return f"entity {raw['name']!r}"
    return f"entity #{index}"


def decode_catalog(body: str) -> tuple[list[Entity], list[str]]:
    """Decode a catalog document into valid entities and per-descriptor errors."""

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise CatalogFormatError(f"Catalog is not valid JSON: {exc}") from exc

    descriptors = _unwrap(payload)
    if not descriptors:
        raise CatalogFormatError("Catalog contains no entities")

    entities: list[Entity] = []
    errors: list[str] = []
    seen: set[str] = set()
    for index, raw in enumerate(descriptors):
        try:
            descriptor = EntityDescriptor.model_validate(raw)
        except ValidationError as exc:
            reason = describe_validation_error(exc)
            errors.append(f"Invalid {_descriptor_label(index, raw)}: {reason}")
            continue
        if descriptor.name in seen:
            errors.append(f"Duplicate entity {descriptor.name!r} ignored")
            continue
        seen.add(descriptor.name)
        entities.append(descriptor.to_entity())

    if not entities:
        raise CatalogFormatError(f"No valid entities found in catalog: {'; '.join(errors)}")
    return entities, errors


class CatalogLoader:
    """Loads the entity catalog, degrading to probed or built-in entities.

    The fallback chain only runs when the primary document fails entirely,
    including when its retries run past ``deadline_seconds``.
    When a :class:`~compwise.domain.icons.IconResolver` is given, icon
    references are resolved for whatever entities are returned.
    """

    def __init__(
        self,
        transport: DocumentTransport,
        *,
        catalog_path: str = DEFAULT_CATALOG_PATH,
        retry: RetryPolicy | None = None,
        layout: SourceLayout | None = None,
        fallback: FallbackPlan | None = None,
        icons: IconResolver | None = None,
        deadline_seconds: float | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.catalog_path = catalog_path
        self.retry = retry or RetryPolicy()
        self.layout = layout or SourceLayout()
        self.fallback = fallback or FallbackPlan()
        self.icons = icons
        self.deadline_seconds = deadline_seconds
        self._sleep = sleep

    async def load(self) -> CatalogResult:
        try:
            result = await self._load_primary()
        except CatalogPipelineError as exc:
            log.warning(
                "Primary catalog %s unavailable (%s); falling back", self.catalog_path, exc
            )
            result = await self._load_fallback(reason=str(exc))

        if self.icons is not None:
            entities = await self.icons.resolve_all(result.entities)
            result = dataclasses.replace(result, entities=entities)
        return result

    async def _load_primary(self) -> CatalogResult:
        body = await fetch_document(
            self.transport,
            self.catalog_path,
            self.retry,
            deadline=deadline_after(self.deadline_seconds),
            sleep=self._sleep,
        )
        entities, errors = decode_catalog(body)
        if errors:
            log.warning("Catalog processing errors:\n%s", "\n".join(errors))
        log.info("Loaded %d entities (%d errors)", len(entities), len(errors))
        return CatalogResult(
            entities=tuple(entities), origin=CatalogOrigin.PRIMARY, errors=tuple(errors)
        )

    async def _load_fallback(self, *, reason: str) -> CatalogResult:
        probed = await self._probe_known_entities()
        if probed:
            log.warning(
                "Serving degraded catalog: %d entities detected by probing", len(probed)
            )
            return CatalogResult(entities=probed, origin=CatalogOrigin.PROBED, errors=(reason,))

        if not self.fallback.minimal_names:
            raise CatalogUnavailableError(
                f"Catalog unavailable and no fallback entities exist: {reason}"
            )
        log.warning("Serving degraded catalog: minimal built-in entity set")
        minimal = tuple(
            self._synthesize(name, detected=False) for name in self.fallback.minimal_names
        )
        return CatalogResult(entities=minimal, origin=CatalogOrigin.MINIMAL, errors=(reason,))

    async def _probe_known_entities(self) -> tuple[Entity, ...]:
        names: list[str] = []
        paths: list[str] = []
        for name in dict.fromkeys(self.fallback.probe_names):
            try:
                paths.append(self.layout.all_time_path(name))
            except InvalidEntityNameError as exc:
                log.warning("Skipping fallback probe: %s", exc)
                continue
            names.append(name)

        present = await asyncio.gather(
            *(
                probe(self.transport, path, timeout_seconds=self.retry.attempt_timeout_seconds)
                for path in paths
            )
        )
        return tuple(
            self._synthesize(name, detected=True)
            for name, exists in zip(names, present, strict=True)
            if exists
        )

    def _synthesize(self, name: str, *, detected: bool) -> Entity:
        icon_ref = self.icons.default_icon_ref(name) if self.icons is not None else None
        return Entity(name=name, record_count=0, icon_ref=icon_ref, extras={"detected": detected})
