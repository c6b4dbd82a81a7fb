"""Best-effort icon discovery for catalog entities."""

from __future__ import annotations

import asyncio
import dataclasses
import posixpath
import re
from logging import getLogger
from typing import TYPE_CHECKING

from compwise.config.catalog import DEFAULT_ICON_DIR, DEFAULT_PLACEHOLDER_ICON

from .sources import probe

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .model import Entity
    from .ports.fetching import DocumentTransport

log = getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def icon_name_variants(name: str) -> list[str]:
    """Candidate icon file stems for ``name``, most likely first, without duplicates."""

    lowered = name.lower()
    variants = [
        _WHITESPACE.sub("-", lowered),
        _WHITESPACE.sub("_", lowered),
        _NON_ALNUM.sub("-", lowered),
        _NON_ALNUM.sub("", lowered),
        lowered,
    ]
    return list(dict.fromkeys(variant for variant in variants if variant))


class IconResolver:
    def __init__(
        self,
        transport: DocumentTransport,
        *,
        icon_dir: str = DEFAULT_ICON_DIR,
        placeholder: str = DEFAULT_PLACEHOLDER_ICON,
        probe_timeout_seconds: float | None = 10.0,
    ) -> None:
        self.transport = transport
        self.icon_dir = icon_dir
        self.placeholder = placeholder
        self.probe_timeout_seconds = probe_timeout_seconds

    def default_icon_ref(self, name: str) -> str:
        return posixpath.join(self.icon_dir, f"{icon_name_variants(name)[0]}.svg")

    async def resolve(self, entity: Entity) -> str:
        """Return a usable icon reference: the declared one, a detected file or the placeholder."""

        if entity.icon_ref and await self._exists(entity.icon_ref):
            return entity.icon_ref
        for variant in icon_name_variants(entity.name):
            candidate = posixpath.join(self.icon_dir, f"{variant}.svg")
            if await self._exists(candidate):
                return candidate
        log.debug("No icon found for %s, using placeholder", entity.name)
        return self.placeholder

    async def resolve_all(self, entities: Iterable[Entity]) -> tuple[Entity, ...]:
        items = tuple(entities)
        refs = await asyncio.gather(*(self.resolve(entity) for entity in items))
        return tuple(
            entity if entity.icon_ref == ref else dataclasses.replace(entity, icon_ref=ref)
            for entity, ref in zip(items, refs, strict=True)
        )

    async def _exists(self, path: str) -> bool:
        return await probe(self.transport, path, timeout_seconds=self.probe_timeout_seconds)
