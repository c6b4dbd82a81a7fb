"""Discovery of the source documents that exist for an entity."""

from __future__ import annotations

import asyncio
import posixpath
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from compwise.config.catalog import DEFAULT_SOURCE_ROOT, DEFAULT_SOURCE_SUFFIXES

from .errors import InvalidEntityNameError

if TYPE_CHECKING:
    from .ports.fetching import DocumentTransport

log = getLogger(__name__)


def validate_entity_name(name: str) -> str:
    """Return the stripped name, rejecting values that cannot be a single path segment."""

    stripped = name.strip()
    if not stripped:
        raise InvalidEntityNameError("Entity name must be a non-empty string")
    if "/" in stripped or "\\" in stripped or stripped in {".", ".."}:
        raise InvalidEntityNameError(f"Entity name is not a valid path segment: {name!r}")
    return stripped


@dataclass(slots=True, frozen=True)
class SourceRef:
    entity: str
    path: str
    position: int

    @property
    def label(self) -> str:
        stem, _ = posixpath.splitext(posixpath.basename(self.path))
        return stem


@dataclass(slots=True, frozen=True)
class SourceLayout:
    """Naming template for per-entity documents.

    Suffixes are ordered from the narrowest time window to all-time; the last
    one is the all-time sheet used for existence checks.
    """

    root: str = DEFAULT_SOURCE_ROOT
    suffixes: tuple[str, ...] = DEFAULT_SOURCE_SUFFIXES

    def document_path(self, entity: str, suffix: str) -> str:
        return posixpath.join(self.root, validate_entity_name(entity), suffix)

    def all_time_path(self, entity: str) -> str:
        return self.document_path(entity, self.suffixes[-1])

    def candidates(self, entity: str) -> list[SourceRef]:
        name = validate_entity_name(entity)
        return [
            SourceRef(entity=name, path=self.document_path(name, suffix), position=position)
            for position, suffix in enumerate(self.suffixes)
        ]


async def probe(
    transport: DocumentTransport,
    path: str,
    *,
    timeout_seconds: float | None,
) -> bool:
    """Existence check bounded by ``timeout_seconds``; a timeout counts as absent."""

    if timeout_seconds is None:
        return await transport.exists(path)
    try:
        async with asyncio.timeout(timeout_seconds):
            return await transport.exists(path)
    except TimeoutError:
        log.warning("Existence probe for %s timed out after %gs", path, timeout_seconds)
        return False


class SourceResolver:
    """Finds which of an entity's candidate documents exist, in template order."""

    def __init__(
        self,
        transport: DocumentTransport,
        *,
        layout: SourceLayout | None = None,
        probe_timeout_seconds: float | None = 10.0,
    ) -> None:
        self.transport = transport
        self.layout = layout or SourceLayout()
        self.probe_timeout_seconds = probe_timeout_seconds

    async def resolve(self, entity: str) -> list[SourceRef]:
        candidates = self.layout.candidates(entity)
        present = await asyncio.gather(
            *(
                probe(self.transport, ref.path, timeout_seconds=self.probe_timeout_seconds)
                for ref in candidates
            )
        )
        found = [ref for ref, exists in zip(candidates, present, strict=True) if exists]
        log.debug(
            "Resolved %d/%d source documents for %s",
            len(found),
            len(candidates),
            entity,
        )
        return found
