"""Loading, merging and deduplicating the records of one entity."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from compwise.config.http_resilience import RetryPolicy

from .documents import fetch_document
from .errors import CatalogPipelineError, EntityLoadError, NoSourcesError
from .parsing import RecordParser
from .retry import deadline_after
from .sources import SourceResolver, validate_entity_name

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .model import Record
    from .parsing import RowError
    from .ports.fetching import DocumentTransport
    from .retry import Sleep
    from .sources import SourceRef

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SourceOutcome:
    source: SourceRef
    records: tuple[Record, ...] = ()
    row_errors: tuple[RowError, ...] = ()
    error: str | None = None

    def problem(self) -> str | None:
        """Describe why this source contributed nothing, if it did not."""

        if self.error is not None:
            return f"{self.source.path}: {self.error}"
        if not self.records:
            return f"{self.source.path}: no valid records ({len(self.row_errors)} row errors)"
        return None


@dataclass(slots=True, frozen=True)
class EntityRecords:
    entity: str
    records: tuple[Record, ...]
    outcomes: tuple[SourceOutcome, ...] = ()
    duplicates_dropped: int = 0

    @property
    def failed_sources(self) -> tuple[SourceOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if outcome.error is not None)


def merge_records(batches: Iterable[Iterable[Record]]) -> tuple[tuple[Record, ...], int]:
    """Merge batches by record id; the first occurrence of an id wins."""

    merged: dict[str, Record] = {}
    dropped = 0
    for batch in batches:
        for record in batch:
            if record.id in merged:
                dropped += 1
                continue
            merged[record.id] = record
    return tuple(merged.values()), dropped


class EntityLoader:
    """Resolves, fetches and parses every source document of an entity.

    Documents are fetched concurrently but merged in resolver order, so the
    narrowest time window wins when a record appears in several sheets.
    ``deadline_seconds`` bounds the retries of one whole ``load`` call.
    """

    def __init__(
        self,
        transport: DocumentTransport,
        *,
        resolver: SourceResolver | None = None,
        parser: RecordParser | None = None,
        retry: RetryPolicy | None = None,
        deadline_seconds: float | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.retry = retry or RetryPolicy()
        self.deadline_seconds = deadline_seconds
        self.resolver = resolver or SourceResolver(
            transport, probe_timeout_seconds=self.retry.attempt_timeout_seconds
        )
        self.parser = parser or RecordParser()
        self._sleep = sleep

    async def load(self, entity: str) -> EntityRecords:
        name = validate_entity_name(entity)
        sources = await self.resolver.resolve(name)
        if not sources:
            raise NoSourcesError(name)

        deadline = deadline_after(self.deadline_seconds)
        outcomes = await asyncio.gather(
            *(self._load_source(ref, deadline=deadline) for ref in sources)
        )
        problems = [problem for outcome in outcomes if (problem := outcome.problem())]
        if problems:
            log.warning("Source loading problems for %s:\n%s", name, "\n".join(problems))

        records, dropped = merge_records(outcome.records for outcome in outcomes)
        if not records:
            raise EntityLoadError(name, problems)

        failed = sum(1 for outcome in outcomes if outcome.error is not None)
        log.info(
            "Loaded %d unique records for %s from %d sources (%d failed, %d duplicates)",
            len(records),
            name,
            len(sources),
            failed,
            dropped,
        )
        return EntityRecords(
            entity=name,
            records=records,
            outcomes=tuple(outcomes),
            duplicates_dropped=dropped,
        )

    async def _load_source(self, source: SourceRef, *, deadline: float | None) -> SourceOutcome:
        try:
            body = await fetch_document(
                self.transport, source.path, self.retry, deadline=deadline, sleep=self._sleep
            )
            result = self.parser.parse(body)
        except CatalogPipelineError as exc:
            return SourceOutcome(source=source, error=str(exc))

        if result.errors:
            log.warning("%s: skipped %d invalid rows", source.path, len(result.errors))
        return SourceOutcome(source=source, records=result.records, row_errors=result.errors)
