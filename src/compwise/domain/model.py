"""Immutable value objects produced by the pipeline."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

_ID_SEPARATOR = "\x1f"


class Category(StrEnum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


def record_id(title: str, link: str) -> str:
    """Content-addressed record identity.

    The separator keeps ``("ab", "c")`` and ``("a", "bc")`` apart.
    """

    digest = hashlib.sha256(f"{title}{_ID_SEPARATOR}{link}".encode()).hexdigest()
    return digest[:32]


@dataclass(slots=True, frozen=True)
class Record:
    """One validated catalog item belonging to an entity."""

    title: str
    category: Category
    link: str
    tags: tuple[str, ...] = ()
    frequency_score: float = 0.0
    acceptance_ratio: float = 0.0
    id: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", record_id(self.title, self.link))


@dataclass(slots=True, frozen=True)
class Entity:
    """A cataloged subject owning zero or more records."""

    name: str
    record_count: int = 0
    icon_ref: str | None = None
    extras: Mapping[str, object] = field(default_factory=dict, compare=False, hash=False)
