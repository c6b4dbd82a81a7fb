from __future__ import annotations

import asyncio

from compwise.domain.icons import IconResolver, icon_name_variants
from compwise.domain.model import Entity
from tests.helpers.transports import FakeTransport

PLACEHOLDER = "assets/icons/company-placeholder.svg"


def test_name_variants_are_unique_and_ordered() -> None:
    assert icon_name_variants("Goldman Sachs") == [
        "goldman-sachs",
        "goldman_sachs",
        "goldmansachs",
        "goldman sachs",
    ]


def test_name_variants_for_punctuation() -> None:
    variants = icon_name_variants("J.P. Morgan")

    assert variants[0] == "j.p.-morgan"
    assert "j-p--morgan" in variants
    assert "jpmorgan" in variants


def test_single_word_has_one_variant() -> None:
    assert icon_name_variants("Google") == ["google"]


def test_declared_icon_wins_when_present() -> None:
    transport = FakeTransport(present=["logos/custom.png", "assets/company-logos/google.svg"])
    resolver = IconResolver(transport)

    ref = asyncio.run(resolver.resolve(Entity(name="Google", icon_ref="logos/custom.png")))

    assert ref == "logos/custom.png"


def test_detected_icon_used_when_declared_is_missing() -> None:
    transport = FakeTransport(present=["assets/company-logos/goldman_sachs.svg"])
    resolver = IconResolver(transport)

    ref = asyncio.run(resolver.resolve(Entity(name="Goldman Sachs", icon_ref="gone.png")))

    assert ref == "assets/company-logos/goldman_sachs.svg"


def test_placeholder_when_nothing_exists() -> None:
    resolver = IconResolver(FakeTransport())

    assert asyncio.run(resolver.resolve(Entity(name="Nobody"))) == PLACEHOLDER


def test_resolve_all_only_replaces_changed_entities() -> None:
    transport = FakeTransport(present=["assets/company-logos/meta.svg"])
    resolver = IconResolver(transport)
    unchanged = Entity(name="Meta", icon_ref="assets/company-logos/meta.svg", record_count=3)
    missing = Entity(name="Nobody", record_count=1)

    resolved = asyncio.run(resolver.resolve_all([unchanged, missing]))

    assert resolved[0] is unchanged
    assert resolved[1].icon_ref == PLACEHOLDER
    assert resolved[1].record_count == 1


def test_default_icon_ref_uses_first_variant() -> None:
    resolver = IconResolver(FakeTransport(), icon_dir="logos")

    assert resolver.default_icon_ref("Goldman Sachs") == "logos/goldman-sachs.svg"
