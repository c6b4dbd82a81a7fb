"""Pydantic models validating raw catalog descriptors and sheet rows."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import (
    AliasChoices,
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from .model import Category, Entity, Record

_URL_ADAPTER: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def describe_validation_error(error: ValidationError) -> str:
    """Collapse a pydantic error into one line, ``field: message`` per problem."""

    parts: list[str] = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "value"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def split_tags(value: str) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for tag in value.split(","):
        stripped = tag.strip()
        if stripped:
            seen.setdefault(stripped, None)
    return tuple(seen)


class RecordRow(BaseModel):
    """One data row of a source document, keyed by canonical column name."""

    model_config = ConfigDict(extra="ignore", frozen=True, str_strip_whitespace=True)

    title: str = Field(min_length=1)
    category: Category
    link: str = Field(min_length=1)
    tags: tuple[str, ...] = ()
    frequency_score: float = Field(default=0.0, ge=0, le=100, allow_inf_nan=False)
    acceptance_ratio: float = Field(default=0.0, ge=0, le=1, allow_inf_nan=False)

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("link")
    @classmethod
    def _require_absolute_url(cls, value: str) -> str:
        try:
            url = _URL_ADAPTER.validate_python(value)
        except ValidationError:
            raise ValueError(f"Invalid URL format: {value}") from None
        if not url.host:
            raise ValueError(f"Invalid URL format: {value}")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: object) -> object:
        if value is None:
            return ()
        if isinstance(value, str):
            return split_tags(value)
        if isinstance(value, Sequence):
            return split_tags(",".join(str(item) for item in value))
        return value

    @field_validator("frequency_score", "acceptance_ratio", mode="before")
    @classmethod
    def _blank_number_is_zero(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0.0
        return value

    def to_record(self) -> Record:
        return Record(
            title=self.title,
            category=self.category,
            link=self.link,
            tags=self.tags,
            frequency_score=self.frequency_score,
            acceptance_ratio=self.acceptance_ratio,
        )


class EntityDescriptor(BaseModel):
    """Catalog entry for one entity; unknown keys are kept as extras."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1)
    record_count: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("recordCount", "problemCount", "record_count"),
    )
    icon_ref: str | None = Field(
        default=None,
        validation_alias=AliasChoices("iconRef", "logoUrl", "icon_ref"),
    )

    _normalize_icon_ref = field_validator("icon_ref", mode="before")(_blank_to_none)

    def to_entity(self) -> Entity:
        return Entity(
            name=self.name,
            record_count=self.record_count,
            icon_ref=self.icon_ref,
            extras=dict(self.model_extra or {}),
        )
