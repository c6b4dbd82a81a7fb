"""Record parser for delimited problem sheets.

The tokenizer mirrors the lenient sheets found in the wild: a quote character
toggles quoted mode, the delimiter is ignored while quoted, and quotes are dropped
from the value. A doubled quote is *not* an escape, so a literal quote cannot be
represented inside a field. Fields are trimmed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from .errors import InsufficientContentError, MissingColumnsError
from .schema import RecordRow, describe_validation_error

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .model import Record

log = getLogger(__name__)

DEFAULT_DELIMITER: Final[str] = ","
DEFAULT_QUOTE: Final[str] = '"'
_ALTERNATE_DELIMITERS: Final[tuple[str, ...]] = (";", "\t")

COLUMN_ALIASES: Final[Mapping[str, str]] = {
    "category": "category",
    "difficulty": "category",
    "title": "title",
    "link": "link",
    "url": "link",
    "frequencyscore": "frequency_score",
    "frequency": "frequency_score",
    "acceptanceratio": "acceptance_ratio",
    "acceptancerate": "acceptance_ratio",
    "acceptance": "acceptance_ratio",
    "tags": "tags",
    "topics": "tags",
}
REQUIRED_COLUMNS: Final[tuple[str, ...]] = ("category", "title", "link")

_SERIALIZED_HEADER: Final[tuple[str, ...]] = (
    "category",
    "title",
    "frequencyScore",
    "acceptanceRatio",
    "link",
    "tags",
)
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def normalize_column(name: str) -> str:
    return _NON_ALNUM.sub("", name.lower())


def tokenize_line(
    line: str,
    *,
    delimiter: str = DEFAULT_DELIMITER,
    quote: str = DEFAULT_QUOTE,
) -> list[str]:
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in line:
        if char == quote:
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())
    return fields


def sniff_delimiter(header_line: str, *, quote: str = DEFAULT_QUOTE) -> str:
    """Pick the delimiter for a document from its header line.

    Commas win whenever present outside quotes; otherwise the first alternate
    delimiter that splits the header is used.
    """

    if len(tokenize_line(header_line, delimiter=DEFAULT_DELIMITER, quote=quote)) > 1:
        return DEFAULT_DELIMITER
    for candidate in _ALTERNATE_DELIMITERS:
        if len(tokenize_line(header_line, delimiter=candidate, quote=quote)) > 1:
            return candidate
    return DEFAULT_DELIMITER


@dataclass(slots=True, frozen=True)
class RowError:
    row: int
    reason: str

    def __str__(self) -> str:
        return f"Row {self.row}: {self.reason}"


@dataclass(slots=True, frozen=True)
class ParseResult:
    records: tuple[Record, ...]
    errors: tuple[RowError, ...]


class RecordParser:
    """Turns one document's raw text into validated records plus row errors.

    ``delimiter=None`` detects the delimiter from the header line.
    """

    def __init__(self, *, delimiter: str | None = None, quote: str = DEFAULT_QUOTE) -> None:
        self.delimiter = delimiter
        self.quote = quote

    def parse(self, raw_text: str) -> ParseResult:
        lines = [
            (number, line)
            for number, line in enumerate(_LINE_BREAK.split(raw_text.lstrip("\ufeff")), start=1)
            if line.strip()
        ]
        if len(lines) < 2:
            raise InsufficientContentError(
                "Document must contain at least a header and one data row"
            )

        _, header_line = lines[0]
        delimiter = self.delimiter or sniff_delimiter(header_line, quote=self.quote)
        header = tokenize_line(header_line, delimiter=delimiter, quote=self.quote)
        columns = self._map_columns(header)

        records: list[Record] = []
        errors: list[RowError] = []
        for number, line in lines[1:]:
            values = tokenize_line(line, delimiter=delimiter, quote=self.quote)
            if len(values) != len(header):
                errors.append(
                    RowError(
                        number,
                        f"column count mismatch (expected {len(header)}, got {len(values)})",
                    )
                )
                continue
            raw = {
                column: value
                for column, value in zip(columns, values, strict=True)
                if column is not None
            }
            try:
                records.append(RecordRow.model_validate(raw).to_record())
            except ValidationError as exc:
                errors.append(RowError(number, describe_validation_error(exc)))

        for error in errors:
            log.debug("Skipping %s", error)
        return ParseResult(records=tuple(records), errors=tuple(errors))

    @staticmethod
    def _map_columns(header: list[str]) -> list[str | None]:
        columns: list[str | None] = []
        seen: set[str] = set()
        for name in header:
            canonical = COLUMN_ALIASES.get(normalize_column(name))
            if canonical is None or canonical in seen:
                columns.append(None)
                continue
            seen.add(canonical)
            columns.append(canonical)

        missing = [column for column in REQUIRED_COLUMNS if column not in seen]
        if missing:
            raise MissingColumnsError(missing)
        return columns


def _format_number(value: float) -> str:
    return f"{value:g}" if value == int(value) else repr(value)


def serialize_records(
    records: Iterable[Record],
    *,
    delimiter: str = DEFAULT_DELIMITER,
    quote: str = DEFAULT_QUOTE,
) -> str:
    """Write records as a document :class:`RecordParser` reads back unchanged.

    Raises ``ValueError`` for values containing the quote character or a line
    break, which the tokenizer cannot represent.
    """

    def cell(value: str) -> str:
        if quote in value or _LINE_BREAK.search(value):
            raise ValueError(
                f"Cannot serialize value containing {quote!r} or a line break: {value!r}"
            )
        return f"{quote}{value}{quote}"

    lines = [delimiter.join(_SERIALIZED_HEADER)]
    for record in records:
        row = (
            record.category.value,
            record.title,
            _format_number(record.frequency_score),
            _format_number(record.acceptance_ratio),
            record.link,
            ", ".join(record.tags),
        )
        lines.append(delimiter.join(cell(value) for value in row))
    return "\n".join(lines) + "\n"
