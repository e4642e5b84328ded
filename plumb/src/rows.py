"""Tabular row parsing for hierarchy exports.

Tokenizes raw delimited text into rows. Two input channels are supported:

- CSV exports, where the true header row (the one containing the
  "Hierarchy ID" marker) may be preceded by a few noise lines.
- Pasted text, three columns ``Title, Type, ID`` separated by tabs or
  runs of two or more spaces.

Quoted CSV fields may not span lines; each physical line is one row.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from plumb.src.config import DEFAULT_CONFIG, PlumbConfig

logger = logging.getLogger(__name__)

_TAB_SPLIT = re.compile(r"\t+")
_SPACE_SPLIT = re.compile(r"\s{2,}")

# Header text -> CsvRow attribute
CSV_COLUMNS: dict[str, str] = {
    "Hierarchy ID": "hierarchy_id",
    "Hierarchy Name": "hierarchy_name",
    "Split Title": "split_title",
    "Unit Title": "unit_title",
    "EdgeEx Lesson ID": "edgeex_lesson_id",
    "EdgeEx Lesson Title": "edgeex_lesson_title",
    "Alignment Identifier": "alignment_identifier",
    "Variant Identifier": "variant_identifier",
    "Subject": "subject",
    "Title": "title",
    "Source Order": "source_order",
}

UNKNOWN_TYPE = "Unknown"


class ParseErrorKind(str, Enum):
    """Tagged failure kinds raised while parsing input text."""

    NO_HEADER_FOUND = "no_header_found"
    EMPTY_DATASET = "empty_dataset"


class ParseError(Exception):
    """Raised when input text cannot produce any hierarchy.

    Attributes:
        kind: Machine-readable failure kind.
    """

    def __init__(self, kind: ParseErrorKind, message: str) -> None:
        self.kind = kind
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": str(self)}


# ===================================================================
# Row types
# ===================================================================


@dataclass
class CsvRow:
    """One data row of a CSV export, mapped through the header.

    Unrecognized columns are kept verbatim in ``extra``.
    """

    hierarchy_id: str = ""
    hierarchy_name: str = ""
    split_title: str = ""
    unit_title: str = ""
    edgeex_lesson_id: str = ""
    edgeex_lesson_title: str = ""
    alignment_identifier: str = ""
    variant_identifier: str = ""
    subject: str = ""
    title: str = ""
    source_order: str | None = None
    extra: dict[str, str] = field(default_factory=dict)


@dataclass
class CsvTable:
    """Result of parsing CSV text.

    Attributes:
        header: Header cells as they appear, stripped.
        column_index: Header text -> column position (first occurrence wins).
        rows: Data rows that carry a hierarchy id.
        header_line: Index of the header among the non-blank lines.
    """

    header: list[str]
    column_index: dict[str, int]
    rows: list[CsvRow]
    header_line: int = 0


@dataclass(frozen=True)
class TextRow:
    """One pasted row in ``(title, type, id)`` form.

    ``synthesized`` is True when the id was generated because the source
    row had none; such ids are unique per parse and never stable.
    """

    title: str
    type: str
    id: str
    position: int = 0
    synthesized: bool = False


# ===================================================================
# CSV
# ===================================================================


def split_csv_line(line: str) -> list[str]:
    """Split one CSV line into raw (unstripped) fields.

    A ``"`` toggles quoting; ``""`` inside quotes is a literal quote; a
    comma outside quotes ends the field.
    """
    result: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            result.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    result.append("".join(current))
    return result


def find_header_row(lines: list[str], config: PlumbConfig | None = None) -> int:
    """Return the index of the header among *lines* (already non-blank).

    Raises:
        ParseError: NO_HEADER_FOUND when the marker is absent from the
            scan window.
    """
    cfg = config or DEFAULT_CONFIG
    for index, line in enumerate(lines[: cfg.header_scan_lines]):
        if cfg.header_marker in line:
            logger.debug("Header row found at non-blank line %d", index)
            return index
    raise ParseError(
        ParseErrorKind.NO_HEADER_FOUND,
        f"Could not find CSV header row containing '{cfg.header_marker}' "
        f"in the first {cfg.header_scan_lines} lines",
    )


def _map_row(header: list[str], values: list[str]) -> CsvRow:
    """Assign stripped values to CsvRow attributes by header position."""
    mapped: dict[str, Any] = {}
    extra: dict[str, str] = {}
    for index, name in enumerate(header):
        value = values[index].strip() if index < len(values) else ""
        attr = CSV_COLUMNS.get(name)
        if attr is None:
            if name:
                extra[name] = value
        elif attr not in mapped:
            mapped[attr] = value
    if "source_order" in mapped and not mapped["source_order"]:
        mapped["source_order"] = None
    return CsvRow(extra=extra, **mapped)


def parse_csv(content: str, config: PlumbConfig | None = None) -> CsvTable:
    """Parse CSV export text into a table of data rows.

    Blank rows and rows with no hierarchy id are dropped. The returned
    table may hold zero rows; builders decide whether that is fatal.

    Raises:
        ParseError: NO_HEADER_FOUND when no header row is detected.
    """
    lines = [line for line in content.splitlines() if line.strip()]
    header_index = find_header_row(lines, config)
    header = [cell.strip() for cell in split_csv_line(lines[header_index])]

    column_index: dict[str, int] = {}
    for index, name in enumerate(header):
        column_index.setdefault(name, index)

    rows: list[CsvRow] = []
    dropped = 0
    for line in lines[header_index + 1 :]:
        values = split_csv_line(line)
        if all(not v.strip() for v in values):
            dropped += 1
            continue
        row = _map_row(header, values)
        if not row.hierarchy_id:
            dropped += 1
            continue
        rows.append(row)

    if dropped:
        logger.debug("Dropped %d CSV rows without usable data", dropped)

    return CsvTable(
        header=header,
        column_index=column_index,
        rows=rows,
        header_line=header_index,
    )


# ===================================================================
# Pasted text
# ===================================================================


def split_text_line(line: str) -> list[str]:
    """Split a pasted line on tabs, or on 2+ spaces when it has no tab.

    Empty fields are dropped.
    """
    pattern = _TAB_SPLIT if "\t" in line else _SPACE_SPLIT
    return [part.strip() for part in pattern.split(line) if part.strip()]


def _is_text_header(line: str) -> bool:
    lowered = line.lower()
    return "title" in lowered and "type" in lowered and "id" in lowered


def parse_text(content: str, parse_token: str | None = None) -> list[TextRow]:
    """Parse pasted text into ``(title, type, id)`` rows.

    Rows with three or more fields use the first three. Rows with two
    fields or one field get a synthesized id built from the visible
    fields, the row position and *parse_token*, so synthesized ids are
    unique to this parse and never collide with a real id in the input.

    Args:
        content: Raw pasted text.
        parse_token: Per-parse suffix for synthesized ids. A random token
            is used when omitted.

    Raises:
        ParseError: EMPTY_DATASET when the text has no rows.
    """
    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        raise ParseError(ParseErrorKind.EMPTY_DATASET, "No data found in pasted text")

    start = 1 if _is_text_header(lines[0]) else 0
    token = parse_token or uuid.uuid4().hex[:8]

    split_lines = [split_text_line(line) for line in lines[start:]]
    real_ids = {parts[2] for parts in split_lines if len(parts) >= 3}

    rows: list[TextRow] = []
    for parts in split_lines:
        position = len(rows)
        if len(parts) >= 3:
            rows.append(TextRow(title=parts[0], type=parts[1], id=parts[2], position=position))
            continue
        if len(parts) == 2:
            title, row_type = parts
            candidate = f"{title}-{row_type}-{position}~{token}"
        elif len(parts) == 1:
            title, row_type = parts[0], UNKNOWN_TYPE
            candidate = f"item-{position}~{token}"
        else:
            continue
        while candidate in real_ids:
            candidate += "~"
        rows.append(
            TextRow(
                title=title,
                type=row_type,
                id=candidate,
                position=position,
                synthesized=True,
            )
        )

    if not rows:
        raise ParseError(ParseErrorKind.EMPTY_DATASET, "No data rows found in pasted text")
    return rows
