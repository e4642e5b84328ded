"""
Flat hierarchy builder for CSV exports.

One CSV row is one lesson. Rows are deduplicated by lesson key and the
surviving lessons are re-numbered densely in source order.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from plumb.src.config import DEFAULT_CONFIG, PlumbConfig
from plumb.src.models import (
    BuildResult,
    Hierarchy,
    HierarchyType,
    HierarchyVersion,
    Lesson,
    extract_course_id,
    infer_implementation_model,
)
from plumb.src.rows import CsvRow, ParseError, ParseErrorKind, parse_csv

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_order(value: str | None) -> int | None:
    """Parse an explicit order cell; None when absent or not an integer."""
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        logger.debug("Ignoring unparseable source order %r", value)
        return None


class CsvHierarchyBuilder:
    """
    Builds a Hierarchy from the rows of one CSV export.

    Lesson identity is the alignment identifier, else the variant
    identifier, else the EdgeEx lesson id. The first row carrying a key
    wins; later rows with the same key are ignored, not merged.
    """

    def __init__(
        self,
        config: PlumbConfig | None = None,
        clock: Callable[[], datetime] | None = None,
        id_token: str | None = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self._clock = clock or _utc_now
        self._id_token = id_token

    @staticmethod
    def lesson_key(row: CsvRow) -> str:
        """Matching key for a row, empty when the row has no identifier."""
        return row.alignment_identifier or row.variant_identifier or row.edgeex_lesson_id

    def build(self, rows: list[CsvRow]) -> BuildResult:
        """Convert CSV rows (all from one hierarchy) into a Hierarchy.

        Raises:
            ParseError: EMPTY_DATASET when *rows* is empty.
        """
        if not rows:
            raise ParseError(ParseErrorKind.EMPTY_DATASET, "No data rows found in CSV")

        first = rows[0]
        hierarchy_id = first.hierarchy_id
        name = first.hierarchy_name
        token = self._id_token or uuid.uuid4().hex[:8]

        warnings: list[str] = []
        seen: dict[str, int] = {}
        keyed: list[tuple[int, Lesson]] = []

        for index, row in enumerate(rows):
            key = self.lesson_key(row)
            if not key:
                # no identifier at all: unique per parse, never matches elsewhere
                key = f"{hierarchy_id}-row-{index + 1}~{token}"
            if key in seen:
                logger.debug("Ignoring duplicate lesson key %s at row %d", key, index + 1)
                warnings.append(
                    f"Row {index + 1} duplicates lesson key '{key}' "
                    f"(first seen at row {seen[key]}); kept the first row"
                )
                continue
            seen[key] = index + 1

            explicit = parse_order(row.source_order)
            sort_key = explicit if explicit is not None else index + 1
            keyed.append((sort_key, self._make_lesson(row, key, index)))

        keyed.sort(key=lambda item: item[0])
        lessons = []
        for rank, (_, lesson) in enumerate(keyed, start=1):
            lesson.order = rank
            lessons.append(lesson)

        hierarchy = Hierarchy(
            id=hierarchy_id,
            name=name,
            type=HierarchyType.COURSE,
            versions=[HierarchyVersion.initial(hierarchy_id, self._clock())],
            lessons=lessons,
            course_id=extract_course_id(name),
            implementation_model=infer_implementation_model(name),
            subject=first.subject or self.config.default_subject,
        )
        logger.info(
            "Created hierarchy %s (ID: %s) with %d lessons from %d rows",
            hierarchy.name,
            hierarchy.id,
            len(lessons),
            len(rows),
        )
        return BuildResult(hierarchy=hierarchy, warnings=warnings)

    @staticmethod
    def _make_lesson(row: CsvRow, key: str, index: int) -> Lesson:
        title = row.title or row.edgeex_lesson_title or f"Lesson {index + 1}"
        metadata: dict[str, Any] = {
            "unitTitle": row.unit_title,
            "splitTitle": row.split_title,
            "edgeExLessonId": row.edgeex_lesson_id,
            "alignmentIdentifier": row.alignment_identifier,
            "variantIdentifier": row.variant_identifier,
        }
        if row.extra:
            metadata["extra"] = dict(row.extra)
        return Lesson(
            id=key,
            title=title,
            order=index + 1,
            variant=row.variant_identifier or None,
            metadata=metadata,
        )


def process_csv_content(
    content: str,
    config: PlumbConfig | None = None,
    clock: Callable[[], datetime] | None = None,
    id_token: str | None = None,
) -> BuildResult:
    """Parse CSV export text and build its hierarchy.

    Raises:
        ParseError: NO_HEADER_FOUND or EMPTY_DATASET.
    """
    table = parse_csv(content, config)
    return CsvHierarchyBuilder(config=config, clock=clock, id_token=id_token).build(table.rows)
