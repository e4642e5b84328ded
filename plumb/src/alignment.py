"""Side-by-side lesson alignment between an anchor and a compared course.

This is the display pairing, distinct from the id-keyed diff in
``comparison``. Lessons are matched in three tiers, each tier pass
completing before the next begins:

1. exact id equality;
2. base id equality, where the course prefix of ``<prefix>-lesson-<n>``
   ids is stripped and ids carrying the new-lesson marker never match;
3. exact title equality.

Each compared lesson is paired at most once. Unmatched compared lessons
are spliced into the anchor-ordered rows so that compared-side order
reads monotonically.
"""

from __future__ import annotations

from dataclasses import dataclass

from plumb.src.config import DEFAULT_CONFIG, PlumbConfig
from plumb.src.models import (
    AlignmentStatus,
    ChildComparison,
    Lesson,
    LessonChild,
    LessonComparison,
)


@dataclass(frozen=True)
class AlignmentSummary:
    """Row counts for an alignment.

    ``matched`` counts both same and order-changed rows, so
    ``matched + removed`` equals the anchor lesson count and
    ``matched + added`` equals the compared lesson count.
    """

    matched: int
    order_changed: int
    removed: int
    added: int

    @classmethod
    def from_rows(cls, rows: list[LessonComparison]) -> AlignmentSummary:
        counts = {status: 0 for status in AlignmentStatus}
        for row in rows:
            counts[row.status] += 1
        return cls(
            matched=counts[AlignmentStatus.SAME] + counts[AlignmentStatus.ORDER_CHANGED],
            order_changed=counts[AlignmentStatus.ORDER_CHANGED],
            removed=counts[AlignmentStatus.REMOVED],
            added=counts[AlignmentStatus.ADDED],
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "matched": self.matched,
            "order_changed": self.order_changed,
            "removed": self.removed,
            "added": self.added,
        }


def get_base_lesson_id(lesson_id: str, config: PlumbConfig | None = None) -> str | None:
    """Strip the course prefix from a lesson id.

    Examples:
    "ic-lesson-1" -> "lesson-1"
    "cr-lesson-1" -> "lesson-1"
    "cr-new-1" -> None (new lessons never match by base id)
    "L-0042" -> "L-0042"
    """
    cfg = config or DEFAULT_CONFIG
    if cfg.new_lesson_marker in lesson_id:
        return None
    parts = lesson_id.split("-")
    if len(parts) >= 3 and parts[1] == cfg.lesson_segment:
        return "-".join(parts[1:])
    return lesson_id


def _match_tiers(
    anchor_lessons: list[Lesson],
    compared_lessons: list[Lesson],
    config: PlumbConfig,
) -> dict[int, int]:
    """Pair anchor positions to compared positions, tier by tier."""
    pairs: dict[int, int] = {}
    taken: set[int] = set()

    compared_base = [get_base_lesson_id(c.id, config) for c in compared_lessons]

    def run_tier(key_anchor, key_compared) -> None:
        for a_pos, anchor_lesson in enumerate(anchor_lessons):
            if a_pos in pairs:
                continue
            key = key_anchor(a_pos, anchor_lesson)
            if key is None:
                continue
            for c_pos, compared_lesson in enumerate(compared_lessons):
                if c_pos in taken:
                    continue
                if key_compared(c_pos, compared_lesson) == key:
                    pairs[a_pos] = c_pos
                    taken.add(c_pos)
                    break

    run_tier(lambda _, a: a.id, lambda _, c: c.id)
    run_tier(
        lambda _, a: get_base_lesson_id(a.id, config),
        lambda pos, _: compared_base[pos],
    )
    run_tier(lambda _, a: a.title, lambda _, c: c.title)
    return pairs


def generate_lesson_comparisons(
    anchor_lessons: list[Lesson],
    compared_lessons: list[Lesson],
    config: PlumbConfig | None = None,
) -> list[LessonComparison]:
    """Build the aligned rows for two lesson lists."""
    cfg = config or DEFAULT_CONFIG
    pairs = _match_tiers(anchor_lessons, compared_lessons, cfg)

    rows: list[LessonComparison] = []
    for a_pos, anchor_lesson in enumerate(anchor_lessons):
        c_pos = pairs.get(a_pos)
        if c_pos is None:
            rows.append(
                LessonComparison(
                    anchor_lesson=anchor_lesson,
                    compared_lesson=None,
                    status=AlignmentStatus.REMOVED,
                    anchor_order=anchor_lesson.order,
                    compared_order=None,
                )
            )
            continue
        matched = compared_lessons[c_pos]
        rows.append(
            LessonComparison(
                anchor_lesson=anchor_lesson,
                compared_lesson=matched,
                status=AlignmentStatus.SAME
                if anchor_lesson.order == matched.order
                else AlignmentStatus.ORDER_CHANGED,
                anchor_order=anchor_lesson.order,
                compared_order=matched.order,
            )
        )

    rows.sort(key=lambda r: (r.anchor_order, r.compared_order or 0))

    matched_positions = set(pairs.values())
    added = [
        LessonComparison(
            anchor_lesson=None,
            compared_lesson=lesson,
            status=AlignmentStatus.ADDED,
            anchor_order=0,
            compared_order=lesson.order,
        )
        for c_pos, lesson in enumerate(compared_lessons)
        if c_pos not in matched_positions
    ]
    added.sort(key=lambda r: r.compared_order or 0)

    for row in added:
        order = row.compared_order or 0
        insert_at = next(
            (
                i
                for i, existing in enumerate(rows)
                if existing.compared_order is not None and existing.compared_order > order
            ),
            None,
        )
        if insert_at is None:
            rows.append(row)
        else:
            rows.insert(insert_at, row)

    return rows


def compare_children(
    anchor_children: list[LessonChild],
    compared_children: list[LessonChild],
) -> list[ChildComparison]:
    """Pair children by id: anchor children first, then new compared ones."""
    anchor_map = {c.id: c for c in anchor_children}
    compared_map = {c.id: c for c in compared_children}

    ordered_ids: list[str] = []
    for child in [*anchor_children, *compared_children]:
        if child.id not in ordered_ids:
            ordered_ids.append(child.id)

    rows: list[ChildComparison] = []
    for child_id in ordered_ids:
        anchor_child = anchor_map.get(child_id)
        compared_child = compared_map.get(child_id)
        if anchor_child and compared_child:
            status = AlignmentStatus.SAME
        elif anchor_child:
            status = AlignmentStatus.REMOVED
        else:
            status = AlignmentStatus.ADDED
        rows.append(ChildComparison(anchor_child, compared_child, status))
    return rows


def child_rows(row: LessonComparison) -> list[ChildComparison]:
    """Children to show beneath one aligned lesson row.

    A removed lesson shows all its children as removed, an added lesson
    all as added, and a matched pair is compared child by child.
    """
    anchor_children = row.anchor_lesson.children if row.anchor_lesson else []
    compared_children = row.compared_lesson.children if row.compared_lesson else []

    if row.status == AlignmentStatus.REMOVED:
        return [ChildComparison(c, None, AlignmentStatus.REMOVED) for c in anchor_children]
    if row.status == AlignmentStatus.ADDED:
        return [ChildComparison(None, c, AlignmentStatus.ADDED) for c in compared_children]
    return compare_children(anchor_children, compared_children)
