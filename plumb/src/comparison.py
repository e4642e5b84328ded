"""Comparison engine: anchor hierarchy versus one or more others.

Every comparison is strictly anchor-vs-one-other; the N-way form is the
pairwise comparison applied once per non-anchor hierarchy. All functions
are total over empty lesson lists, and output order follows input order
so results are reproducible for fixed inputs.
"""

from __future__ import annotations

import logging

from plumb.src.config import DEFAULT_CONFIG, PlumbConfig
from plumb.src.models import (
    ComparisonResult,
    Difference,
    DifferenceLevel,
    DifferenceType,
    Hierarchy,
    Lesson,
    LessonOrderIssue,
    MetadataIssue,
    Severity,
)
from plumb.src.rules import evaluate_product_rules

logger = logging.getLogger(__name__)


def _positions_by_id(lessons: list[Lesson]) -> dict[str, list[int]]:
    """Map lesson id -> positions of every lesson carrying it, in list order."""
    groups: dict[str, list[int]] = {}
    for position, lesson in enumerate(lessons):
        groups.setdefault(lesson.id, []).append(position)
    return groups


def _pair_by_id(
    anchor_lessons: list[Lesson],
    compared_lessons: list[Lesson],
) -> tuple[list[Lesson | None], list[Lesson]]:
    """Pair the k-th anchor occurrence of an id with the k-th compared one.

    Returns:
        Tuple of (partner per anchor lesson, unpaired compared lessons in
        compared order).
    """
    compared_positions = _positions_by_id(compared_lessons)
    taken: dict[str, int] = {}
    paired: set[int] = set()
    partners: list[Lesson | None] = []
    for lesson in anchor_lessons:
        occurrence = taken.get(lesson.id, 0)
        candidates = compared_positions.get(lesson.id, [])
        if occurrence < len(candidates):
            position = candidates[occurrence]
            partners.append(compared_lessons[position])
            paired.add(position)
            taken[lesson.id] = occurrence + 1
        else:
            partners.append(None)

    unpaired = [
        lesson for position, lesson in enumerate(compared_lessons) if position not in paired
    ]
    return partners, unpaired


def _model_label(hierarchy: Hierarchy) -> str | None:
    model = hierarchy.implementation_model
    return model.value if model else None


def compare_metadata(anchor: Hierarchy, compared: Hierarchy) -> list[MetadataIssue]:
    """Report subject, implementation model and lesson count mismatches."""
    issues: list[MetadataIssue] = []

    if anchor.subject != compared.subject:
        issues.append(
            MetadataIssue(
                field="Subject",
                hierarchy_id=compared.id,
                expected_value=anchor.subject,
                actual_value=compared.subject,
                description=(
                    f'Subject mismatch: anchor has "{anchor.subject}", '
                    f'compared has "{compared.subject}"'
                ),
            )
        )

    anchor_model = _model_label(anchor)
    compared_model = _model_label(compared)
    if anchor_model != compared_model:
        issues.append(
            MetadataIssue(
                field="Implementation Model",
                hierarchy_id=compared.id,
                expected_value=anchor_model,
                actual_value=compared_model,
                description=(
                    f'Implementation model mismatch: anchor has "{anchor_model}", '
                    f'compared has "{compared_model}"'
                ),
            )
        )

    if anchor.lesson_count != compared.lesson_count:
        issues.append(
            MetadataIssue(
                field="Lesson Count",
                hierarchy_id=compared.id,
                expected_value=anchor.lesson_count,
                actual_value=compared.lesson_count,
                description=(
                    f"Lesson count mismatch: anchor has {anchor.lesson_count} lessons, "
                    f"compared has {compared.lesson_count} lessons"
                ),
            )
        )

    return issues


def compare_lesson_children(anchor_lesson: Lesson, compared_lesson: Lesson) -> list[Difference]:
    """Presence/absence diff of the direct children of a matched pair."""
    differences: list[Difference] = []
    anchor_children = anchor_lesson.children
    compared_children = compared_lesson.children
    anchor_ids = {c.id for c in anchor_children}
    compared_ids = {c.id for c in compared_children}

    for child in anchor_children:
        if child.id not in compared_ids:
            differences.append(
                Difference(
                    type=DifferenceType.MISSING,
                    level=DifferenceLevel.CHILD,
                    path=f"Lesson: {anchor_lesson.title} > {child.type}: {child.title}",
                    description=(
                        f'{child.type} "{child.title}" is missing from lesson '
                        f'"{anchor_lesson.title}" in compared hierarchy'
                    ),
                    severity=Severity.ERROR,
                    lesson_id=anchor_lesson.id,
                    child_id=child.id,
                )
            )

    for child in compared_children:
        if child.id not in anchor_ids:
            differences.append(
                Difference(
                    type=DifferenceType.EXTRA,
                    level=DifferenceLevel.CHILD,
                    path=f"Lesson: {compared_lesson.title} > {child.type}: {child.title}",
                    description=(
                        f'Extra {child.type} "{child.title}" found in lesson '
                        f'"{compared_lesson.title}" in compared hierarchy'
                    ),
                    severity=Severity.INFO,
                    lesson_id=compared_lesson.id,
                    child_id=child.id,
                )
            )

    return differences


def compare_lessons(
    anchor_lessons: list[Lesson],
    compared_lessons: list[Lesson],
    compared_hierarchy_id: str,
    config: PlumbConfig | None = None,
) -> tuple[list[Difference], list[LessonOrderIssue]]:
    """Diff two lesson lists matched by exact lesson id.

    A repeated id pairs occurrence by occurrence, so a hierarchy compared
    against itself always diffs clean. Differences are emitted in anchor
    order (order, variant and child differences for matched lessons,
    missing for unmatched ones), followed by extra lessons in compared
    order.

    Returns:
        Tuple of (differences, lesson order issues).
    """
    cfg = config or DEFAULT_CONFIG
    standard = cfg.standard_variant_label
    partners, unpaired = _pair_by_id(anchor_lessons, compared_lessons)

    differences: list[Difference] = []
    order_issues: list[LessonOrderIssue] = []

    for anchor_lesson, compared_lesson in zip(anchor_lessons, partners):
        path = f"Lesson: {anchor_lesson.title}"

        if compared_lesson is None:
            differences.append(
                Difference(
                    type=DifferenceType.MISSING,
                    level=DifferenceLevel.LESSON,
                    path=path,
                    description=(
                        f'Lesson "{anchor_lesson.title}" is missing in compared hierarchy'
                    ),
                    severity=Severity.ERROR,
                    lesson_id=anchor_lesson.id,
                )
            )
            continue

        if anchor_lesson.order != compared_lesson.order:
            order_issues.append(
                LessonOrderIssue(
                    lesson_id=anchor_lesson.id,
                    lesson_title=anchor_lesson.title,
                    expected_order=anchor_lesson.order,
                    actual_order=compared_lesson.order,
                    hierarchy_id=compared_hierarchy_id,
                )
            )
            differences.append(
                Difference(
                    type=DifferenceType.ORDER,
                    level=DifferenceLevel.LESSON,
                    path=path,
                    description=(
                        f"Lesson order mismatch: expected {anchor_lesson.order}, "
                        f"found {compared_lesson.order}"
                    ),
                    severity=Severity.WARNING,
                    lesson_id=anchor_lesson.id,
                )
            )

        if anchor_lesson.variant != compared_lesson.variant:
            differences.append(
                Difference(
                    type=DifferenceType.MISMATCH,
                    level=DifferenceLevel.LESSON,
                    path=path,
                    description=(
                        f'Variant mismatch: anchor has "{anchor_lesson.variant or standard}", '
                        f'compared has "{compared_lesson.variant or standard}"'
                    ),
                    severity=Severity.WARNING,
                    lesson_id=anchor_lesson.id,
                )
            )

        differences.extend(compare_lesson_children(anchor_lesson, compared_lesson))

    for compared_lesson in unpaired:
        differences.append(
            Difference(
                type=DifferenceType.EXTRA,
                level=DifferenceLevel.LESSON,
                path=f"Lesson: {compared_lesson.title}",
                description=(
                    f'Extra lesson "{compared_lesson.title}" found in compared hierarchy'
                ),
                severity=Severity.INFO,
                lesson_id=compared_lesson.id,
            )
        )

    return differences, order_issues


def generate_comparison_result(
    anchor: Hierarchy,
    compared: Hierarchy,
    config: PlumbConfig | None = None,
) -> ComparisonResult:
    """Compare one hierarchy against the anchor."""
    differences, order_issues = compare_lessons(
        anchor.lessons, compared.lessons, compared.id, config
    )
    metadata_issues = compare_metadata(anchor, compared)
    violations = evaluate_product_rules(compared, config)

    result = ComparisonResult(
        hierarchy_id=compared.id,
        hierarchy_name=compared.name,
        differences=tuple(differences),
        product_rule_violations=tuple(violations),
        metadata_issues=tuple(metadata_issues),
        lesson_order_issues=tuple(order_issues),
    )
    logger.info(
        "Compared %s against anchor %s: %d differences, %d metadata issues, "
        "%d order issues, %d rule violations",
        compared.name,
        anchor.name,
        len(differences),
        len(metadata_issues),
        len(order_issues),
        len(violations),
    )
    return result


def generate_comparison_results(
    anchor: Hierarchy,
    compared_hierarchies: list[Hierarchy],
    config: PlumbConfig | None = None,
) -> list[ComparisonResult]:
    """Compare each hierarchy against the anchor, in input order.

    *compared_hierarchies* holds the non-anchor inputs. Every entry is
    compared, including one that shares the anchor's id (two exports of
    the same hierarchy).
    """
    return [
        generate_comparison_result(anchor, compared, config)
        for compared in compared_hierarchies
    ]
