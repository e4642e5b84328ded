"""Subject-specific product rules.

Each subject carries a small catalog of rules that a course must satisfy
for its implementation model. Rules inspect lesson and child titles,
grouped by split (semester), and report ``ProductRuleViolation`` records.
Subjects without a catalog have no rules.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from plumb.src.config import DEFAULT_CONFIG, PlumbConfig
from plumb.src.models import (
    Hierarchy,
    ImplementationModel,
    ProductRuleViolation,
    Severity,
)

_IC_HONORS = (ImplementationModel.IC, ImplementationModel.HONORS)
_CR_ONLY = (ImplementationModel.CR,)
_UNNAMED_SPLIT = "(no split)"


@dataclass(frozen=True)
class CourseItem:
    """A lesson or lesson child, with the split it belongs to."""

    id: str
    title: str
    type: str
    split: str


@dataclass(frozen=True)
class ProductRule:
    """A product rule definition.

    Attributes:
        rule_id: Stable identifier (e.g. 'SCI-001').
        name: Short rule name.
        description: What the rule requires.
        subject: Subject the rule applies to.
        models: Implementation models the rule applies to; empty means all.
        severity: Severity of a violation.
    """

    rule_id: str
    name: str
    description: str
    subject: str
    models: tuple[ImplementationModel, ...] = ()
    severity: Severity = Severity.ERROR

    def applies_to(self, hierarchy: Hierarchy) -> bool:
        if hierarchy.subject != self.subject:
            return False
        return not self.models or hierarchy.implementation_model in self.models


RULE_CATALOG: tuple[ProductRule, ...] = (
    ProductRule(
        rule_id="SCI-001",
        name="Virtual Labs Limit",
        description="Science can only have 20 virtual labs",
        subject="Science",
    ),
    ProductRule(
        rule_id="SCI-IC-HON-001",
        name="Project Requirement",
        description=(
            "Science IC/Honors: at least 1 project per semester "
            "and ideally in the same semester"
        ),
        subject="Science",
        models=_IC_HONORS,
        severity=Severity.WARNING,
    ),
    ProductRule(
        rule_id="SCI-CR-001",
        name="Teacher Graded Content Removal",
        description="Science CR only: all teacher graded content is removed (FR, labs, etc.)",
        subject="Science",
        models=_CR_ONLY,
    ),
    ProductRule(
        rule_id="MATH-IC-HON-001",
        name="Short Writings Requirement",
        description="Math IC and Honors: 2 short writings per semester",
        subject="Math",
        models=_IC_HONORS,
        severity=Severity.WARNING,
    ),
    ProductRule(
        rule_id="MATH-CR-001",
        name="Teacher Graded Content Removal",
        description="Math CR only: all teacher graded content must be removed",
        subject="Math",
        models=_CR_ONLY,
    ),
)


def rules_for_subject(subject: str | None) -> list[ProductRule]:
    """All catalog rules for *subject*, in catalog order."""
    return [rule for rule in RULE_CATALOG if rule.subject == subject]


def collect_items(hierarchy: Hierarchy) -> list[CourseItem]:
    """Lessons and their children, in order, tagged with their split."""
    items: list[CourseItem] = []
    for lesson in hierarchy.lessons:
        split = lesson.metadata.get("splitTitle") or _UNNAMED_SPLIT
        items.append(
            CourseItem(
                id=lesson.id,
                title=lesson.title,
                type=str(lesson.metadata.get("type", "")),
                split=split,
            )
        )
        for child in lesson.children:
            items.append(CourseItem(id=child.id, title=child.title, type=child.type, split=split))
    return items


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(keyword)}s?\b", re.IGNORECASE)


def _matching(items: list[CourseItem], keywords: tuple[str, ...]) -> list[CourseItem]:
    patterns = [_keyword_pattern(k) for k in keywords]
    return [item for item in items if any(p.search(item.title) for p in patterns)]


def _splits(items: list[CourseItem]) -> list[str]:
    seen: list[str] = []
    for item in items:
        if item.split not in seen:
            seen.append(item.split)
    return seen


# ===================================================================
# Checks: each returns the violation details, or None when satisfied
# ===================================================================


def _check_virtual_labs(items: list[CourseItem], config: PlumbConfig) -> str | None:
    labs = _matching(items, ("virtual lab",))
    if len(labs) > config.virtual_lab_limit:
        return f"Found {len(labs)} virtual labs; the limit is {config.virtual_lab_limit}"
    return None


def _per_split_minimum(
    items: list[CourseItem], keyword: str, minimum: int, label: str
) -> str | None:
    short: list[str] = []
    for split in _splits(items):
        count = len(_matching([i for i in items if i.split == split], (keyword,)))
        if count < minimum:
            short.append(f"{split} ({count})")
    if short:
        return f"Fewer than {minimum} {label} in: {', '.join(short)}"
    return None


def _check_projects(items: list[CourseItem], config: PlumbConfig) -> str | None:
    return _per_split_minimum(items, "project", config.projects_per_split, "project(s)")


def _check_short_writings(items: list[CourseItem], config: PlumbConfig) -> str | None:
    return _per_split_minimum(
        items, "short writing", config.short_writings_per_split, "short writing(s)"
    )


def _check_teacher_graded(items: list[CourseItem], config: PlumbConfig) -> str | None:
    graded = _matching(items, config.teacher_graded_keywords)
    if graded:
        titles = ", ".join(f'"{i.title}"' for i in graded)
        return f"Found {len(graded)} teacher graded item(s): {titles}"
    return None


_CHECKS: dict[str, Callable[[list[CourseItem], PlumbConfig], str | None]] = {
    "SCI-001": _check_virtual_labs,
    "SCI-IC-HON-001": _check_projects,
    "SCI-CR-001": _check_teacher_graded,
    "MATH-IC-HON-001": _check_short_writings,
    "MATH-CR-001": _check_teacher_graded,
}


def evaluate_product_rules(
    hierarchy: Hierarchy, config: PlumbConfig | None = None
) -> list[ProductRuleViolation]:
    """Evaluate every applicable catalog rule against *hierarchy*.

    Returns:
        Violations sorted by rule id.
    """
    cfg = config or DEFAULT_CONFIG
    items = collect_items(hierarchy)
    violations: list[ProductRuleViolation] = []

    for rule in rules_for_subject(hierarchy.subject):
        if not rule.applies_to(hierarchy):
            continue
        details = _CHECKS[rule.rule_id](items, cfg)
        if details is None:
            continue
        violations.append(
            ProductRuleViolation(
                rule_id=rule.rule_id,
                rule_name=rule.name,
                rule_description=rule.description,
                hierarchy_id=hierarchy.id,
                hierarchy_name=hierarchy.name,
                severity=rule.severity,
                details=details,
            )
        )

    return sorted(violations, key=lambda v: v.rule_id)
