"""Plumb data models for course hierarchy comparison.

Defines the hierarchy and lesson records produced by both builders and
the comparison records produced by the engine. All models are
dataclasses with dictionary serialization; hierarchies are treated as
immutable once built (a re-parse replaces them wholesale).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

_COURSE_ID_PATTERN = re.compile(r"([A-Z]+-\w+)")


class ImplementationModel(str, Enum):
    """Course variant classification inferred from the hierarchy name."""

    IC = "IC"
    CR = "CR"
    HONORS = "Honors"


class HierarchyType(str, Enum):
    """Kind of hierarchy."""

    COURSE = "course"
    ASSESSMENT_BUNDLE = "assessment-bundle"
    TIM_PATHWAY = "TIM-pathway"
    TIM_BUNDLE = "TIM-bundle"
    HIERARCHY_LESSON = "hierarchy-lesson"


class DifferenceType(str, Enum):
    """Category of a structural difference."""

    MISSING = "missing"
    EXTRA = "extra"
    MISMATCH = "mismatch"
    ORDER = "order"


class DifferenceLevel(str, Enum):
    """Hierarchy level a difference was found at."""

    COURSE = "course"
    SEMESTER = "semester"
    UNIT = "unit"
    LESSON = "lesson"
    CHILD = "child"


class Severity(str, Enum):
    """Severity of a difference or rule violation."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class AlignmentStatus(str, Enum):
    """Status of one row in the side-by-side lesson alignment."""

    SAME = "same"
    REMOVED = "removed"
    ADDED = "added"
    ORDER_CHANGED = "order-changed"


# ===================================================================
# Hierarchy records
# ===================================================================


@dataclass(frozen=True)
class LessonChild:
    """A direct child (Activity, Quiz, ...) captured under a lesson."""

    id: str
    title: str
    type: str

    def to_dict(self) -> dict[str, str]:
        """Serialize to dictionary."""
        return {"id": self.id, "title": self.title, "type": self.type}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LessonChild:
        """Deserialize from dictionary."""
        return cls(id=data["id"], title=data.get("title", ""), type=data.get("type", ""))


@dataclass
class Lesson:
    """A top-level lesson within a hierarchy.

    Attributes:
        id: Matching key, stable across repeated parses of the same source.
        title: Display title.
        order: Dense 1-based position within the hierarchy.
        variant: Optional variant label (e.g. "Test", "Exam").
        metadata: Open key-value map. Tree-derived lessons carry
            ``children`` as a list of ``LessonChild``.
    """

    id: str
    title: str
    order: int
    variant: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def children(self) -> list[LessonChild]:
        """Children recorded in metadata, empty when absent."""
        raw = self.metadata.get("children") or []
        return [c if isinstance(c, LessonChild) else LessonChild.from_dict(c) for c in raw]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        metadata = dict(self.metadata)
        if "children" in metadata:
            metadata["children"] = [c.to_dict() for c in self.children]
        return {
            "id": self.id,
            "title": self.title,
            "order": self.order,
            "variant": self.variant,
            "metadata": metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Lesson:
        """Deserialize from dictionary."""
        metadata = dict(data.get("metadata") or {})
        if "children" in metadata:
            metadata["children"] = [LessonChild.from_dict(c) for c in metadata["children"]]
        return cls(
            id=data["id"],
            title=data["title"],
            order=data["order"],
            variant=data.get("variant"),
            metadata=metadata,
        )


@dataclass(frozen=True)
class HierarchyVersion:
    """A version snapshot of a hierarchy."""

    version_id: str
    version_number: str
    created_at: datetime
    is_latest: bool = True

    @classmethod
    def initial(cls, hierarchy_id: str, created_at: datetime) -> HierarchyVersion:
        """First (and latest) version of a freshly built hierarchy."""
        return cls(
            version_id=f"{hierarchy_id}-v1",
            version_number="1.0",
            created_at=created_at,
            is_latest=True,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "version_id": self.version_id,
            "version_number": self.version_number,
            "created_at": self.created_at.isoformat(),
            "is_latest": self.is_latest,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HierarchyVersion:
        """Deserialize from dictionary."""
        return cls(
            version_id=data["version_id"],
            version_number=data["version_number"],
            created_at=datetime.fromisoformat(data["created_at"]),
            is_latest=data.get("is_latest", True),
        )


@dataclass
class Hierarchy:
    """A course hierarchy built from one input source.

    Attributes:
        id: Hierarchy identity (not a lesson matching key).
        name: Display name.
        type: Kind of hierarchy.
        versions: Non-empty list; at least one marked latest.
        lessons: Lessons ordered by ``order``.
        course_id: Course code extracted from the name, if any.
        implementation_model: IC, CR or Honors, inferred from the name.
        subject: Subject area.
    """

    id: str
    name: str
    type: HierarchyType = HierarchyType.COURSE
    versions: list[HierarchyVersion] = field(default_factory=list)
    lessons: list[Lesson] = field(default_factory=list)
    course_id: str | None = None
    implementation_model: ImplementationModel | None = None
    subject: str | None = None

    def __post_init__(self) -> None:
        if self.versions and not any(v.is_latest for v in self.versions):
            raise ValueError("At least one hierarchy version must be marked latest")

    @property
    def current_version(self) -> HierarchyVersion | None:
        """The latest version, or None when no versions are recorded."""
        for version in reversed(self.versions):
            if version.is_latest:
                return version
        return None

    @property
    def lesson_count(self) -> int:
        """Number of lessons."""
        return len(self.lessons)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        current = self.current_version
        return {
            "id": self.id,
            "course_id": self.course_id,
            "name": self.name,
            "type": self.type.value,
            "implementation_model": self.implementation_model.value
            if self.implementation_model
            else None,
            "subject": self.subject,
            "versions": [v.to_dict() for v in self.versions],
            "current_version": current.to_dict() if current else None,
            "lessons": [lesson.to_dict() for lesson in self.lessons],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Hierarchy:
        """Deserialize from dictionary."""
        model = data.get("implementation_model")
        return cls(
            id=data["id"],
            name=data["name"],
            type=HierarchyType(data.get("type", HierarchyType.COURSE.value)),
            versions=[HierarchyVersion.from_dict(v) for v in data.get("versions", [])],
            lessons=[Lesson.from_dict(item) for item in data.get("lessons", [])],
            course_id=data.get("course_id"),
            implementation_model=ImplementationModel(model) if model else None,
            subject=data.get("subject"),
        )


def infer_implementation_model(name: str) -> ImplementationModel | None:
    """Infer the implementation model from a hierarchy name.

    Tokens are checked in fixed priority order IC, CR, Honors, so a name
    containing several tokens resolves to the first in that order.

    Examples:
    "Algebra 1 IC" -> IC
    "Algebra 1 CR (2024)" -> CR
    "Biology HON" -> Honors
    "Biology" -> None
    """
    upper = (name or "").upper()
    if " IC" in upper:
        return ImplementationModel.IC
    if " CR" in upper:
        return ImplementationModel.CR
    if " HON" in upper:
        return ImplementationModel.HONORS
    return None


def extract_course_id(name: str) -> str | None:
    """Extract a course code such as ``MTH-1001`` from a hierarchy name."""
    match = _COURSE_ID_PATTERN.search(name or "")
    return match.group(1) if match else None


# ===================================================================
# Comparison records
# ===================================================================


@dataclass(frozen=True)
class Difference:
    """A single structural difference between anchor and compared.

    Attributes:
        type: missing, extra, mismatch or order.
        level: Level the difference was found at.
        path: Human-readable location (e.g. ``Lesson: Slope``).
        description: Human-readable explanation.
        severity: error, warning or info.
        lesson_id: Id of the lesson involved.
        child_id: Id of the child involved, for child-level differences.
    """

    type: DifferenceType
    level: DifferenceLevel
    path: str
    description: str
    severity: Severity
    lesson_id: str = ""
    child_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "type": self.type.value,
            "level": self.level.value,
            "path": self.path,
            "description": self.description,
            "severity": self.severity.value,
            "lesson_id": self.lesson_id,
            "child_id": self.child_id,
        }


@dataclass(frozen=True)
class MetadataIssue:
    """A hierarchy-level field whose value differs from the anchor."""

    field: str
    hierarchy_id: str
    expected_value: Any
    actual_value: Any
    description: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "field": self.field,
            "hierarchy_id": self.hierarchy_id,
            "expected_value": self.expected_value,
            "actual_value": self.actual_value,
            "description": self.description,
        }


@dataclass(frozen=True)
class LessonOrderIssue:
    """A matched lesson whose order differs from the anchor."""

    lesson_id: str
    lesson_title: str
    expected_order: int
    actual_order: int
    hierarchy_id: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "lesson_id": self.lesson_id,
            "lesson_title": self.lesson_title,
            "expected_order": self.expected_order,
            "actual_order": self.actual_order,
            "hierarchy_id": self.hierarchy_id,
        }


@dataclass(frozen=True)
class ProductRuleViolation:
    """A subject-specific product rule the hierarchy fails."""

    rule_id: str
    rule_name: str
    rule_description: str
    hierarchy_id: str
    hierarchy_name: str
    severity: Severity
    details: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "rule_description": self.rule_description,
            "hierarchy_id": self.hierarchy_id,
            "hierarchy_name": self.hierarchy_name,
            "severity": self.severity.value,
            "details": self.details,
        }


@dataclass(frozen=True)
class ComparisonResult:
    """Comparison of one hierarchy against the anchor.

    A pure derived view: recomputed whenever an input changes, never
    mutated after construction.
    """

    hierarchy_id: str
    hierarchy_name: str
    differences: tuple[Difference, ...] = ()
    product_rule_violations: tuple[ProductRuleViolation, ...] = ()
    metadata_issues: tuple[MetadataIssue, ...] = ()
    lesson_order_issues: tuple[LessonOrderIssue, ...] = ()

    @property
    def has_errors(self) -> bool:
        """Return True if any difference or violation has ERROR severity."""
        return any(d.severity == Severity.ERROR for d in self.differences) or any(
            v.severity == Severity.ERROR for v in self.product_rule_violations
        )

    @property
    def is_identical(self) -> bool:
        """Return True when no structural or metadata differences exist."""
        return not self.differences and not self.metadata_issues

    @property
    def differences_by_type(self) -> dict[DifferenceType, list[Difference]]:
        """Group differences by type, preserving emission order."""
        grouped: dict[DifferenceType, list[Difference]] = {}
        for diff in self.differences:
            grouped.setdefault(diff.type, []).append(diff)
        return grouped

    @property
    def differences_by_severity(self) -> dict[Severity, list[Difference]]:
        """Group differences by severity, preserving emission order."""
        grouped: dict[Severity, list[Difference]] = {}
        for diff in self.differences:
            grouped.setdefault(diff.severity, []).append(diff)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "hierarchy_id": self.hierarchy_id,
            "hierarchy_name": self.hierarchy_name,
            "differences": [d.to_dict() for d in self.differences],
            "product_rule_violations": [v.to_dict() for v in self.product_rule_violations],
            "metadata_issues": [m.to_dict() for m in self.metadata_issues],
            "lesson_order_issues": [o.to_dict() for o in self.lesson_order_issues],
        }


@dataclass(frozen=True)
class LessonComparison:
    """One row of the side-by-side lesson alignment."""

    anchor_lesson: Lesson | None
    compared_lesson: Lesson | None
    status: AlignmentStatus
    anchor_order: int
    compared_order: int | None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "anchor_lesson": self.anchor_lesson.to_dict() if self.anchor_lesson else None,
            "compared_lesson": self.compared_lesson.to_dict()
            if self.compared_lesson
            else None,
            "status": self.status.value,
            "anchor_order": self.anchor_order,
            "compared_order": self.compared_order,
        }


@dataclass(frozen=True)
class ChildComparison:
    """One child row shown beneath an aligned lesson."""

    anchor_child: LessonChild | None
    compared_child: LessonChild | None
    status: AlignmentStatus

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "anchor_child": self.anchor_child.to_dict() if self.anchor_child else None,
            "compared_child": self.compared_child.to_dict()
            if self.compared_child
            else None,
            "status": self.status.value,
        }


@dataclass
class BuildResult:
    """A built hierarchy plus non-fatal diagnostics from the build.

    Attributes:
        hierarchy: The hierarchy produced.
        warnings: Human-readable diagnostics (e.g. no lessons extracted).
    """

    hierarchy: Hierarchy
    warnings: list[str] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)
