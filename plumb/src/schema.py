"""Response schemas for the rendering layer.

Pydantic models mirroring the domain dataclasses, serialized with
camelCase keys (``hierarchyId``, ``anchorLesson``, ...). Rendering code
consumes these read-only; it never reaches into parsers or builders.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from plumb.src.alignment import AlignmentSummary, child_rows
from plumb.src.metadata_view import metadata_rows
from plumb.src.models import (
    AlignmentStatus,
    ComparisonResult,
    DifferenceLevel,
    DifferenceType,
    Hierarchy,
    HierarchyType,
    ImplementationModel,
    LessonComparison,
    Severity,
)


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, populated by field name."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)


class LessonChildSchema(CamelModel):
    id: str
    title: str
    type: str


class LessonSchema(CamelModel):
    id: str
    title: str
    order: int = Field(..., ge=1)
    variant: str | None = None
    # keys inside metadata are passed through unchanged
    metadata: dict[str, Any] = Field(default_factory=dict)


class HierarchyVersionSchema(CamelModel):
    version_id: str
    version_number: str
    created_at: datetime
    is_latest: bool


class HierarchySchema(CamelModel):
    id: str
    course_id: str | None = None
    name: str
    type: HierarchyType
    implementation_model: ImplementationModel | None = None
    subject: str | None = None
    versions: list[HierarchyVersionSchema] = Field(..., min_length=1)
    current_version: HierarchyVersionSchema | None = None
    lessons: list[LessonSchema] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, hierarchy: Hierarchy) -> HierarchySchema:
        return cls.model_validate(hierarchy.to_dict())


class DifferenceSchema(CamelModel):
    type: DifferenceType
    level: DifferenceLevel
    path: str
    description: str
    severity: Severity
    lesson_id: str = ""
    child_id: str | None = None


class MetadataIssueSchema(CamelModel):
    field: str
    hierarchy_id: str
    expected_value: Any = None
    actual_value: Any = None
    description: str


class LessonOrderIssueSchema(CamelModel):
    lesson_id: str
    lesson_title: str
    expected_order: int
    actual_order: int
    hierarchy_id: str


class ProductRuleViolationSchema(CamelModel):
    rule_id: str
    rule_name: str
    rule_description: str
    hierarchy_id: str
    hierarchy_name: str
    severity: Severity
    details: str


class ComparisonResultSchema(CamelModel):
    hierarchy_id: str
    hierarchy_name: str
    differences: list[DifferenceSchema] = Field(default_factory=list)
    product_rule_violations: list[ProductRuleViolationSchema] = Field(default_factory=list)
    metadata_issues: list[MetadataIssueSchema] = Field(default_factory=list)
    lesson_order_issues: list[LessonOrderIssueSchema] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, result: ComparisonResult) -> ComparisonResultSchema:
        return cls.model_validate(result.to_dict())


class ChildComparisonSchema(CamelModel):
    anchor_child: LessonChildSchema | None = None
    compared_child: LessonChildSchema | None = None
    status: AlignmentStatus


class LessonComparisonSchema(CamelModel):
    anchor_lesson: LessonSchema | None = None
    compared_lesson: LessonSchema | None = None
    status: AlignmentStatus
    anchor_order: int
    compared_order: int | None = None
    children: list[ChildComparisonSchema] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, row: LessonComparison) -> LessonComparisonSchema:
        data = row.to_dict()
        data["children"] = [c.to_dict() for c in child_rows(row)]
        return cls.model_validate(data)


class MetadataRowSchema(CamelModel):
    field: str
    anchor_value: str
    compared_value: str
    differs: bool


class AlignmentSummarySchema(CamelModel):
    matched: int
    order_changed: int
    removed: int
    added: int


class PairReportSchema(CamelModel):
    """Everything rendered for one anchor/compared pair."""

    result: ComparisonResultSchema
    metadata: list[MetadataRowSchema]
    lessons: list[LessonComparisonSchema]
    summary: AlignmentSummarySchema


class ComparisonReportSchema(CamelModel):
    """Full report: anchor, compared hierarchies and one entry per pair."""

    anchor: HierarchySchema
    compared: list[HierarchySchema]
    pairs: list[PairReportSchema]


def build_pair_report(
    anchor: Hierarchy,
    compared: Hierarchy,
    result: ComparisonResult,
    rows: list[LessonComparison],
) -> PairReportSchema:
    """Assemble the schema for one anchor/compared pair."""
    return PairReportSchema(
        result=ComparisonResultSchema.from_domain(result),
        metadata=[MetadataRowSchema.model_validate(r.to_dict()) for r in metadata_rows(anchor, compared)],
        lessons=[LessonComparisonSchema.from_domain(r) for r in rows],
        summary=AlignmentSummarySchema.model_validate(AlignmentSummary.from_rows(rows).to_dict()),
    )
