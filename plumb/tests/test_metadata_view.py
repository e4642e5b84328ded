"""Tests for side-by-side metadata rows."""

from __future__ import annotations

from datetime import datetime, timezone

from plumb.src.config import PlumbConfig
from plumb.src.metadata_view import METADATA_FIELDS, metadata_rows
from plumb.src.models import Hierarchy, HierarchyType, HierarchyVersion, ImplementationModel


def _hierarchy(
    hierarchy_id: str,
    subject: str | None = "Math",
    model: ImplementationModel | None = ImplementationModel.IC,
    course_id: str | None = "MTH-1001",
) -> Hierarchy:
    return Hierarchy(
        id=hierarchy_id,
        name=hierarchy_id,
        versions=[HierarchyVersion.initial(hierarchy_id, datetime(2024, 1, 1, tzinfo=timezone.utc))],
        course_id=course_id,
        implementation_model=model,
        subject=subject,
    )


class TestMetadataRows:
    """Tests for metadata_rows."""

    def test_field_order(self):
        rows = metadata_rows(_hierarchy("a"), _hierarchy("b"))
        assert [r.field for r in rows] == [
            "Subject",
            "Implementation Model",
            "Course ID",
            "Type",
            "Version",
        ]
        assert len(rows) == len(METADATA_FIELDS)

    def test_identical_rows_do_not_differ(self):
        rows = metadata_rows(_hierarchy("a"), _hierarchy("b"))
        assert not any(r.differs for r in rows)

    def test_values(self):
        rows = {r.field: r for r in metadata_rows(_hierarchy("a"), _hierarchy("b", model=ImplementationModel.CR))}
        assert rows["Implementation Model"].anchor_value == "IC"
        assert rows["Implementation Model"].compared_value == "CR"
        assert rows["Implementation Model"].differs
        assert rows["Type"].anchor_value == HierarchyType.COURSE.value
        assert rows["Version"].compared_value == "1.0"

    def test_missing_values_use_placeholder(self):
        rows = {r.field: r for r in metadata_rows(_hierarchy("a"), _hierarchy("b", model=None, course_id=None))}
        assert rows["Implementation Model"].compared_value == "Not Set Yet"
        assert rows["Course ID"].compared_value == "Not Set Yet"

    def test_placeholder_from_config(self):
        config = PlumbConfig(default_subject="TBD")
        rows = metadata_rows(_hierarchy("a", subject=None), _hierarchy("b"), config)
        assert rows[0].anchor_value == "TBD"

    def test_to_dict(self):
        row = metadata_rows(_hierarchy("a"), _hierarchy("b", subject="Science"))[0]
        assert row.to_dict() == {
            "field": "Subject",
            "anchor_value": "Math",
            "compared_value": "Science",
            "differs": True,
        }
