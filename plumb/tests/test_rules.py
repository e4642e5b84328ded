"""Tests for subject product rules."""

from __future__ import annotations

from datetime import datetime, timezone

from plumb.src.config import PlumbConfig
from plumb.src.models import (
    Hierarchy,
    HierarchyVersion,
    ImplementationModel,
    Lesson,
    LessonChild,
    Severity,
)
from plumb.src.rules import (
    RULE_CATALOG,
    collect_items,
    evaluate_product_rules,
    rules_for_subject,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _lesson(
    lesson_id: str,
    title: str,
    split: str = "Semester A",
    children: list[LessonChild] | None = None,
) -> Lesson:
    metadata = {"splitTitle": split, "type": "EdgeEx Lesson"}
    if children is not None:
        metadata["children"] = children
    return Lesson(id=lesson_id, title=title, order=1, metadata=metadata)


def _course(
    lessons: list[Lesson],
    subject: str,
    model: ImplementationModel | None,
) -> Hierarchy:
    return Hierarchy(
        id="h1",
        name="Course",
        versions=[HierarchyVersion.initial("h1", datetime(2024, 1, 1, tzinfo=timezone.utc))],
        lessons=lessons,
        implementation_model=model,
        subject=subject,
    )


def _rule_ids(hierarchy: Hierarchy, config: PlumbConfig | None = None) -> list[str]:
    return [v.rule_id for v in evaluate_product_rules(hierarchy, config)]


# ===========================================================================
# Catalog
# ===========================================================================


class TestCatalog:
    """Tests for the rule catalog."""

    def test_rule_ids_unique(self) -> None:
        ids = [r.rule_id for r in RULE_CATALOG]
        assert len(ids) == len(set(ids))

    def test_rules_for_subject(self) -> None:
        assert [r.rule_id for r in rules_for_subject("Math")] == ["MATH-IC-HON-001", "MATH-CR-001"]
        assert len(rules_for_subject("Science")) == 3
        assert rules_for_subject("History") == []
        assert rules_for_subject(None) == []

    def test_applies_to_model(self) -> None:
        rule = next(r for r in RULE_CATALOG if r.rule_id == "MATH-CR-001")
        assert rule.applies_to(_course([], "Math", ImplementationModel.CR))
        assert not rule.applies_to(_course([], "Math", ImplementationModel.IC))
        assert not rule.applies_to(_course([], "Science", ImplementationModel.CR))

    def test_rule_without_models_applies_to_all(self) -> None:
        rule = next(r for r in RULE_CATALOG if r.rule_id == "SCI-001")
        assert rule.applies_to(_course([], "Science", None))


class TestCollectItems:
    """Tests for lesson/child flattening."""

    def test_lessons_and_children_in_order(self) -> None:
        lesson = _lesson("l1", "Cells", children=[LessonChild("c1", "Cell Lab", "Activity")])
        items = collect_items(_course([lesson], "Science", None))
        assert [(i.id, i.split) for i in items] == [("l1", "Semester A"), ("c1", "Semester A")]

    def test_missing_split_grouped_together(self) -> None:
        lesson = Lesson(id="l1", title="x", order=1)
        assert collect_items(_course([lesson], "Math", None))[0].split == "(no split)"


# ===========================================================================
# Evaluation
# ===========================================================================


class TestScienceRules:
    """Science catalog."""

    def test_virtual_lab_limit(self) -> None:
        config = PlumbConfig(virtual_lab_limit=2)
        labs = [_lesson(f"l{i}", f"Virtual Lab {i}") for i in range(3)]
        labs.append(_lesson("p", "Final Project"))
        course = _course(labs, "Science", ImplementationModel.IC)
        assert _rule_ids(course, config) == ["SCI-001"]

    def test_virtual_lab_limit_not_exceeded(self) -> None:
        labs = [_lesson(f"l{i}", f"Virtual Lab {i}") for i in range(20)]
        labs.append(_lesson("p", "Project: Ecosystems"))
        assert _rule_ids(_course(labs, "Science", ImplementationModel.IC)) == []

    def test_project_required_per_split(self) -> None:
        lessons = [
            _lesson("a", "Project: Cells", split="Semester A"),
            _lesson("b", "Genetics", split="Semester B"),
        ]
        violations = evaluate_product_rules(_course(lessons, "Science", ImplementationModel.HONORS))
        assert [v.rule_id for v in violations] == ["SCI-IC-HON-001"]
        assert violations[0].severity == Severity.WARNING
        assert "Semester B (0)" in violations[0].details

    def test_project_found_in_children(self) -> None:
        lesson = _lesson("a", "Cells", children=[LessonChild("c", "Cell Project", "Activity")])
        assert _rule_ids(_course([lesson], "Science", ImplementationModel.IC)) == []

    def test_cr_teacher_graded_content(self) -> None:
        lessons = [_lesson("a", "Cells"), _lesson("b", "Free Response: Mitosis")]
        violations = evaluate_product_rules(_course(lessons, "Science", ImplementationModel.CR))
        assert [v.rule_id for v in violations] == ["SCI-CR-001"]
        assert violations[0].severity == Severity.ERROR
        assert "Free Response: Mitosis" in violations[0].details

    def test_cr_clean_course(self) -> None:
        lessons = [_lesson("a", "Cells"), _lesson("b", "Quiz: Mitosis")]
        assert _rule_ids(_course(lessons, "Science", ImplementationModel.CR)) == []

    def test_keyword_matches_whole_words(self) -> None:
        """'Laboratory' and 'collaboration' are not labs."""
        lessons = [_lesson("a", "Laboratory Safety"), _lesson("b", "Collaboration")]
        assert _rule_ids(_course(lessons, "Science", ImplementationModel.CR)) == []


class TestMathRules:
    """Math catalog."""

    def test_short_writings_required(self) -> None:
        lessons = [_lesson("a", "Short Writing: Slope"), _lesson("b", "Graphing")]
        violations = evaluate_product_rules(_course(lessons, "Math", ImplementationModel.IC))
        assert [v.rule_id for v in violations] == ["MATH-IC-HON-001"]
        assert "Semester A (1)" in violations[0].details

    def test_short_writings_satisfied(self) -> None:
        lessons = [_lesson("a", "Short Writing: Slope"), _lesson("b", "Short Writings: Area")]
        assert _rule_ids(_course(lessons, "Math", ImplementationModel.IC)) == []

    def test_cr_teacher_graded(self) -> None:
        lessons = [_lesson("a", "Teacher Graded Essay")]
        assert _rule_ids(_course(lessons, "Math", ImplementationModel.CR)) == ["MATH-CR-001"]

    def test_no_model_no_model_specific_rules(self) -> None:
        lessons = [_lesson("a", "Graphing")]
        assert _rule_ids(_course(lessons, "Math", None)) == []


class TestOtherSubjects:
    """Subjects without a catalog."""

    def test_no_rules(self) -> None:
        lessons = [_lesson("a", "Lab Report")]
        assert _rule_ids(_course(lessons, "Not Set Yet", ImplementationModel.CR)) == []

    def test_violation_fields(self) -> None:
        violation = evaluate_product_rules(
            _course([_lesson("a", "Lab")], "Math", ImplementationModel.CR)
        )[0]
        assert violation.hierarchy_id == "h1"
        assert violation.hierarchy_name == "Course"
        assert violation.rule_name == "Teacher Graded Content Removal"
        assert violation.to_dict()["severity"] == "error"

    def test_sorted_by_rule_id(self) -> None:
        config = PlumbConfig(virtual_lab_limit=0)
        lessons = [_lesson("a", "Virtual Lab"), _lesson("b", "Free Response")]
        ids = _rule_ids(_course(lessons, "Science", ImplementationModel.CR), config)
        assert ids == sorted(ids)
        assert ids == ["SCI-001", "SCI-CR-001"]
