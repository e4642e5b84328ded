"""
Pytest configuration and fixtures for Plumb tests.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from plumb.src.config import PlumbConfig
from plumb.src.models import Hierarchy, HierarchyVersion, ImplementationModel, Lesson, LessonChild

FIXED_TIME = datetime(2024, 8, 1, 12, 0, tzinfo=timezone.utc)

ALGEBRA_IC_CSV = """Course export generated 2024-08-01
Report: lesson alignment

Hierarchy ID,Hierarchy Name,Split Title,Unit Title,EdgeEx Lesson ID,EdgeEx Lesson Title,Alignment Identifier,Variant Identifier,Subject,Title,Source Order
H-100,MTH-1001 Algebra 1 IC,Semester A,Unit 1,E-1,Linear Equations,AL-1,,Math,Linear Equations,1
H-100,MTH-1001 Algebra 1 IC,Semester A,Unit 1,E-2,Slope,AL-2,,Math,Slope,2
H-100,MTH-1001 Algebra 1 IC,Semester A,Unit 2,E-3,Unit Test,AL-3,Test,Math,Unit 2 Test,3
"""

ALGEBRA_CR_CSV = """Hierarchy ID,Hierarchy Name,Split Title,Unit Title,EdgeEx Lesson ID,EdgeEx Lesson Title,Alignment Identifier,Variant Identifier,Subject,Title,Source Order
H-200,MTH-1001 Algebra 1 CR,Semester A,Unit 1,E-2,Slope,AL-2,,Math,Slope,1
H-200,MTH-1001 Algebra 1 CR,Semester A,Unit 1,E-1,Linear Equations,AL-1,,Math,Linear Equations,2
H-200,MTH-1001 Algebra 1 CR,Semester A,Unit 2,E-4,Functions,AL-4,,Math,Functions,3
"""

BIOLOGY_PASTE = """Title\tType\tID
Biology\tSplit\tbio-s1
Unit 1: Cells\tUnit\tbio-u1
Cell Structure\tEdgeEx Lesson\tbio-l1
Cell Warm-Up\tActivity\tbio-a1
Cell Quiz\tQuiz\tbio-q1
Unit Test\tTest\tbio-t1
Unit Test Quiz\tQuiz\tbio-tq1
Midterm\tExam\tbio-e1
"""


def _fixed_clock() -> datetime:
    return FIXED_TIME


def _counting_id_factory():
    """Deterministic hierarchy id factory: <base>-1, <base>-2, ..."""
    calls = {"n": 0}

    def factory(base_id: str) -> str:
        calls["n"] += 1
        return f"{base_id}-{calls['n']}"

    return factory


def _make_lesson(
    lesson_id: str,
    title: str,
    order: int,
    variant: str | None = None,
    children: list[tuple[str, str, str]] | None = None,
) -> Lesson:
    """Create a Lesson with minimal boilerplate; children as (id, title, type)."""
    metadata = {}
    if children is not None:
        metadata["children"] = [LessonChild(id=c[0], title=c[1], type=c[2]) for c in children]
    return Lesson(id=lesson_id, title=title, order=order, variant=variant, metadata=metadata)


def _make_hierarchy(
    hierarchy_id: str,
    lessons: list[Lesson],
    name: str | None = None,
    subject: str | None = "Math",
    model: ImplementationModel | None = ImplementationModel.IC,
) -> Hierarchy:
    """Create a Hierarchy with one latest version."""
    return Hierarchy(
        id=hierarchy_id,
        name=name or f"Course {hierarchy_id}",
        versions=[HierarchyVersion.initial(hierarchy_id, FIXED_TIME)],
        lessons=lessons,
        implementation_model=model,
        subject=subject,
    )


@pytest.fixture
def config() -> PlumbConfig:
    """Default configuration."""
    return PlumbConfig()


@pytest.fixture
def algebra_ic_csv() -> str:
    return ALGEBRA_IC_CSV


@pytest.fixture
def algebra_cr_csv() -> str:
    return ALGEBRA_CR_CSV


@pytest.fixture
def biology_paste() -> str:
    return BIOLOGY_PASTE


@pytest.fixture
def id_factory():
    return _counting_id_factory()


@pytest.fixture
def anchor_hierarchy() -> Hierarchy:
    """Anchor with three lessons, one carrying children."""
    return _make_hierarchy(
        "anchor",
        [
            _make_lesson("L-1", "Intro", 1, children=[("a1", "Warm-Up", "Activity")]),
            _make_lesson("L-2", "Slope", 2),
            _make_lesson("L-3", "Unit Test", 3, variant="Test"),
        ],
        name="Algebra IC",
    )


@pytest.fixture
def clock():
    """Clock pinned to FIXED_TIME."""
    return _fixed_clock
