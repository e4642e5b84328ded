"""
Nested hierarchy builder for pasted text.

Reconstructs the Split -> Unit -> Lesson/Test/Exam -> Activity/Quiz tree
from flat ``(title, type, id)`` rows, then flattens it to top-level
lessons that carry their direct children in metadata.

Nesting is implicit in row order. The reconstruction is a fold over the
rows with an immutable ``TreeState``:

- Split opens a new root and resets all context.
- Unit attaches to the open Split and replaces any unit/lesson context.
- EdgeEx Lesson and Test attach to the open Unit (else Split) and
  become the lesson-or-test context.
- Exam attaches to the open Split and never opens a context.
- Activity/Quiz attach to the lesson-or-test context, else the Unit,
  else become orphan roots.
- Anything else attaches to the deepest open context.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from functools import reduce

from plumb.src.config import DEFAULT_CONFIG, PlumbConfig
from plumb.src.models import (
    BuildResult,
    Hierarchy,
    HierarchyType,
    HierarchyVersion,
    Lesson,
    LessonChild,
    extract_course_id,
    infer_implementation_model,
)
from plumb.src.rows import ParseError, ParseErrorKind, TextRow, parse_text
from plumb.src.tree import HierarchyNode, NodeType

logger = logging.getLogger(__name__)

IdFactory = Callable[[str], str]


def default_hierarchy_id(base_id: str) -> str:
    """Unique hierarchy id so the same paste can fill two course slots."""
    suffix = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
    return f"{base_id}-{suffix}" if base_id else f"hierarchy-{suffix}"


# ===================================================================
# Reducer
# ===================================================================


@dataclass(frozen=True)
class NodeRecord:
    """A node in index form; ``parent`` is an index into the node list."""

    index: int
    title: str
    node_type: NodeType
    raw_type: str
    id: str
    parent: int | None = None


@dataclass(frozen=True)
class TreeState:
    """
    Reducer state after consuming some prefix of the rows.

    Attributes:
        nodes: All nodes created so far, in row order.
        split: Index of the open Split.
        unit: Index of the open Unit.
        lesson_or_test: Index of the open EdgeEx Lesson or Test.
    """

    nodes: tuple[NodeRecord, ...] = ()
    split: int | None = None
    unit: int | None = None
    lesson_or_test: int | None = None

    @property
    def top(self) -> int | None:
        """Deepest open context, None when nothing is open."""
        for index in (self.lesson_or_test, self.unit, self.split):
            if index is not None:
                return index
        return None

    def append(self, row: TextRow, node_type: NodeType, parent: int | None) -> TreeState:
        """Return a new state with one more node attached under *parent*."""
        record = NodeRecord(
            index=len(self.nodes),
            title=row.title.strip(),
            node_type=node_type,
            raw_type=row.type.strip(),
            id=row.id.strip(),
            parent=parent,
        )
        return replace(self, nodes=self.nodes + (record,))

    @property
    def last_index(self) -> int:
        return len(self.nodes) - 1


def transition(state: TreeState, row: TextRow) -> TreeState:
    """Consume one row and return the next state."""
    node_type = NodeType.parse(row.type)

    if node_type == NodeType.SPLIT:
        nxt = state.append(row, node_type, None)
        return replace(nxt, split=nxt.last_index, unit=None, lesson_or_test=None)

    if node_type == NodeType.UNIT:
        nxt = state.append(row, node_type, state.split)
        return replace(nxt, unit=nxt.last_index, lesson_or_test=None)

    if node_type in (NodeType.EDGEEX_LESSON, NodeType.TEST):
        parent = state.unit if state.unit is not None else state.split
        nxt = state.append(row, node_type, parent)
        return replace(nxt, lesson_or_test=nxt.last_index)

    if node_type == NodeType.EXAM:
        return state.append(row, node_type, state.split)

    if node_type.is_leaf_item:
        parent = state.lesson_or_test if state.lesson_or_test is not None else state.unit
        return state.append(row, node_type, parent)

    logger.debug("Row %r has unrecognized type %r", row.title, row.type)
    return state.append(row, node_type, state.top)


def fold_rows(rows: Iterable[TextRow], initial: TreeState | None = None) -> TreeState:
    """Fold *rows* through ``transition`` starting from *initial*."""
    return reduce(transition, rows, initial or TreeState())


def materialize(state: TreeState) -> list[HierarchyNode]:
    """Turn an index-form state into linked root nodes."""
    built: list[HierarchyNode] = []
    roots: list[HierarchyNode] = []
    for record in state.nodes:
        node = HierarchyNode(
            title=record.title,
            node_type=record.node_type,
            id=record.id,
            raw_type=record.raw_type,
        )
        built.append(node)
        if record.parent is None:
            roots.append(node)
        else:
            built[record.parent].add_child(node)
    return roots


def build_tree(rows: Iterable[TextRow]) -> list[HierarchyNode]:
    """Reconstruct the root nodes for *rows*."""
    return materialize(fold_rows(rows))


# ===================================================================
# Extraction
# ===================================================================


def _lesson_from_node(
    node: HierarchyNode, order: int, split: str | None, unit: str | None
) -> Lesson:
    if node.node_type == NodeType.TEST:
        variant: str | None = "Test"
    elif node.node_type == NodeType.EXAM:
        variant = "Exam"
    else:
        variant = None
    return Lesson(
        id=node.id,
        title=node.title,
        order=order,
        variant=variant,
        metadata={
            "type": node.raw_type,
            "unitTitle": unit or "",
            "splitTitle": split or "",
            "originalId": node.id,
            "children": [
                LessonChild(id=c.id, title=c.title, type=c.raw_type) for c in node.children
            ],
            "parentUnit": unit,
            "parentSplit": split,
        },
    )


def extract_lessons(roots: list[HierarchyNode]) -> list[Lesson]:
    """Flatten the tree to lessons in depth-first order.

    Splits and Units only thread their titles down as context. Lessons,
    Tests and Exams become lessons with their direct children captured;
    grandchildren are not visited. Exams never carry unit context.
    """
    lessons: list[Lesson] = []

    def walk(nodes: list[HierarchyNode], split: str | None, unit: str | None) -> None:
        for node in nodes:
            if node.node_type == NodeType.SPLIT:
                walk(node.children, node.title, unit)
            elif node.node_type == NodeType.UNIT:
                walk(node.children, split, node.title)
            elif node.node_type.is_lesson:
                lesson_unit = None if node.node_type == NodeType.EXAM else unit
                lessons.append(_lesson_from_node(node, len(lessons) + 1, split, lesson_unit))
            else:
                walk(node.children, split, unit)

    walk(roots, None, None)
    return lessons


# ===================================================================
# Builder
# ===================================================================


class TextHierarchyBuilder:
    """
    Builds a Hierarchy from pasted ``(title, type, id)`` rows.

    The hierarchy id is produced by an injected factory from the first
    Split's id (or the first row's id); it identifies the hierarchy only
    and plays no part in lesson matching.
    """

    def __init__(
        self,
        config: PlumbConfig | None = None,
        id_factory: IdFactory | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self._id_factory = id_factory or default_hierarchy_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def resolve_name(self, rows: list[TextRow], requested: str | None) -> str:
        """Pick the display name for a pasted hierarchy.

        A caller-supplied name wins unless it is empty or the default.
        Otherwise the first Split's title is used, except that semester
        splits ("Semester A") fall back to the default name.
        """
        default = self.config.default_pasted_name
        if requested and requested != default:
            return requested
        first_split = _first_split(rows)
        if first_split is None or "semester" in first_split.title.lower():
            return default
        return first_split.title

    def build(self, rows: list[TextRow], hierarchy_name: str | None = None) -> BuildResult:
        """Reconstruct the tree for *rows* and flatten it to a Hierarchy.

        Zero extracted lessons is reported as a warning, not an error.

        Raises:
            ParseError: EMPTY_DATASET when *rows* is empty.
        """
        if not rows:
            raise ParseError(
                ParseErrorKind.EMPTY_DATASET, "No data rows found in pasted text"
            )

        roots = build_tree(rows)
        lessons = extract_lessons(roots)
        name = self.resolve_name(rows, hierarchy_name)

        first_split = _first_split(rows)
        base_id = (first_split.id if first_split else rows[0].id).strip()
        hierarchy_id = self._id_factory(base_id)

        warnings: list[str] = []
        if not lessons:
            lesson_rows = sum(1 for r in rows if NodeType.parse(r.type) == NodeType.EDGEEX_LESSON)
            message = (
                f"No lessons extracted from {len(rows)} pasted rows "
                f"({lesson_rows} EdgeEx Lesson rows, {len(roots)} root nodes)"
            )
            logger.warning("%s", message)
            warnings.append(message)

        hierarchy = Hierarchy(
            id=hierarchy_id,
            name=name,
            type=HierarchyType.COURSE,
            versions=[HierarchyVersion.initial(hierarchy_id, self._clock())],
            lessons=lessons,
            course_id=extract_course_id(name),
            implementation_model=infer_implementation_model(name),
            subject=self.config.default_subject,
        )
        logger.info(
            "Created hierarchy %s (ID: %s) with %d lessons",
            hierarchy.name,
            hierarchy.id,
            len(lessons),
        )
        return BuildResult(hierarchy=hierarchy, warnings=warnings)


def _first_split(rows: list[TextRow]) -> TextRow | None:
    for row in rows:
        if NodeType.parse(row.type) == NodeType.SPLIT:
            return row
    return None


def process_text_content(
    content: str,
    hierarchy_name: str | None = None,
    config: PlumbConfig | None = None,
    id_factory: IdFactory | None = None,
    clock: Callable[[], datetime] | None = None,
    parse_token: str | None = None,
) -> BuildResult:
    """Parse pasted text and build its hierarchy.

    Raises:
        ParseError: EMPTY_DATASET when the text has no rows.
    """
    rows = parse_text(content, parse_token=parse_token)
    builder = TextHierarchyBuilder(config=config, id_factory=id_factory, clock=clock)
    return builder.build(rows, hierarchy_name=hierarchy_name)
