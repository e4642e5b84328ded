"""
Hierarchy tree data structures.

Nodes reconstructed from pasted rows: Split -> Unit -> Lesson/Test/Exam
-> Activity/Quiz. Ownership runs root-down only; the parent reference is
informational and never used to decide lifetime.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class NodeType(str, Enum):
    """Recognized values of the pasted ``Type`` column."""

    SPLIT = "Split"
    UNIT = "Unit"
    EDGEEX_LESSON = "EdgeEx Lesson"
    TEST = "Test"
    EXAM = "Exam"
    ACTIVITY = "Activity"
    QUIZ = "Quiz"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: str) -> NodeType:
        """Map a raw type cell to a NodeType; unrecognized values are UNKNOWN."""
        try:
            return cls(raw.strip())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_lesson(self) -> bool:
        """True for types extracted as top-level lessons."""
        return self in (NodeType.EDGEEX_LESSON, NodeType.TEST, NodeType.EXAM)

    @property
    def is_leaf_item(self) -> bool:
        """True for Activity/Quiz rows, which never open a context."""
        return self in (NodeType.ACTIVITY, NodeType.QUIZ)


@dataclass
class HierarchyNode:
    """
    A node in the reconstructed course tree.

    ``raw_type`` keeps the type text exactly as pasted so unrecognized
    types survive into lesson children unchanged.
    """

    title: str
    node_type: NodeType
    id: str
    raw_type: str = ""
    children: list[HierarchyNode] = field(default_factory=list)
    parent: HierarchyNode | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.raw_type:
            self.raw_type = self.node_type.value

    def add_child(self, child: HierarchyNode) -> None:
        """Add a child node."""
        child.parent = self
        self.children.append(child)
