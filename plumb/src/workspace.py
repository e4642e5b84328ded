"""Caller-owned hierarchy slots and anchor selection.

The workspace holds a fixed number of input slots. Every mutation
replaces the slot tuple rather than editing it, so a comparison computed
from an earlier snapshot stays consistent with what was rendered.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from plumb.src.alignment import generate_lesson_comparisons
from plumb.src.comparison import generate_comparison_results
from plumb.src.config import DEFAULT_CONFIG, PlumbConfig
from plumb.src.csv_builder import process_csv_content
from plumb.src.models import BuildResult, ComparisonResult, Hierarchy, LessonComparison
from plumb.src.tree_builder import IdFactory, process_text_content

logger = logging.getLogger(__name__)

DEFAULT_SLOT_COUNT = 3


class InputMode(str, Enum):
    """Which ingestion channel the workspace is fed from."""

    UPLOAD = "upload"
    PASTE = "paste"


class WorkspaceError(Exception):
    """Raised for invalid slot positions or unknown anchor ids."""


class HierarchyWorkspace:
    """Holds up to ``slot_count`` hierarchies and the selected anchor.

    The anchor is tracked by slot position, so two inputs sharing a
    hierarchy id (two exports of one course) stay distinct. Populating
    slot 0 while no anchor is selected makes it the anchor. Removing the
    anchor hands the role to the first remaining slot. Switching input
    mode clears everything.
    """

    def __init__(
        self,
        slot_count: int = DEFAULT_SLOT_COUNT,
        config: PlumbConfig | None = None,
        id_factory: IdFactory | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if slot_count < 2:
            raise WorkspaceError("A workspace needs at least two slots")
        self.config = config or DEFAULT_CONFIG
        self.mode = InputMode.UPLOAD
        self._slots: tuple[Hierarchy | None, ...] = (None,) * slot_count
        self._anchor_slot: int | None = None
        self._id_factory = id_factory
        self._clock = clock

    # ------------------------------------------------------------------
    # Slots

    @property
    def slots(self) -> tuple[Hierarchy | None, ...]:
        return self._slots

    @property
    def hierarchies(self) -> list[Hierarchy]:
        """Populated slots in slot order."""
        return [h for h in self._slots if h is not None]

    def _check_position(self, position: int) -> None:
        if not 0 <= position < len(self._slots):
            raise WorkspaceError(
                f"Slot {position} is out of range (0-{len(self._slots) - 1})"
            )

    def set_slot(self, position: int, hierarchy: Hierarchy) -> None:
        """Place *hierarchy* in a slot, replacing whatever was there."""
        self._check_position(position)
        slots = list(self._slots)
        slots[position] = hierarchy
        self._slots = tuple(slots)

        if self._anchor_slot is None and position == 0:
            self._anchor_slot = 0
        logger.debug("Slot %d now holds %s", position, hierarchy.id)

    def clear_slot(self, position: int) -> None:
        """Empty a slot, reassigning the anchor if it was removed."""
        self._check_position(position)
        slots = list(self._slots)
        slots[position] = None
        self._slots = tuple(slots)

        if position == self._anchor_slot:
            self._anchor_slot = next(
                (i for i, h in enumerate(self._slots) if h is not None), None
            )

    def switch_mode(self, mode: InputMode) -> None:
        """Change input channel; clears all slots and the anchor."""
        self.mode = mode
        self._slots = (None,) * len(self._slots)
        self._anchor_slot = None

    def load_csv(self, position: int, content: str) -> BuildResult:
        """Parse CSV text into a slot."""
        result = process_csv_content(content, config=self.config, clock=self._clock)
        self.set_slot(position, result.hierarchy)
        return result

    def load_text(self, position: int, content: str, hierarchy_name: str | None = None) -> BuildResult:
        """Parse pasted text into a slot."""
        result = process_text_content(
            content,
            hierarchy_name=hierarchy_name,
            config=self.config,
            id_factory=self._id_factory,
            clock=self._clock,
        )
        self.set_slot(position, result.hierarchy)
        return result

    # ------------------------------------------------------------------
    # Anchor and results

    @property
    def anchor_slot(self) -> int | None:
        return self._anchor_slot

    @property
    def anchor(self) -> Hierarchy | None:
        if self._anchor_slot is None:
            return None
        return self._slots[self._anchor_slot]

    @property
    def anchor_id(self) -> str | None:
        anchor = self.anchor
        return anchor.id if anchor else None

    def set_anchor_slot(self, position: int) -> None:
        """Select the anchor by slot position."""
        self._check_position(position)
        if self._slots[position] is None:
            raise WorkspaceError(f"Slot {position} is empty")
        self._anchor_slot = position

    def set_anchor(self, hierarchy_id: str) -> None:
        """Select the anchor by hierarchy id; the first slot holding it wins."""
        for position, hierarchy in enumerate(self._slots):
            if hierarchy is not None and hierarchy.id == hierarchy_id:
                self._anchor_slot = position
                return
        raise WorkspaceError(f"No hierarchy with id '{hierarchy_id}' is loaded")

    def compared_slots(self) -> list[tuple[int, Hierarchy]]:
        """Populated non-anchor slots as (position, hierarchy), in slot order."""
        return [
            (position, hierarchy)
            for position, hierarchy in enumerate(self._slots)
            if hierarchy is not None and position != self._anchor_slot
        ]

    @property
    def compared(self) -> list[Hierarchy]:
        return [hierarchy for _, hierarchy in self.compared_slots()]

    def results(self) -> list[ComparisonResult]:
        """Comparison results; empty until two hierarchies and an anchor exist."""
        anchor = self.anchor
        if anchor is None or len(self.hierarchies) < 2:
            return []
        return generate_comparison_results(anchor, self.compared, self.config)

    def alignment(self, position: int) -> list[LessonComparison]:
        """Aligned lesson rows for the anchor against the hierarchy in *position*."""
        anchor = self.anchor
        if anchor is None:
            raise WorkspaceError("No anchor hierarchy is selected")
        self._check_position(position)
        if position == self._anchor_slot:
            raise WorkspaceError(f"Slot {position} holds the anchor")
        compared = self._slots[position]
        if compared is None:
            raise WorkspaceError(f"Slot {position} is empty")
        return generate_lesson_comparisons(anchor.lessons, compared.lessons, self.config)
