"""Side-by-side hierarchy metadata rows for the rendering layer."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from plumb.src.config import DEFAULT_CONFIG, PlumbConfig
from plumb.src.models import Hierarchy


@dataclass(frozen=True)
class MetadataRow:
    """One metadata field shown for the anchor and a compared hierarchy."""

    field: str
    anchor_value: str
    compared_value: str

    @property
    def differs(self) -> bool:
        return self.anchor_value != self.compared_value

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "anchor_value": self.anchor_value,
            "compared_value": self.compared_value,
            "differs": self.differs,
        }


def _version_number(hierarchy: Hierarchy) -> str | None:
    current = hierarchy.current_version
    return current.version_number if current else None


def _model(hierarchy: Hierarchy) -> str | None:
    model = hierarchy.implementation_model
    return model.value if model else None


METADATA_FIELDS: tuple[tuple[str, Callable[[Hierarchy], str | None]], ...] = (
    ("Subject", lambda h: h.subject),
    ("Implementation Model", _model),
    ("Course ID", lambda h: h.course_id),
    ("Type", lambda h: h.type.value),
    ("Version", _version_number),
)


def metadata_rows(
    anchor: Hierarchy,
    compared: Hierarchy,
    config: PlumbConfig | None = None,
) -> list[MetadataRow]:
    """Metadata rows in display order; missing values show the default subject label."""
    placeholder = (config or DEFAULT_CONFIG).default_subject
    rows = []
    for name, getter in METADATA_FIELDS:
        rows.append(
            MetadataRow(
                field=name,
                anchor_value=getter(anchor) or placeholder,
                compared_value=getter(compared) or placeholder,
            )
        )
    return rows
