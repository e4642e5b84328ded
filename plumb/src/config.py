"""Runtime configuration for Plumb parsing and comparison.

All tunables live on a single ``PlumbConfig`` dataclass. Every parser,
builder and comparison entry point accepts an optional config; ``None``
means the defaults below.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_ENV_PREFIX = "PLUMB_"


class ConfigError(Exception):
    """Raised when a configuration source cannot be read or is invalid."""


@dataclass
class PlumbConfig:
    """Configuration for parsing, building and comparing hierarchies.

    Attributes:
        header_marker: Literal text identifying the CSV header row.
        header_scan_lines: Non-blank lines scanned for the header row.
        default_subject: Subject assigned when the source carries none.
        default_pasted_name: Name given to pasted hierarchies.
        standard_variant_label: Display label for lessons without a variant.
        new_lesson_marker: Id token marking a newly added lesson.
        lesson_segment: Second id segment that identifies a prefixed lesson id.
        virtual_lab_limit: Maximum virtual labs in a Science course.
        projects_per_split: Minimum projects per split (Science IC/Honors).
        short_writings_per_split: Minimum short writings per split (Math IC/Honors).
        teacher_graded_keywords: Title keywords marking teacher-graded content.
    """

    header_marker: str = "Hierarchy ID"
    header_scan_lines: int = 5
    default_subject: str = "Not Set Yet"
    default_pasted_name: str = "Pasted Course"
    standard_variant_label: str = "Standard"
    new_lesson_marker: str = "-new-"
    lesson_segment: str = "lesson"
    virtual_lab_limit: int = 20
    projects_per_split: int = 1
    short_writings_per_split: int = 2
    teacher_graded_keywords: tuple[str, ...] = field(
        default=(
            "free response",
            "lab",
            "project",
            "short writing",
            "teacher graded",
        )
    )

    def __post_init__(self) -> None:
        if self.header_scan_lines < 1:
            raise ConfigError("header_scan_lines must be at least 1")
        if not self.header_marker:
            raise ConfigError("header_marker must not be empty")
        self.teacher_graded_keywords = tuple(self.teacher_graded_keywords)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        data = asdict(self)
        data["teacher_graded_keywords"] = list(self.teacher_graded_keywords)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlumbConfig:
        """Build a config from a mapping, ignoring unknown keys.

        Raises:
            ConfigError: If a value has the wrong type.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        kwargs = {k: v for k, v in data.items() if k in known}
        try:
            return cls(**kwargs)
        except TypeError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc

    @classmethod
    def load(cls, path: str | Path) -> PlumbConfig:
        """Load a config from a JSON file.

        Raises:
            ConfigError: If the file is missing or not a JSON object.
        """
        config_path = Path(path)
        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ConfigError(f"Config file not found: {config_path}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Config file is not valid JSON: {config_path}") from exc
        if not isinstance(raw, dict):
            raise ConfigError("Config file must contain a JSON object")
        return cls.from_dict(raw)

    @classmethod
    def from_env(
        cls,
        environ: dict[str, str] | None = None,
        base: PlumbConfig | None = None,
    ) -> PlumbConfig:
        """Apply ``PLUMB_*`` environment overrides on top of *base*.

        Only scalar string and integer fields can be overridden.
        """
        env = os.environ if environ is None else environ
        data = (base or cls()).to_dict()
        for f in fields(cls):
            raw = env.get(_ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            current = data[f.name]
            if isinstance(current, int):
                try:
                    data[f.name] = int(raw)
                except ValueError as exc:
                    raise ConfigError(
                        f"{_ENV_PREFIX}{f.name.upper()} must be an integer"
                    ) from exc
            elif isinstance(current, str):
                data[f.name] = raw
        return cls.from_dict(data)


DEFAULT_CONFIG = PlumbConfig()
