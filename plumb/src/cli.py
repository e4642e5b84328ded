"""Command-line entry point.

Usage::

    plumb compare ANCHOR OTHER [OTHER ...] [--format auto|csv|text] [--json]
    plumb parse SOURCE [--format auto|csv|text] [--name NAME]

Inputs are read from files. ``auto`` treats ``.csv`` files as hierarchy
exports and anything else as pasted text.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from plumb.src.alignment import AlignmentSummary
from plumb.src.config import ConfigError, PlumbConfig
from plumb.src.csv_builder import process_csv_content
from plumb.src.metadata_view import metadata_rows
from plumb.src.models import BuildResult, ComparisonResult, Hierarchy, LessonComparison
from plumb.src.rows import ParseError
from plumb.src.schema import (
    ComparisonReportSchema,
    HierarchySchema,
    build_pair_report,
)
from plumb.src.tree_builder import process_text_content
from plumb.src.workspace import HierarchyWorkspace, InputMode, WorkspaceError
from shared.hardening import ErrorFormatter, InputValidator, ValidationError

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_ALLOWED_EXTENSIONS = (".csv", ".txt", ".tsv")
_STATUS_MARKS = {
    "same": " ",
    "order-changed": "~",
    "removed": "-",
    "added": "+",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plumb",
        description="Compare course hierarchies against an anchor.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )
    parser.add_argument("--config", help="Path to a JSON config file")
    sub = parser.add_subparsers(dest="command", required=True)

    compare = sub.add_parser("compare", help="Compare hierarchies against an anchor")
    compare.add_argument("anchor", help="Anchor hierarchy file")
    compare.add_argument("others", nargs="+", help="Hierarchy files to compare")
    compare.add_argument("--format", choices=["auto", "csv", "text"], default="auto")
    compare.add_argument("--json", action="store_true", help="Emit the JSON report")

    parse = sub.add_parser("parse", help="Parse one hierarchy and print it")
    parse.add_argument("source", help="Hierarchy file")
    parse.add_argument("--format", choices=["auto", "csv", "text"], default="auto")
    parse.add_argument("--name", help="Name for a pasted-text hierarchy")
    return parser


def _resolve_format(path: Path, requested: str) -> InputMode:
    if requested == "csv":
        return InputMode.UPLOAD
    if requested == "text":
        return InputMode.PASTE
    return InputMode.UPLOAD if path.suffix.lower() == ".csv" else InputMode.PASTE


def _load_config(path: str | None) -> PlumbConfig:
    base = PlumbConfig.load(path) if path else None
    return PlumbConfig.from_env(base=base)


def _read_source(validator: InputValidator, raw_path: str) -> tuple[Path, str]:
    content = validator.read_text_file(raw_path, allowed_extensions=_ALLOWED_EXTENSIONS)
    return Path(raw_path), content


def _build_one(
    path: Path,
    content: str,
    requested_format: str,
    config: PlumbConfig,
    name: str | None = None,
) -> BuildResult:
    if _resolve_format(path, requested_format) == InputMode.UPLOAD:
        return process_csv_content(content, config=config)
    return process_text_content(content, hierarchy_name=name, config=config)


# ===================================================================
# Text rendering
# ===================================================================


def _render_hierarchy(hierarchy: Hierarchy, out: TextIO) -> None:
    model = hierarchy.implementation_model.value if hierarchy.implementation_model else "-"
    out.write(f"{hierarchy.name} [{hierarchy.id}]\n")
    out.write(f"  subject: {hierarchy.subject}  model: {model}  lessons: {hierarchy.lesson_count}\n")
    for lesson in hierarchy.lessons:
        variant = f" ({lesson.variant})" if lesson.variant else ""
        out.write(f"  {lesson.order:>3}. {lesson.title}{variant}\n")
        for child in lesson.children:
            out.write(f"         - {child.title} [{child.type}]\n")


def _render_pair(
    anchor: Hierarchy,
    compared: Hierarchy,
    result: ComparisonResult,
    rows: list[LessonComparison],
    out: TextIO,
) -> None:
    summary = AlignmentSummary.from_rows(rows)
    out.write(f"\n=== {compared.name} vs anchor {anchor.name} ===\n")
    out.write(
        f"matched {summary.matched} (order changed {summary.order_changed}), "
        f"removed {summary.removed}, added {summary.added}\n"
    )

    changed = [row for row in metadata_rows(anchor, compared) if row.differs]
    for row in changed:
        out.write(f"  {row.field}: {row.anchor_value} -> {row.compared_value}\n")

    for row in rows:
        mark = _STATUS_MARKS[row.status.value]
        title = (row.anchor_lesson or row.compared_lesson).title
        compared_order = row.compared_order if row.compared_order is not None else "-"
        anchor_order = row.anchor_order or "-"
        out.write(f"  {mark} {anchor_order:>3} {compared_order:>3}  {title}\n")

    if result.differences:
        out.write("differences:\n")
        for diff in result.differences:
            out.write(f"  [{diff.severity.value}] {diff.path}: {diff.description}\n")
    for violation in result.product_rule_violations:
        out.write(
            f"  rule {violation.rule_id} ({violation.severity.value}): {violation.details}\n"
        )
    if result.is_identical:
        out.write("no differences\n")


# ===================================================================
# Commands
# ===================================================================


def _cmd_compare(args: argparse.Namespace, config: PlumbConfig, out: TextIO) -> int:
    validator = InputValidator()
    workspace = HierarchyWorkspace(slot_count=len(args.others) + 1, config=config)

    sources = [args.anchor, *args.others]
    for position, raw_path in enumerate(sources):
        path, content = _read_source(validator, raw_path)
        result = _build_one(path, content, args.format, config)
        for warning in result.warnings:
            sys.stderr.write(f"warning: {path.name}: {warning}\n")
        workspace.set_slot(position, result.hierarchy)

    anchor = workspace.anchor
    if anchor is None:
        raise WorkspaceError("No anchor hierarchy was loaded")

    results = workspace.results()
    pairs = [
        (hierarchy, result, workspace.alignment(position))
        for (position, hierarchy), result in zip(workspace.compared_slots(), results)
    ]

    if args.json:
        report = ComparisonReportSchema(
            anchor=HierarchySchema.from_domain(anchor),
            compared=[HierarchySchema.from_domain(h) for h, _, _ in pairs],
            pairs=[build_pair_report(anchor, h, r, rows) for h, r, rows in pairs],
        )
        out.write(report.to_json() + "\n")
    else:
        for compared, result, rows in pairs:
            _render_pair(anchor, compared, result, rows, out)

    return 0


def _cmd_parse(args: argparse.Namespace, config: PlumbConfig, out: TextIO) -> int:
    path, content = _read_source(InputValidator(), args.source)
    result = _build_one(path, content, args.format, config, name=args.name)
    for warning in result.warnings:
        sys.stderr.write(f"warning: {warning}\n")
    _render_hierarchy(result.hierarchy, out)
    return 0


_COMMANDS = {
    "compare": _cmd_compare,
    "parse": _cmd_parse,
}


def main(argv: Sequence[str] | None = None, out: TextIO | None = None) -> int:
    """Run the CLI; returns the process exit status."""
    stream = out or sys.stdout
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=_LOG_FORMAT)

    formatter = ErrorFormatter()
    try:
        config = _load_config(args.config)
        return _COMMANDS[args.command](args, config, stream)
    except ParseError as exc:
        friendly = formatter.format_parse_error(exc)
    except ConfigError as exc:
        friendly = formatter.format_config_error(exc)
    except WorkspaceError as exc:
        friendly = formatter.format_workspace_error(exc)
    except (ValidationError, OSError) as exc:
        friendly = formatter.format_input_error(exc)

    logger.debug("Command failed: %s", friendly.technical_detail)
    sys.stderr.write(f"error: {friendly}\n")
    return 1


if __name__ == "__main__":
    sys.exit(main())
