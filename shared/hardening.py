"""Boundary hardening utilities for Plumb.

Provides user-friendly error formatting and input validation with path
traversal prevention. Internal exceptions are converted into structured
messages before they reach the user; file and pasted-text inputs are
checked before any parsing happens.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 1. Error Formatting
# ---------------------------------------------------------------------------


@dataclass
class UserFriendlyError:
    """A structured error designed for end-user consumption.

    Attributes:
        message: Clear description for the user.
        suggestion: Actionable guidance.
        component: Originating subsystem (parse, config, workspace, input).
        error_code: Machine-readable identifier (e.g. "PARSE_101").
        technical_detail: Debugging info for logs only -- never shown to users.
    """

    message: str
    suggestion: str
    component: str
    error_code: str
    technical_detail: str = ""

    def to_dict(self) -> dict[str, str]:
        """Serialize for display (excludes technical_detail).

        Returns:
            Dictionary safe for showing to end users.
        """
        return {
            "message": self.message,
            "suggestion": self.suggestion,
            "component": self.component,
            "error_code": self.error_code,
        }

    def __str__(self) -> str:
        return f"{self.message} {self.suggestion} [{self.error_code}]"


# Parse failure kind -> (message, suggestion, code suffix)
_PARSE_KINDS: dict[str, tuple[str, str, str]] = {
    "no_header_found": (
        "The file does not look like a hierarchy export.",
        "Make sure one of the first lines is the header row containing "
        "'Hierarchy ID'.",
        "101",
    ),
    "empty_dataset": (
        "No hierarchy rows were found in the input.",
        "Check that the file or pasted text contains at least one data row.",
        "102",
    ),
}


class ErrorFormatter:
    """Convert internal exceptions to user-friendly messages.

    All methods return a ``UserFriendlyError`` and never expose internal
    paths, stack traces, or implementation details to the end user.
    """

    def format_parse_error(self, error: Exception) -> UserFriendlyError:
        """Format an error raised while parsing CSV or pasted text.

        Args:
            error: The caught exception. A ``kind`` attribute, when
                present, selects the message.

        Returns:
            User-friendly error with actionable suggestion.
        """
        return self._format(error, component="parse", code_prefix="PARSE")

    def format_config_error(self, error: Exception) -> UserFriendlyError:
        """Format a configuration loading error."""
        return self._format(error, component="config", code_prefix="CONF")

    def format_workspace_error(self, error: Exception) -> UserFriendlyError:
        """Format a slot or anchor selection error."""
        return self._format(error, component="workspace", code_prefix="WORK")

    def format_input_error(self, error: Exception) -> UserFriendlyError:
        """Format an input validation error.

        Validation messages are written for users already, so they are
        passed through verbatim.
        """
        if isinstance(error, ValidationError):
            return UserFriendlyError(
                message=str(error),
                suggestion="Check the input path or text and try again.",
                component="input",
                error_code="INPUT_005",
                technical_detail=repr(error),
            )
        return self._format(error, component="input", code_prefix="INPUT")

    # ------------------------------------------------------------------

    def _format(
        self,
        error: Exception,
        *,
        component: str,
        code_prefix: str,
    ) -> UserFriendlyError:
        """Shared formatting logic.

        Args:
            error: The caught exception.
            component: Subsystem name.
            code_prefix: Short prefix for error code.

        Returns:
            Structured error with safe user message.
        """
        message, suggestion, code_suffix = _classify_error(error)
        logger.debug("Formatted %s error: %r", component, error)
        return UserFriendlyError(
            message=message,
            suggestion=suggestion,
            component=component,
            error_code=f"{code_prefix}_{code_suffix}",
            technical_detail=repr(error),
        )


def _classify_error(error: Exception) -> tuple[str, str, str]:
    """Map an exception to (message, suggestion, code_suffix).

    Args:
        error: The caught exception.

    Returns:
        Tuple of user message, suggestion text, and error code suffix.
    """
    kind = getattr(error, "kind", None)
    kind_value = getattr(kind, "value", kind)
    if isinstance(kind_value, str) and kind_value in _PARSE_KINDS:
        return _PARSE_KINDS[kind_value]
    if isinstance(error, FileNotFoundError):
        return (
            "A required file could not be found.",
            "Check that the file path is correct and the file exists.",
            "001",
        )
    if isinstance(error, PermissionError):
        return (
            "Permission denied when accessing a resource.",
            "Check file permissions and ensure the application has access.",
            "002",
        )
    if isinstance(error, UnicodeDecodeError):
        return (
            "The file is not valid UTF-8 text.",
            "Re-export the file as UTF-8 CSV or plain text.",
            "003",
        )
    if isinstance(error, json.JSONDecodeError):
        return (
            "A configuration file contains invalid JSON.",
            "Verify the file is a valid JSON object.",
            "006",
        )
    if isinstance(error, ValueError):
        return (
            "Invalid input was provided.",
            "Check the input values and try again.",
            "005",
        )
    if str(error):
        return (
            str(error),
            "Check the input values and try again.",
            "005",
        )
    return (
        "An unexpected error occurred.",
        "If this keeps happening, please report the issue.",
        "999",
    )


# ---------------------------------------------------------------------------
# 2. Input Validation
# ---------------------------------------------------------------------------

# Characters that could be used for path traversal
_TRAVERSAL_PATTERN = re.compile(r"(\.\.[\\/]|[\\/]\.\.)")
# Null bytes in paths
_NULL_BYTE = re.compile(r"\x00")

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class ValidationError(Exception):
    """Raised when input validation fails."""


class InputValidator:
    """Validate inputs at system boundaries.

    All methods raise ``ValidationError`` on failure unless
    documented otherwise.
    """

    def validate_file_path(
        self,
        path: str | Path,
        *,
        must_exist: bool = True,
        allowed_extensions: tuple[str, ...] | None = None,
        base_directory: Path | None = None,
    ) -> Path:
        """Validate a file path, preventing traversal attacks.

        Args:
            path: Raw path from user input.
            must_exist: Require the file to exist on disk.
            allowed_extensions: Restrict to these suffixes (e.g. (".csv",)).
            base_directory: Confine resolved path under this directory.

        Returns:
            Resolved, validated Path.

        Raises:
            ValidationError: On any validation failure.
        """
        raw = str(path)
        self._check_traversal(raw)
        resolved = Path(raw).resolve()

        if base_directory is not None:
            base = base_directory.resolve()
            if not _is_subpath(resolved, base):
                raise ValidationError("Path is outside the allowed directory.")

        if allowed_extensions is not None:
            if resolved.suffix.lower() not in {e.lower() for e in allowed_extensions}:
                allowed = ", ".join(allowed_extensions)
                raise ValidationError(f"File type not allowed. Accepted types: {allowed}")

        if must_exist and not resolved.is_file():
            raise ValidationError("File does not exist.")

        return resolved

    def read_text_file(
        self,
        path: str | Path,
        *,
        allowed_extensions: tuple[str, ...] | None = None,
        max_bytes: int = DEFAULT_MAX_BYTES,
    ) -> str:
        """Validate a path and read it as UTF-8 text.

        A leading byte-order mark is dropped, since spreadsheet exports
        commonly carry one.

        Args:
            path: Path to the file.
            allowed_extensions: Restrict to these suffixes.
            max_bytes: Safety cap on file size.

        Returns:
            File content with control characters removed.

        Raises:
            ValidationError: On path, size or encoding errors.
        """
        validated_path = self.validate_file_path(
            path, must_exist=True, allowed_extensions=allowed_extensions
        )
        size = validated_path.stat().st_size
        if size > max_bytes:
            raise ValidationError(
                f"File is {size} bytes; the maximum is {max_bytes} bytes."
            )
        try:
            content = validated_path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ValidationError("File is not valid UTF-8 text.") from exc
        return _strip_control_chars(content)

    def validate_text_input(self, value: str, *, max_length: int = DEFAULT_MAX_BYTES) -> str:
        """Clean pasted text before parsing.

        Tabs and newlines are column and row separators, so they survive;
        other control characters are removed.

        Args:
            value: Raw pasted text.
            max_length: Maximum allowed length.

        Returns:
            Cleaned text.

        Raises:
            ValidationError: When the text is too long.
        """
        if len(value) > max_length:
            raise ValidationError(
                f"Pasted text exceeds the maximum of {max_length} characters."
            )
        return _strip_control_chars(value)

    # ------------------------------------------------------------------

    @staticmethod
    def _check_traversal(raw: str) -> None:
        """Reject paths with traversal sequences or null bytes.

        Args:
            raw: Raw path string.

        Raises:
            ValidationError: On dangerous patterns.
        """
        if _NULL_BYTE.search(raw):
            raise ValidationError("Path contains null bytes.")
        if _TRAVERSAL_PATTERN.search(raw):
            raise ValidationError("Path traversal is not allowed.")


def _is_subpath(child: Path, parent: Path) -> bool:
    """Return True when *child* is under *parent*."""
    try:
        child.relative_to(parent)
        return True
    except ValueError:
        return False


def _strip_control_chars(text: str) -> str:
    """Remove ASCII control characters except tab, newline and carriage return."""
    return re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)
