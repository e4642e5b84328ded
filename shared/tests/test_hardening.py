"""Tests for shared.hardening boundary utilities.

Covers both components: error formatting and input validation.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from plumb.src.config import ConfigError
from plumb.src.rows import ParseError, ParseErrorKind
from plumb.src.workspace import WorkspaceError
from shared.hardening import (
    ErrorFormatter,
    InputValidator,
    UserFriendlyError,
    ValidationError,
    _classify_error,
    _is_subpath,
    _strip_control_chars,
)

# =========================================================================
# 1. Error Formatting
# =========================================================================


class TestUserFriendlyError:
    """Tests for the UserFriendlyError dataclass."""

    def test_to_dict_excludes_technical_detail(self) -> None:
        """Technical details must never leak to the user-facing dict."""
        err = UserFriendlyError(
            message="Oops",
            suggestion="Try again",
            component="parse",
            error_code="PARSE_005",
            technical_detail="Traceback: /home/user/secret.csv",
        )
        d = err.to_dict()
        assert "technical_detail" not in d
        assert d["error_code"] == "PARSE_005"

    def test_str(self) -> None:
        err = UserFriendlyError("Oops.", "Try again.", "input", "INPUT_005")
        assert str(err) == "Oops. Try again. [INPUT_005]"


class TestClassifyError:
    """Tests for the internal error classifier."""

    def test_parse_kinds(self) -> None:
        _, _, code = _classify_error(ParseError(ParseErrorKind.NO_HEADER_FOUND, "x"))
        assert code == "101"
        _, _, code = _classify_error(ParseError(ParseErrorKind.EMPTY_DATASET, "x"))
        assert code == "102"

    def test_file_not_found(self) -> None:
        _, _, code = _classify_error(FileNotFoundError("nope"))
        assert code == "001"

    def test_permission_error(self) -> None:
        _, _, code = _classify_error(PermissionError("denied"))
        assert code == "002"

    def test_unicode_decode_error(self) -> None:
        exc = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        msg, _, code = _classify_error(exc)
        assert code == "003"
        assert "UTF-8" in msg

    def test_json_decode_before_value_error(self) -> None:
        """JSONDecodeError is a ValueError subclass but gets its own code."""
        _, _, code = _classify_error(json.JSONDecodeError("bad", "{", 0))
        assert code == "006"

    def test_value_error(self) -> None:
        _, _, code = _classify_error(ValueError("bad value"))
        assert code == "005"

    def test_message_passthrough(self) -> None:
        msg, _, code = _classify_error(WorkspaceError("Slot 9 is out of range (0-2)"))
        assert msg == "Slot 9 is out of range (0-2)"
        assert code == "005"

    def test_unknown_error(self) -> None:
        msg, _, code = _classify_error(RuntimeError())
        assert code == "999"
        assert "unexpected" in msg.lower()


class TestErrorFormatter:
    """Tests for the ErrorFormatter class."""

    @pytest.fixture()
    def formatter(self) -> ErrorFormatter:
        return ErrorFormatter()

    def test_parse_error(self, formatter: ErrorFormatter) -> None:
        result = formatter.format_parse_error(
            ParseError(ParseErrorKind.NO_HEADER_FOUND, "No header row found")
        )
        assert result.component == "parse"
        assert result.error_code == "PARSE_101"
        assert "Hierarchy ID" in result.suggestion

    def test_config_error(self, formatter: ErrorFormatter) -> None:
        result = formatter.format_config_error(ConfigError("Config file not found: x.json"))
        assert result.component == "config"
        assert result.error_code == "CONF_005"

    def test_workspace_error(self, formatter: ErrorFormatter) -> None:
        result = formatter.format_workspace_error(WorkspaceError("No anchor"))
        assert result.error_code == "WORK_005"
        assert result.message == "No anchor"

    def test_validation_error_verbatim(self, formatter: ErrorFormatter) -> None:
        result = formatter.format_input_error(ValidationError("File does not exist."))
        assert result.message == "File does not exist."
        assert result.error_code == "INPUT_005"

    def test_os_error_input(self, formatter: ErrorFormatter) -> None:
        result = formatter.format_input_error(PermissionError("/etc/shadow"))
        assert result.error_code == "INPUT_002"
        assert "/etc/shadow" not in result.message

    def test_technical_detail_preserved(self, formatter: ErrorFormatter) -> None:
        """Technical detail carries repr for logging."""
        result = formatter.format_parse_error(ValueError("secret internal info"))
        assert "secret internal info" in result.technical_detail
        assert "secret internal info" not in result.message


# =========================================================================
# 2. Input Validation
# =========================================================================


class TestValidateFilePath:
    """Tests for InputValidator.validate_file_path."""

    @pytest.fixture()
    def validator(self) -> InputValidator:
        return InputValidator()

    def test_valid_file(self, validator: InputValidator, tmp_path: Path) -> None:
        f = tmp_path / "course.csv"
        f.write_text("data", encoding="utf-8")
        assert validator.validate_file_path(str(f)) == f.resolve()

    def test_traversal_rejected(self, validator: InputValidator) -> None:
        with pytest.raises(ValidationError, match="traversal"):
            validator.validate_file_path("../../etc/passwd", must_exist=False)

    def test_null_byte_rejected(self, validator: InputValidator) -> None:
        with pytest.raises(ValidationError, match="null"):
            validator.validate_file_path("file\x00.csv", must_exist=False)

    def test_outside_base_directory(self, validator: InputValidator, tmp_path: Path) -> None:
        base = tmp_path / "inputs"
        base.mkdir()
        with pytest.raises(ValidationError, match="outside"):
            validator.validate_file_path(tmp_path / "other.csv", must_exist=False, base_directory=base)

    def test_extension_check_case_insensitive(self, validator: InputValidator, tmp_path: Path) -> None:
        f = tmp_path / "COURSE.CSV"
        f.write_text("x", encoding="utf-8")
        assert validator.validate_file_path(f, allowed_extensions=(".csv",)) == f.resolve()

    def test_extension_rejected(self, validator: InputValidator, tmp_path: Path) -> None:
        with pytest.raises(ValidationError, match="not allowed"):
            validator.validate_file_path(tmp_path / "x.exe", must_exist=False, allowed_extensions=(".csv",))

    def test_missing_file(self, validator: InputValidator, tmp_path: Path) -> None:
        with pytest.raises(ValidationError, match="does not exist"):
            validator.validate_file_path(tmp_path / "absent.csv")

    def test_directory_is_not_a_file(self, validator: InputValidator, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            validator.validate_file_path(tmp_path)


class TestReadTextFile:
    """Tests for InputValidator.read_text_file."""

    def test_strips_bom_and_control_chars(self, tmp_path: Path) -> None:
        f = tmp_path / "export.csv"
        f.write_bytes("\ufeffHierarchy ID,Title\x07\nH-1,Intro\n".encode("utf-8"))
        content = InputValidator().read_text_file(f)
        assert content == "Hierarchy ID,Title\nH-1,Intro\n"

    def test_too_large(self, tmp_path: Path) -> None:
        f = tmp_path / "big.txt"
        f.write_text("x" * 100, encoding="utf-8")
        with pytest.raises(ValidationError, match="maximum"):
            InputValidator().read_text_file(f, max_bytes=10)

    def test_not_utf8(self, tmp_path: Path) -> None:
        f = tmp_path / "latin.csv"
        f.write_bytes(b"caf\xe9\n")
        with pytest.raises(ValidationError, match="UTF-8"):
            InputValidator().read_text_file(f)


class TestValidateTextInput:
    """Tests for InputValidator.validate_text_input."""

    def test_tabs_and_newlines_survive(self) -> None:
        text = "Title\tType\tID\r\nBiology\tSplit\ts1\x00\n"
        assert InputValidator().validate_text_input(text) == "Title\tType\tID\r\nBiology\tSplit\ts1\n"

    def test_too_long(self) -> None:
        with pytest.raises(ValidationError):
            InputValidator().validate_text_input("x" * 11, max_length=10)


class TestHelpers:
    """Tests for module-level helpers."""

    def test_is_subpath(self, tmp_path: Path) -> None:
        assert _is_subpath(tmp_path / "a" / "b", tmp_path)
        assert not _is_subpath(tmp_path.parent, tmp_path)

    def test_strip_control_chars(self) -> None:
        assert _strip_control_chars("a\x01b\x7fc\td") == "abc\td"
