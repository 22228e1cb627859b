"""Tests for argument validation and identifier rules."""

import logging

import pytest

from reactloop.core.identifiers import ToolNameError, validate_tool_name
from reactloop.core.validation import (
    ValidationError,
    validate_parameters_schema,
    validate_session_id,
    validate_tool_arguments,
)

SCHEMA = {
    "type": "object",
    "properties": {"path": {"type": "string"}, "limit": {"type": "integer"}},
    "required": ["path"],
}


class TestValidateToolArguments:
    """Tests for validate_tool_arguments()."""

    def test_valid_arguments(self):
        assert validate_tool_arguments({"path": "a", "limit": 2}, SCHEMA) == {"path": "a", "limit": 2}

    def test_missing_required(self):
        with pytest.raises(ValidationError, match="'path' is a required property"):
            validate_tool_arguments({}, SCHEMA)

    def test_wrong_type(self):
        with pytest.raises(ValidationError, match="Invalid argument"):
            validate_tool_arguments({"path": 3}, SCHEMA)

    def test_extras_dropped_and_logged(self, caplog):
        logger = logging.getLogger("test.validation")
        with caplog.at_level(logging.WARNING, logger="test.validation"):
            args = validate_tool_arguments({"path": "a", "junk": 1}, SCHEMA, logger=logger)

        assert args == {"path": "a"}
        assert "junk" in caplog.text

    def test_additional_properties_kept(self):
        schema = {**SCHEMA, "additionalProperties": True}
        assert validate_tool_arguments({"path": "a", "x": 1}, schema) == {"path": "a", "x": 1}


class TestValidateParametersSchema:
    """Tests for validate_parameters_schema()."""

    def test_valid(self):
        validate_parameters_schema(SCHEMA)
        validate_parameters_schema({"properties": {}})

    @pytest.mark.parametrize(
        "schema",
        [["not", "a", "dict"], {"type": "string"}, {"type": "object", "required": "path"}],
    )
    def test_invalid(self, schema):
        with pytest.raises(ValidationError):
            validate_parameters_schema(schema)


class TestValidateSessionId:
    """Tests for validate_session_id()."""

    @pytest.mark.parametrize("session_id", ["chat", "chat-1", "a.b_c", "X" * 64])
    def test_valid(self, session_id):
        assert validate_session_id(session_id) == session_id

    @pytest.mark.parametrize("session_id", ["", ".hidden", "a/b", "X" * 65, "sp ace"])
    def test_invalid(self, session_id):
        with pytest.raises(ValidationError):
            validate_session_id(session_id)


class TestValidateToolName:
    """Tests for validate_tool_name()."""

    @pytest.mark.parametrize("name", ["read_file", "_private", "kebab-case", "a" * 64])
    def test_valid(self, name):
        validate_tool_name(name)

    def test_leading_digit(self):
        with pytest.raises(ToolNameError, match="cannot start with a digit"):
            validate_tool_name("1tool")

    def test_too_long(self):
        with pytest.raises(ToolNameError, match="exceeds maximum length"):
            validate_tool_name("a" * 65)

    def test_reserved(self):
        with pytest.raises(ToolNameError, match="reserved"):
            validate_tool_name("None")
        validate_tool_name("None", allow_reserved=True)
