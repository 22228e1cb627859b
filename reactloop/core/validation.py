"""Input validation utilities for reactloop.

This module validates model-provided tool arguments against the tool's JSON
schema and checks session identifiers used as storage keys.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import jsonschema

from reactloop.core.errors import ReactLoopError

# Session IDs: alphanumeric + dot/underscore/hyphen, 1-64 chars, no leading dot
SESSION_ID_PATTERN = re.compile(r'^[a-zA-Z0-9][a-zA-Z0-9._-]{0,63}$')


class ValidationError(ReactLoopError):
    """Raised when validation fails."""

    pass


def validate_session_id(session_id: str) -> str:
    """Validate a session identifier.

    Args:
        session_id: The session ID to validate.

    Returns:
        The validated session_id (unchanged if valid).

    Raises:
        ValidationError: If session_id is empty or contains disallowed characters.
    """
    if not session_id:
        raise ValidationError("Session ID cannot be empty")

    if not SESSION_ID_PATTERN.match(session_id):
        raise ValidationError(
            f"Invalid session ID '{session_id}': must be 1-64 chars, "
            "alphanumeric/dot/underscore/hyphen, start with alphanumeric"
        )

    return session_id


def validate_tool_arguments(
    arguments: dict[str, Any],
    schema: dict[str, Any],
    logger: logging.Logger | None = None,
) -> dict[str, Any]:
    """Validate tool arguments against JSON schema.

    Validates required fields and types. Warns about (but drops) extra
    parameters unless the schema explicitly allows additional properties.

    Args:
        arguments: The arguments provided by the model.
        schema: The JSON schema for the tool's parameters.
        logger: Optional logger for warnings about unknown params.

    Returns:
        Dict containing only valid, known parameters.

    Raises:
        ValidationError: If required params missing or types don't match.
    """
    try:
        jsonschema.validate(arguments, schema)
    except jsonschema.ValidationError as e:
        raise ValidationError(f"Invalid argument: {e.message}") from e

    if schema.get("additionalProperties") is True:
        return dict(arguments)

    schema_props = set(schema.get("properties", {}).keys())
    extras = set(arguments.keys()) - schema_props
    if extras and logger:
        logger.warning("Unknown tool arguments (ignored): %s", sorted(extras))

    return {k: v for k, v in arguments.items() if k in schema_props}


def validate_parameters_schema(schema: Any) -> None:
    """Check that a tool parameters schema is a well-formed JSON Schema object.

    Raises:
        ValidationError: If the schema is not a dict, is not of type "object",
            or is rejected by the JSON Schema meta-schema.
    """
    if not isinstance(schema, dict):
        raise ValidationError(
            f"Tool parameters must be a JSON Schema object, got {type(schema).__name__}"
        )
    if schema.get("type", "object") != "object":
        raise ValidationError(
            f"Tool parameters schema must have type 'object', got {schema.get('type')!r}"
        )
    try:
        jsonschema.Draft202012Validator.check_schema(schema)
    except jsonschema.SchemaError as e:
        raise ValidationError(f"Malformed parameters schema: {e.message}") from e
