"""Derive tool JSON schemas from Python function signatures."""

from __future__ import annotations

import inspect
import types
import typing
from collections.abc import Callable
from typing import Any, get_args, get_origin

_SIMPLE_TYPE_MAP: dict[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
}


def annotation_to_schema(annotation: Any) -> dict[str, Any]:
    """Convert a Python type annotation to a JSON schema fragment.

    Unknown or missing annotations map to an unconstrained schema ``{}``.
    """
    if annotation is inspect.Parameter.empty or annotation is Any:
        return {}

    if annotation is type(None):
        return {"type": "null"}

    origin = get_origin(annotation)
    args = get_args(annotation)

    # Optional[T] / T | None
    if origin is typing.Union or origin is types.UnionType:
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1:
            return annotation_to_schema(non_none[0])
        return {"anyOf": [annotation_to_schema(a) for a in non_none]}

    if origin is typing.Literal:
        return {"enum": list(args)}

    if annotation in (list, tuple, set) or origin in (list, tuple, set):
        schema: dict[str, Any] = {"type": "array"}
        if args and args[0] is not Ellipsis:
            schema["items"] = annotation_to_schema(args[0])
        return schema

    if annotation is dict or origin is dict:
        return {"type": "object"}

    if annotation in _SIMPLE_TYPE_MAP:
        return {"type": _SIMPLE_TYPE_MAP[annotation]}

    return {}


def parse_docstring_args(doc: str) -> dict[str, str]:
    """Parse a Google-style ``Args:`` section into {param: description}."""
    descriptions: dict[str, str] = {}
    in_args = False
    current: str | None = None
    param_indent = 0

    for line in doc.splitlines():
        stripped = line.strip()
        if stripped in ("Args:", "Arguments:", "Parameters:"):
            in_args = True
            continue
        if not in_args or not stripped:
            continue
        indent = len(line) - len(line.lstrip())
        # A dedented line starts the next section
        if indent == 0:
            break
        if ":" in stripped and (current is None or indent <= param_indent):
            name_part, desc = stripped.split(":", 1)
            name = name_part.split("(")[0].strip()
            if name.isidentifier():
                current = name
                param_indent = indent
                descriptions[name] = desc.strip()
                continue
        if current is not None:
            descriptions[current] = f"{descriptions[current]} {stripped}".strip()

    return descriptions


def summary_from_docstring(doc: str) -> str:
    """Return the first paragraph of a docstring, joined into one line."""
    lines: list[str] = []
    for line in doc.strip().splitlines():
        stripped = line.strip()
        if not stripped:
            break
        lines.append(stripped)
    return " ".join(lines)


def function_to_schema(func: Callable[..., Any]) -> tuple[str, dict[str, Any]]:
    """Generate ``(description, parameters)`` from a function's signature.

    Parameters without a default are required. ``*args``/``**kwargs`` and
    ``self`` are skipped. Descriptions come from the docstring's summary and
    its ``Args:`` section.
    """
    signature = inspect.signature(func)
    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError):
        hints = {}

    doc = inspect.getdoc(func) or ""
    arg_docs = parse_docstring_args(doc)

    properties: dict[str, Any] = {}
    required: list[str] = []
    for name, param in signature.parameters.items():
        if name == "self" or param.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            continue
        prop = annotation_to_schema(hints.get(name, param.annotation))
        if name in arg_docs:
            prop["description"] = arg_docs[name]
        if param.default is inspect.Parameter.empty:
            required.append(name)
        else:
            if param.default is None or isinstance(param.default, (str, int, float, bool)):
                prop["default"] = param.default
        properties[name] = prop

    parameters: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        parameters["required"] = required

    description = summary_from_docstring(doc) or func.__name__
    return description, parameters
