"""Message persistence: serialization and deserialization of conversation state.

This module converts runtime messages and content blocks to/from
JSON-serializable dictionaries for storage. Every block type round-trips,
including media sources and nested tool result output.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from reactloop.core.errors import LoadError
from reactloop.core.types import (
    AudioBlock,
    Base64Source,
    ChatUsage,
    ContentBlock,
    GenerateReason,
    ImageBlock,
    MediaSource,
    Message,
    Role,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    URLSource,
    VideoBlock,
)

# Schema version for future migrations
SESSION_SCHEMA_VERSION = 1


@dataclass
class SessionSummary:
    """Brief summary of a saved session for listing.

    Attributes:
        session_id: Session identifier.
        modified_at: When the session was last saved.
        modules: Names of the state modules stored for the session.
    """

    session_id: str
    modified_at: datetime
    modules: list[str]


def serialize_source(source: MediaSource) -> dict[str, Any]:
    if isinstance(source, Base64Source):
        return {"type": "base64", "media_type": source.media_type, "data": source.data}
    return {"type": "url", "url": source.url}


def deserialize_source(data: dict[str, Any]) -> MediaSource:
    if data.get("type") == "base64":
        return Base64Source(media_type=data["media_type"], data=data["data"])
    return URLSource(url=data["url"])


def serialize_block(block: ContentBlock) -> dict[str, Any]:
    """Serialize a content block to a dictionary tagged by ``type``.

    Args:
        block: Content block to serialize.

    Returns:
        Dictionary representation suitable for JSON.
    """
    match block:
        case TextBlock():
            return {"type": "text", "text": block.text}
        case ThinkingBlock():
            return {"type": "thinking", "thinking": block.thinking}
        case ImageBlock() | AudioBlock() | VideoBlock():
            return {"type": block.type, "source": serialize_source(block.source)}
        case ToolUseBlock():
            return {
                "type": "tool_use",
                "id": block.id,
                "name": block.name,
                "input": block.input,
            }
        case ToolResultBlock():
            return {
                "type": "tool_result",
                "id": block.id,
                "name": block.name,
                "output": [serialize_block(b) for b in block.output],
                "is_error": block.is_error,
            }
    raise TypeError(f"Cannot serialize content block: {type(block).__name__}")


_MEDIA_BLOCKS: dict[str, type[ImageBlock] | type[AudioBlock] | type[VideoBlock]] = {
    "image": ImageBlock,
    "audio": AudioBlock,
    "video": VideoBlock,
}


def deserialize_block(data: dict[str, Any]) -> ContentBlock:
    """Deserialize a content block from a dictionary.

    Raises:
        LoadError: If the block type is unknown.
    """
    block_type = data.get("type")
    if block_type == "text":
        return TextBlock(text=data["text"])
    if block_type == "thinking":
        return ThinkingBlock(thinking=data["thinking"])
    if block_type in _MEDIA_BLOCKS:
        return _MEDIA_BLOCKS[block_type](source=deserialize_source(data["source"]))
    if block_type == "tool_use":
        return ToolUseBlock(id=data["id"], name=data["name"], input=data.get("input", {}))
    if block_type == "tool_result":
        return ToolResultBlock(
            id=data["id"],
            name=data["name"],
            output=tuple(deserialize_block(b) for b in data.get("output", [])),
            is_error=data.get("is_error", False),
        )
    raise LoadError(f"Unknown content block type: {block_type!r}")


def serialize_message(msg: Message) -> dict[str, Any]:
    """Serialize a Message to a dictionary.

    Args:
        msg: Message to serialize.

    Returns:
        Dictionary representation suitable for JSON.
    """
    data: dict[str, Any] = {
        "id": msg.id,
        "name": msg.name,
        "role": msg.role.value,
        "content": [serialize_block(b) for b in msg.content],
        "timestamp": msg.timestamp,
    }

    if msg.metadata:
        data["metadata"] = msg.metadata

    if msg.generate_reason is not None:
        data["generate_reason"] = msg.generate_reason.value

    if msg.usage is not None:
        data["usage"] = {
            "input_tokens": msg.usage.input_tokens,
            "output_tokens": msg.usage.output_tokens,
            "time": msg.usage.time,
        }

    return data


def deserialize_message(data: dict[str, Any]) -> Message:
    """Deserialize a Message from a dictionary.

    Raises:
        LoadError: If the data is missing required fields or holds unknown
            roles, reasons or block types.
    """
    try:
        role = Role(data["role"])
        reason = data.get("generate_reason")
        usage = data.get("usage")
        kwargs: dict[str, Any] = {}
        if "id" in data:
            kwargs["id"] = data["id"]
        if "timestamp" in data:
            kwargs["timestamp"] = data["timestamp"]
        return Message(
            name=data.get("name", role.value),
            role=role,
            content=tuple(deserialize_block(b) for b in data.get("content", [])),
            metadata=data.get("metadata", {}),
            generate_reason=GenerateReason(reason) if reason is not None else None,
            usage=ChatUsage(**usage) if usage else None,
            **kwargs,
        )
    except (KeyError, ValueError, TypeError) as e:
        raise LoadError(f"Malformed message data: {e}") from e
