"""Convert reactloop messages to the OpenAI chat completions wire format.

Mapping rules:
- Text blocks become ``content`` (a string, or text parts when media is present)
- Image blocks become ``image_url`` parts; base64 sources become data URLs
- Base64 audio becomes an ``input_audio`` part; other audio/video is described
  in text since the chat API has no part for it
- Tool use blocks on assistant messages become ``tool_calls``
- Each tool result block becomes its own ``role: tool`` message, placed
  before any remaining content of the message that carried it
- Thinking blocks are dropped
"""

from __future__ import annotations

import json
from typing import Any

from reactloop.core.types import (
    AudioBlock,
    Base64Source,
    ContentBlock,
    ImageBlock,
    Message,
    Role,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    URLSource,
    VideoBlock,
)


class OpenAIChatFormatter:
    """Formatter for OpenAI-compatible chat completions APIs."""

    def format(self, messages: list[Message]) -> list[dict[str, Any]]:
        """Format a message history into a list of wire messages."""
        formatted: list[dict[str, Any]] = []
        for message in messages:
            formatted.extend(self.format_message(message))
        return formatted

    def format_message(self, message: Message) -> list[dict[str, Any]]:
        tool_results = message.get_content_blocks(ToolResultBlock)
        rest = [
            b for b in message.content
            if not isinstance(b, (ToolResultBlock, ThinkingBlock))
        ]

        result: list[dict[str, Any]] = [
            {
                "role": "tool",
                "tool_call_id": block.id,
                "content": self._tool_result_text(block),
            }
            for block in tool_results
        ]

        if message.role == Role.ASSISTANT:
            assistant = self._assistant_message(rest)
            if assistant is not None:
                result.append(assistant)
            return result

        parts = [self._content_part(b) for b in rest if not isinstance(b, ToolUseBlock)]
        if not parts:
            return result

        # TOOL-role messages only carry results; leftovers are shown as user text
        role = "user" if message.role == Role.TOOL else message.role.value
        if all(p["type"] == "text" for p in parts):
            content: Any = "\n".join(p["text"] for p in parts)
        else:
            content = parts
        result.append({"role": role, "content": content})
        return result

    def _assistant_message(self, blocks: list[ContentBlock]) -> dict[str, Any] | None:
        text = "\n".join(b.text for b in blocks if isinstance(b, TextBlock))
        tool_uses = [b for b in blocks if isinstance(b, ToolUseBlock)]
        if not text and not tool_uses:
            return None

        wire: dict[str, Any] = {"role": "assistant", "content": text or None}
        if tool_uses:
            wire["tool_calls"] = [
                {
                    "id": tu.id,
                    "type": "function",
                    "function": {
                        "name": tu.name,
                        "arguments": json.dumps(tu.input, ensure_ascii=False),
                    },
                }
                for tu in tool_uses
            ]
        return wire

    def _content_part(self, block: ContentBlock) -> dict[str, Any]:
        match block:
            case TextBlock():
                return {"type": "text", "text": block.text}
            case ImageBlock():
                return {"type": "image_url", "image_url": {"url": _source_url(block.source)}}
            case AudioBlock() if isinstance(block.source, Base64Source):
                audio_format = block.source.media_type.split("/")[-1]
                return {
                    "type": "input_audio",
                    "input_audio": {"data": block.source.data, "format": audio_format},
                }
            case AudioBlock() | VideoBlock():
                return {"type": "text", "text": _describe_media(block)}
        return {"type": "text", "text": f"[{getattr(block, 'type', 'content')}]"}

    def _tool_result_text(self, block: ToolResultBlock) -> str:
        pieces: list[str] = []
        for item in block.output:
            if isinstance(item, TextBlock):
                pieces.append(item.text)
            elif isinstance(item, (ImageBlock, AudioBlock, VideoBlock)):
                pieces.append(_describe_media(item))
        return "\n".join(pieces)


def _source_url(source: Base64Source | URLSource) -> str:
    if isinstance(source, Base64Source):
        return f"data:{source.media_type};base64,{source.data}"
    return source.url


def _describe_media(block: ImageBlock | AudioBlock | VideoBlock) -> str:
    if isinstance(block.source, URLSource):
        return f"[{block.type}: {block.source.url}]"
    return f"[{block.type}: {block.source.media_type}]"
