"""Unit tests for reactloop.session.persistence."""

import json

import pytest

from reactloop.core.errors import LoadError
from reactloop.core.types import (
    AudioBlock,
    Base64Source,
    ChatUsage,
    GenerateReason,
    ImageBlock,
    Message,
    Role,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    URLSource,
)
from reactloop.session import (
    deserialize_block,
    deserialize_message,
    serialize_block,
    serialize_message,
)


class TestBlockSerialization:
    """Tests for content block serialization."""

    def test_serialize_tool_use(self):
        block = ToolUseBlock(id="call_123", name="read_file", input={"path": "notes.txt"})
        assert serialize_block(block) == {
            "type": "tool_use",
            "id": "call_123",
            "name": "read_file",
            "input": {"path": "notes.txt"},
        }

    def test_serialize_media(self):
        block = ImageBlock(Base64Source(media_type="image/png", data="iVBORw0KGgo="))
        assert serialize_block(block) == {
            "type": "image",
            "source": {"type": "base64", "media_type": "image/png", "data": "iVBORw0KGgo="},
        }

    def test_tool_result_with_nested_output(self):
        """Nested output blocks survive a JSON round trip."""
        block = ToolResultBlock(
            id="call_1",
            name="screenshot",
            output=(TextBlock("captured"), ImageBlock(URLSource("https://example.com/s.png"))),
            is_error=False,
        )
        data = json.loads(json.dumps(serialize_block(block)))
        assert deserialize_block(data) == block

    def test_thinking_and_audio(self):
        for block in (ThinkingBlock("hmm"), AudioBlock(URLSource("https://example.com/a.wav"))):
            assert deserialize_block(serialize_block(block)) == block

    def test_unknown_block_type(self):
        with pytest.raises(LoadError, match="Unknown content block type"):
            deserialize_block({"type": "hologram"})


class TestMessageSerialization:
    """Tests for message serialization."""

    def test_minimal_message_omits_optional_fields(self):
        msg = Message.text("user", Role.USER, "Hello")
        data = serialize_message(msg)

        assert data["role"] == "user"
        assert data["content"] == [{"type": "text", "text": "Hello"}]
        assert "metadata" not in data
        assert "generate_reason" not in data
        assert "usage" not in data

    def test_full_message_round_trip(self):
        msg = Message(
            name="Friday",
            role=Role.ASSISTANT,
            content=(TextBlock("Checking"), ToolUseBlock(id="c1", name="search", input={"q": "x"})),
            metadata={"suspended": {"c1": "needs approval"}},
            generate_reason=GenerateReason.TOOL_SUSPENDED,
            usage=ChatUsage(input_tokens=10, output_tokens=5, time=0.5),
        )

        restored = deserialize_message(json.loads(json.dumps(serialize_message(msg))))

        assert restored == msg

    def test_missing_name_defaults_to_role(self):
        msg = deserialize_message({"role": "tool", "content": []})
        assert msg.name == "tool"

    @pytest.mark.parametrize(
        "data",
        [
            {"content": []},
            {"role": "robot"},
            {"role": "assistant", "generate_reason": "bored"},
            {"role": "user", "content": [{"type": "text"}]},
            {"role": "user", "usage": {"tokens": 3}},
        ],
    )
    def test_malformed_data_raises_load_error(self, data):
        with pytest.raises(LoadError, match="Malformed message data"):
            deserialize_message(data)
