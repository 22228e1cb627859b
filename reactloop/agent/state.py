"""Per-call run state of the ReAct loop."""

from __future__ import annotations

from dataclasses import dataclass, field

from reactloop.core.types import Message, Role, ToolResultBlock, ToolUseBlock


@dataclass
class RunState:
    """State of one ``ReActAgent.call()``.

    Created when a call starts and discarded when it returns. Anything that
    must outlive a call (messages, pending tool uses) lives in memory.

    Attributes:
        max_iters: Cap on reasoning steps for this call.
        iteration: Reasoning steps taken so far.
        pending: Tool uses requested but not yet answered, in request order.
        suspended: Suspension reasons keyed by tool use id.
        completed: Results produced during the current acting phase.
        last_reasoning: Most recent reasoning message.
    """

    max_iters: int
    iteration: int = 0
    pending: list[ToolUseBlock] = field(default_factory=list)
    suspended: dict[str, str] = field(default_factory=dict)
    completed: list[ToolResultBlock] = field(default_factory=list)
    last_reasoning: Message | None = None

    @property
    def exhausted(self) -> bool:
        return self.iteration >= self.max_iters


def find_pending_tool_uses(
    messages: list[Message],
) -> tuple[Message | None, list[ToolUseBlock]]:
    """Find tool uses of the latest reasoning step that have no result yet.

    Scans backwards, collecting answered ids, until the most recent message
    carrying tool uses. A plain assistant reply encountered first means the
    last step finished and nothing is pending.

    Returns:
        (message holding the tool uses or None, unanswered tool uses in order)
    """
    answered: set[str] = set()
    for message in reversed(messages):
        tool_uses = message.get_content_blocks(ToolUseBlock)
        if tool_uses:
            pending = [tu for tu in tool_uses if tu.id not in answered]
            return message, pending
        if message.role == Role.ASSISTANT:
            return None, []
        answered.update(r.id for r in message.get_content_blocks(ToolResultBlock))
    return None, []
