"""ReAct agent and its run state."""

from reactloop.agent.events import AgentCompleted, AgentStreamEvent
from reactloop.agent.react import ReActAgent
from reactloop.agent.state import RunState, find_pending_tool_uses

__all__ = [
    "AgentCompleted",
    "AgentStreamEvent",
    "ReActAgent",
    "RunState",
    "find_pending_tool_uses",
]
