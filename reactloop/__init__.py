"""reactloop: a ReAct agent loop with tool suspension, hooks and interruption."""

from reactloop.agent import AgentCompleted, ReActAgent
from reactloop.config import AgentConfig, Config, load_config
from reactloop.core import GenerateReason, Message, Role, TextBlock, ToolResultBlock, ToolUseBlock
from reactloop.hooks import Hook, HookPipeline
from reactloop.memory import InMemoryMemory
from reactloop.session import SqliteSession
from reactloop.tool import Toolkit, ToolSuspended

__version__ = "0.1.0"

__all__ = [
    "AgentCompleted",
    "AgentConfig",
    "Config",
    "GenerateReason",
    "Hook",
    "HookPipeline",
    "InMemoryMemory",
    "Message",
    "ReActAgent",
    "Role",
    "SqliteSession",
    "TextBlock",
    "ToolResultBlock",
    "ToolSuspended",
    "ToolUseBlock",
    "Toolkit",
    "load_config",
]
