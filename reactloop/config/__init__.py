"""Configuration loading and validation."""

from reactloop.config.loader import load_config
from reactloop.config.schema import (
    DEFAULT_MODEL_EXECUTION,
    DEFAULT_TOOL_EXECUTION,
    AgentConfig,
    AuthMethod,
    Config,
    ExecutionConfig,
    HookConfig,
    ModelConfig,
    ProviderConfig,
    ResolvedModel,
    ToolkitConfig,
)

__all__ = [
    "AgentConfig",
    "AuthMethod",
    "Config",
    "DEFAULT_MODEL_EXECUTION",
    "DEFAULT_TOOL_EXECUTION",
    "ExecutionConfig",
    "HookConfig",
    "ModelConfig",
    "ProviderConfig",
    "ResolvedModel",
    "ToolkitConfig",
    "load_config",
]
