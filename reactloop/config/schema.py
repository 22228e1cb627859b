"""Pydantic models for reactloop configuration validation.

All models are frozen: a configuration is validated once, at construction,
and never mutated afterwards. Use ``model_copy(update=...)`` to derive a
variant.
"""

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from reactloop.core.constants import get_sessions_dir

# Supported provider types (all speak the OpenAI chat completions protocol)
ProviderType = Literal["openai", "ollama", "vllm", "compatible"]


class AuthMethod(str, Enum):
    """Authentication method for API requests."""

    BEARER = "bearer"  # Authorization: Bearer <key>
    API_KEY = "api-key"  # api-key: <key> header
    NONE = "none"  # No auth (local servers)


class ExecutionConfig(BaseModel):
    """Timeout and retry policy for model or tool invocations.

    ``max_attempts`` counts the first try, so ``max_attempts=1`` disables
    retries. The delay before retry ``n`` (0-indexed) is
    ``initial_backoff * backoff_multiplier ** n`` capped at ``max_backoff``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    timeout: float | None = Field(default=None, gt=0)
    """Per-attempt timeout in seconds. None means no limit."""

    max_attempts: int = Field(default=1, ge=1, le=20)
    initial_backoff: float = Field(default=1.0, ge=0)
    max_backoff: float = Field(default=10.0, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)

    @model_validator(mode="after")
    def validate_backoff_bounds(self) -> "ExecutionConfig":
        """Ensure the backoff cap is not below the initial delay."""
        if self.max_backoff < self.initial_backoff:
            raise ValueError(
                f"max_backoff ({self.max_backoff}) must be >= "
                f"initial_backoff ({self.initial_backoff})"
            )
        return self


# Defaults applied by the agent when no explicit policy is given
DEFAULT_MODEL_EXECUTION = ExecutionConfig(max_attempts=3)
DEFAULT_TOOL_EXECUTION = ExecutionConfig(timeout=30.0)


class AgentConfig(BaseModel):
    """Settings for a single ReAct agent."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(default="assistant", min_length=1)
    """Agent name, used as the sender of its messages."""

    sys_prompt: str = "You are a helpful assistant."
    """System prompt prepended to every model call."""

    max_iters: int = Field(default=10, ge=1)
    """Maximum reasoning steps per call."""

    stream: bool = True
    """Stream model output (fires REASONING_CHUNK hooks)."""


class ToolkitConfig(BaseModel):
    """Execution settings for a toolkit."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    parallel: bool = False
    """Execute the tool calls of one reasoning step concurrently."""

    max_concurrent: int = Field(default=10, ge=1)
    """Concurrency limit for parallel execution."""


class HookConfig(BaseModel):
    """Settings for the hook pipeline."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    timeout: float | None = Field(default=30.0, gt=0)
    """Maximum seconds a single hook invocation may take. None means no limit."""

    default_priority: int = 100
    """Priority assigned to hooks that do not declare one (lower runs first)."""


class ModelConfig(BaseModel):
    """Configuration for a model under a provider.

    Example in config.json:
        "providers": {
            "openai": {
                "models": {
                    "mini": {"id": "gpt-4o-mini"}
                }
            }
        }
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    """Full model identifier sent to the API."""

    reasoning: bool = False
    """Request reasoning output from models that support it."""

    max_tokens: int | None = Field(default=None, gt=0)
    """Optional cap on generated tokens."""


class ProviderConfig(BaseModel):
    """Configuration for an OpenAI-compatible endpoint with its models."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: ProviderType = "openai"

    api_key_env: str = "OPENAI_API_KEY"
    """Environment variable containing API key."""

    base_url: str = "https://api.openai.com/v1"
    """Base URL for API requests."""

    auth_method: AuthMethod = AuthMethod.BEARER
    """How to send the API key (bearer, api-key, none)."""

    extra_headers: dict[str, str] = {}
    """Additional headers to include in API requests."""

    request_timeout: float = Field(default=120.0, gt=0)
    """Timeout in seconds for a single HTTP request."""

    max_retries: int = Field(default=3, ge=0, le=10)
    """Maximum number of HTTP-level retry attempts for failed requests."""

    retry_backoff: float = Field(default=1.5, ge=1.0, le=5.0)
    """Exponential backoff multiplier between HTTP retries."""

    allow_insecure_http: bool = False
    """Allow plain HTTP to non-loopback hosts (development only)."""

    models: dict[str, ModelConfig] = {}
    """Model aliases available through this provider."""


class ResolvedModel:
    """Result of resolving a model alias.

    Contains the effective model settings after resolving an alias
    and finding its provider.
    """

    def __init__(
        self,
        model_id: str,
        alias: str,
        provider_name: str,
        reasoning: bool = False,
        max_tokens: int | None = None,
    ) -> None:
        self.model_id = model_id
        self.alias = alias
        self.provider_name = provider_name
        self.reasoning = reasoning
        self.max_tokens = max_tokens


def _default_providers() -> dict[str, ProviderConfig]:
    return {
        "openai": ProviderConfig(
            models={"gpt-4o-mini": ModelConfig(id="gpt-4o-mini")},
        ),
    }


class Config(BaseModel):
    """Root configuration model.

    Example config.json:
        {
            "default_model": "local",
            "providers": {
                "ollama": {
                    "type": "ollama",
                    "base_url": "http://localhost:11434/v1",
                    "auth_method": "none",
                    "models": {"local": {"id": "qwen2.5:7b"}}
                }
            },
            "agent": {"max_iters": 8},
            "toolkit": {"parallel": true}
        }
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    default_model: str = "gpt-4o-mini"
    """Default model alias (or 'provider/alias' format)."""

    providers: dict[str, ProviderConfig] = Field(default_factory=_default_providers)
    """Provider configurations with their models."""

    agent: AgentConfig = AgentConfig()
    model_execution: ExecutionConfig = DEFAULT_MODEL_EXECUTION
    tool_execution: ExecutionConfig = DEFAULT_TOOL_EXECUTION
    toolkit: ToolkitConfig = ToolkitConfig()
    hooks: HookConfig = HookConfig()

    session_dir: Path = Field(default_factory=get_sessions_dir)
    """Directory holding session databases."""

    @model_validator(mode="after")
    def validate_unique_aliases(self) -> "Config":
        """Ensure model aliases are globally unique across all providers."""
        seen: dict[str, str] = {}  # alias -> provider_name
        for provider_name, provider_config in self.providers.items():
            for alias in provider_config.models:
                if alias in seen:
                    raise ValueError(
                        f"Duplicate model alias '{alias}' found in providers "
                        f"'{seen[alias]}' and '{provider_name}'"
                    )
                seen[alias] = provider_name
        return self

    @model_validator(mode="after")
    def validate_default_model(self) -> "Config":
        """Ensure default_model references a valid alias."""
        try:
            self.resolve_model(self.default_model)
        except KeyError as e:
            raise ValueError(str(e.args[0])) from e
        return self

    def get_provider_config(self, name: str) -> ProviderConfig:
        """Get provider configuration by name.

        Raises:
            KeyError: If provider name not found.
        """
        if name in self.providers:
            return self.providers[name]
        raise KeyError(f"Unknown provider: {name}")

    def find_model(self, alias: str) -> tuple[str, ModelConfig]:
        """Find which provider owns a model alias.

        Raises:
            KeyError: If alias not found in any provider.
        """
        for provider_name, provider_config in self.providers.items():
            if alias in provider_config.models:
                return provider_name, provider_config.models[alias]
        raise KeyError(f"Unknown model alias: {alias}")

    def resolve_model(self, alias: str | None = None) -> ResolvedModel:
        """Resolve a model alias to full model settings.

        Args:
            alias: Model alias, or 'provider/alias'. If None, uses default_model.

        Raises:
            KeyError: If the alias (or provider) is unknown.
        """
        if alias is None:
            alias = self.default_model

        if "/" in alias:
            provider_name, model_alias = alias.split("/", 1)
            if provider_name not in self.providers:
                raise KeyError(f"Unknown provider in model reference: {provider_name}")
            models = self.providers[provider_name].models
            if model_alias not in models:
                raise KeyError(
                    f"Unknown model alias '{model_alias}' in provider '{provider_name}'"
                )
            model_config = models[model_alias]
        else:
            provider_name, model_config = self.find_model(alias)
            model_alias = alias

        return ResolvedModel(
            model_id=model_config.id,
            alias=model_alias,
            provider_name=provider_name,
            reasoning=model_config.reasoning,
            max_tokens=model_config.max_tokens,
        )

    def list_models(self) -> list[str]:
        """List all available model aliases."""
        aliases = []
        for provider_config in self.providers.values():
            aliases.extend(provider_config.models.keys())
        return aliases
