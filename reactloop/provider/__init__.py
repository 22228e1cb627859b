"""Chat model adapters.

Example:
    from reactloop.config import load_config
    from reactloop.provider import create_provider

    config = load_config()
    model = create_provider(config)            # default model
    model = create_provider(config, "local")   # by alias
"""

from typing import TYPE_CHECKING

from reactloop.config.schema import Config
from reactloop.core.errors import ConfigError
from reactloop.provider.base import BaseProvider
from reactloop.provider.formatter import OpenAIChatFormatter
from reactloop.provider.openai_compat import OpenAICompatProvider

if TYPE_CHECKING:
    from reactloop.core.interfaces import RawLogCallback


def create_provider(
    config: Config,
    model: str | None = None,
    raw_log: "RawLogCallback | None" = None,
) -> OpenAICompatProvider:
    """Create a chat model adapter for a model alias.

    Args:
        config: Root configuration.
        model: Model alias or 'provider/alias'. Defaults to config.default_model.
        raw_log: Optional callback for raw API logging.

    Raises:
        ConfigError: If the alias is unknown.
        ProviderError: If the provider cannot be initialized (missing API key,
            disallowed base_url).
    """
    try:
        resolved = config.resolve_model(model)
    except KeyError as e:
        raise ConfigError(str(e.args[0])) from e

    provider_config = config.get_provider_config(resolved.provider_name)
    return OpenAICompatProvider(
        provider_config,
        resolved.model_id,
        raw_log=raw_log,
        reasoning=resolved.reasoning,
        max_tokens=resolved.max_tokens,
    )


__all__ = [
    "BaseProvider",
    "OpenAIChatFormatter",
    "OpenAICompatProvider",
    "create_provider",
]
