"""Configuration loading with fail-fast behavior and layered merging.

Configs are merged from two layers: the global user config
(~/.reactloop/config.json) and the project local config
(<cwd>/.reactloop/config.json). Later layers override earlier ones.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from reactloop.config.schema import Config
from reactloop.core.constants import REACTLOOP_DIR_NAME, get_reactloop_dir
from reactloop.core.errors import ConfigError
from reactloop.core.utils import deep_merge

logger = logging.getLogger(__name__)


def load_config(path: Path | None = None, cwd: Path | None = None) -> Config:
    """Load configuration from file with layered merging.

    Args:
        path: Explicit config file path. If provided, skips layered loading.
        cwd: Working directory for local config lookup. Defaults to Path.cwd().

    Returns:
        Validated Config object. Pydantic defaults when no file exists.

    Raises:
        ConfigError: If any config file contains invalid JSON or merged config
            fails validation.
    """
    if path is not None:
        return _load_from_path(path)

    effective_cwd = cwd or Path.cwd()
    layers = [
        get_reactloop_dir() / "config.json",
        effective_cwd / REACTLOOP_DIR_NAME / "config.json",
    ]

    merged: dict[str, Any] = {}
    loaded_from: list[Path] = []
    for layer in layers:
        # Avoid loading the same file twice when cwd is the home directory
        if layer.resolve() in (p.resolve() for p in loaded_from):
            continue
        data = read_config_file(layer, required=False)
        if data:
            merged = deep_merge(merged, data)
            loaded_from.append(layer)

    if not merged:
        logger.debug("No config files found, using defaults")
        return Config()

    logger.info("Config loaded from: %s", [str(p) for p in loaded_from])
    try:
        return Config.model_validate(merged)
    except ValidationError as e:
        sources = ", ".join(str(p) for p in loaded_from)
        raise ConfigError(f"Config validation failed (merged from {sources}): {e}") from e


def _load_from_path(path: Path) -> Config:
    """Load and validate config from a specific path.

    Raises:
        ConfigError: If file doesn't exist, contains invalid JSON, or fails validation.
    """
    data = read_config_file(path, required=True)
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed for {path}: {e}") from e


def read_config_file(path: Path, *, required: bool) -> dict[str, Any] | None:
    """Read one config layer as a JSON object.

    A blank file counts as an empty layer. A missing optional layer
    returns None.

    Raises:
        ConfigError: If a required file is missing, or the file is unreadable,
            not valid JSON, or not a JSON object.
    """
    if not path.is_file():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        logger.debug("No config layer at %s", path)
        return None

    try:
        # utf-8-sig tolerates the BOM some Windows editors write
        content = path.read_text(encoding="utf-8-sig").strip()
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e
    if not content:
        return {}

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {path} must hold a JSON object, got {type(data).__name__}"
        )
    return data
