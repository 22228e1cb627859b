"""Shared utility functions for reactloop."""

from __future__ import annotations

import asyncio
import random
from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dicts. Override values take precedence.

    Merge rules:
    - Dicts are recursively merged
    - Lists are REPLACED (override wins completely)
    - Other values are overwritten

    Args:
        base: Base dictionary.
        override: Dictionary with values to overlay.

    Returns:
        New merged dictionary (original dicts not modified).
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def calculate_backoff(
    attempt: int,
    initial: float,
    multiplier: float,
    maximum: float,
    jitter: bool = True,
) -> float:
    """Calculate the delay before retry ``attempt`` (0-indexed).

    Uses exponential backoff ``initial * multiplier ** attempt`` capped at
    ``maximum``, plus up to one second of random jitter when ``jitter`` is set.
    """
    delay = min(initial * (multiplier ** attempt), maximum)
    if jitter:
        delay = min(delay + random.uniform(0, 1), maximum)
    return delay


async def run_with_timeout(coro: Any, timeout: float | None) -> Any:
    """Await ``coro``, bounded by ``timeout`` seconds when one is given."""
    if timeout is None:
        return await coro
    return await asyncio.wait_for(coro, timeout=timeout)
