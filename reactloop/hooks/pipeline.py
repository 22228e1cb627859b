"""Priority-ordered hook pipeline.

Hooks run strictly in ascending priority; hooks with equal priority run in
registration order. Each invocation is bounded by ``HookConfig.timeout``.

Example:
    class AuditHook(Hook):
        priority = 10

        async def on_event(self, event: HookEvent) -> HookEvent | None:
            if isinstance(event, PreActingEvent):
                print("calling", event.tool_use.name)
            return None

    pipeline = HookPipeline()
    pipeline.register(AuditHook())
    event = await pipeline.fire(PreActingEvent(agent=agent, tool_use=tool_use))
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from dataclasses import dataclass
from typing import Any, TypeVar

from reactloop.config.schema import HookConfig
from reactloop.core.errors import HookError
from reactloop.hooks.events import ErrorEvent, HookEvent

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=HookEvent)


class Hook:
    """Base class for hooks.

    Subclasses override ``on_event`` and may set a class-level ``priority``
    (lower runs first). ``on_event`` may be sync or async. Returning ``None``
    keeps the event unchanged; returning an event of the same type replaces
    it for later hooks and the loop.
    """

    priority: int | None = None

    @property
    def name(self) -> str:
        return type(self).__name__

    async def on_event(self, event: HookEvent) -> HookEvent | None:
        return None


@dataclass(frozen=True)
class _Registration:
    priority: int
    seq: int
    hook: Any


class HookPipeline:
    """Ordered collection of hooks invoked at each loop phase."""

    def __init__(
        self,
        config: HookConfig | None = None,
        hooks: list[Any] | None = None,
    ) -> None:
        self._config = config or HookConfig()
        self._registrations: list[_Registration] = []
        self._seq = itertools.count()
        for hook in hooks or []:
            self.register(hook)

    @property
    def config(self) -> HookConfig:
        return self._config

    def register(self, hook: Any, priority: int | None = None) -> None:
        """Add a hook.

        Args:
            hook: Object with an ``on_event(event)`` method.
            priority: Overrides the hook's own ``priority`` attribute.
        """
        if not callable(getattr(hook, "on_event", None)):
            raise TypeError(f"Hook {hook!r} has no on_event method")
        if priority is None:
            priority = getattr(hook, "priority", None)
        if priority is None:
            priority = self._config.default_priority
        self._registrations.append(_Registration(priority, next(self._seq), hook))
        self._registrations.sort(key=lambda r: (r.priority, r.seq))

    def unregister(self, hook: Any) -> None:
        self._registrations = [r for r in self._registrations if r.hook is not hook]

    @property
    def hooks(self) -> list[Any]:
        """Registered hooks in execution order."""
        return [r.hook for r in self._registrations]

    def __len__(self) -> int:
        return len(self._registrations)

    async def fire(self, event: E) -> E:
        """Run all hooks for ``event`` and return the resulting event.

        Raises:
            HookError: If a hook raises, times out, or returns an event of the
                wrong type. Failures of hooks on ``ErrorEvent`` are logged
                instead.
        """
        for registration in self._registrations:
            hook = registration.hook
            try:
                result = await self._invoke(hook, event)
            except HookError as e:
                if isinstance(event, ErrorEvent):
                    logger.error("Error hook failed (ignored): %s", e.message)
                    continue
                raise

            if event.notify_only or result is None:
                pass
            elif type(result) is not type(event):
                raise HookError(
                    _hook_name(hook),
                    f"returned {type(result).__name__} for {type(event).__name__}",
                )
            else:
                event = result

            if getattr(event, "stopped", False):
                logger.debug(
                    "Hook %s stopped the agent at %s",
                    _hook_name(hook), event.event_type.value,
                )
                break

        return event

    async def _invoke(self, hook: Any, event: HookEvent) -> Any:
        name = _hook_name(hook)
        timeout = self._config.timeout
        try:
            result = hook.on_event(event)
            if inspect.isawaitable(result):
                if timeout is None:
                    result = await result
                else:
                    result = await asyncio.wait_for(result, timeout=timeout)
            return result
        except TimeoutError as e:
            raise HookError(name, f"timed out after {timeout}s") from e
        except HookError:
            raise
        except Exception as e:
            raise HookError(name, f"{type(e).__name__}: {e}") from e


def _hook_name(hook: Any) -> str:
    name = getattr(hook, "name", None)
    return name if isinstance(name, str) else type(hook).__name__
