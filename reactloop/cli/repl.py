"""Interactive REPL for a single ReAct agent.

Ctrl-C during a turn interrupts the agent; at the prompt it exits. When a
tool suspends, the REPL asks the user for its result and resumes the agent.
When a hook pauses the agent, the REPL asks whether to continue.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from reactloop.agent import AgentCompleted, ReActAgent
from reactloop.cli.arg_parser import parse_args
from reactloop.cli.bootstrap import configure_logging
from reactloop.cli.output import console, format_tool_call, print_error, print_info, print_tool_result
from reactloop.config import AgentConfig, Config, load_config
from reactloop.core.constants import get_log_dir
from reactloop.core.errors import ReactLoopError
from reactloop.core.types import (
    ContentDelta,
    GenerateReason,
    Message,
    ReasoningDelta,
    Role,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from reactloop.hooks import (
    ActingChunkEvent,
    HookEvent,
    LoggingHook,
    PostActingEvent,
    ReasoningChunkEvent,
)
from reactloop.hooks.pipeline import Hook
from reactloop.provider import create_provider
from reactloop.session import SqliteSession
from reactloop.tool import Toolkit

logger = logging.getLogger(__name__)

USER_NAME = "user"


class _ToolResultPrinter(Hook):
    """Prints each completed tool call as it finishes."""

    priority = 1000

    async def on_event(self, event: HookEvent) -> None:
        if isinstance(event, PostActingEvent):
            print_tool_result(event.result)


def build_toolkit(config: Config) -> Toolkit:
    """Toolkit with the REPL's built-in tools."""
    toolkit = Toolkit(config.toolkit, config.tool_execution)

    @toolkit.tool
    def current_time() -> str:
        """Get the current local date and time."""
        return datetime.now().isoformat(timespec="seconds")

    toolkit.register_schema(
        "ask_user",
        "Ask the user a question and wait for the answer",
        {
            "type": "object",
            "properties": {"question": {"type": "string", "description": "The question to ask"}},
            "required": ["question"],
        },
    )
    return toolkit


@contextlib.contextmanager
def _interrupt_on_sigint(agent: ReActAgent) -> Iterator[None]:
    """Route Ctrl-C to ``agent.interrupt()`` for the duration of a turn."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, agent.interrupt)
    except (NotImplementedError, RuntimeError):
        # No signal handler support (e.g. Windows); Ctrl-C behaves as usual
        yield
        return
    try:
        yield
    finally:
        loop.remove_signal_handler(signal.SIGINT)


async def run_turn(agent: ReActAgent, msg: Message | None) -> Message:
    """Run one agent call, printing output as it arrives."""
    with _interrupt_on_sigint(agent):
        if not agent.config.stream:
            reply = await agent.call(msg)
            if reply.generate_reason == GenerateReason.MODEL_STOP:
                console.print(reply.get_text_content(), highlight=False)
            return reply

        in_reasoning = False
        reply = None
        async for event in agent.stream(msg):
            match event:
                case ReasoningChunkEvent(chunk=ReasoningDelta() as delta):
                    in_reasoning = True
                    console.print(delta.text, end="", style="dim italic", highlight=False)
                case ReasoningChunkEvent(chunk=ContentDelta() as delta):
                    if in_reasoning:
                        console.print()
                        in_reasoning = False
                    console.print(delta.text, end="", highlight=False)
                case ActingChunkEvent():
                    print_info(f"  {event.tool_use.name}: {event.chunk.text[-80:]}")
                case AgentCompleted():
                    reply = event.message
        console.print()
        assert reply is not None
        return reply


async def _ask(prompt: str) -> str:
    return await asyncio.to_thread(console.input, prompt)


async def resolve_suspended(reply: Message) -> Message | None:
    """Ask the user for the result of each suspended tool call.

    Pending calls that never ran are left for the agent to execute on resume.
    Returns None when nothing was suspended.
    """
    reasons = reply.metadata.get("suspended", {})
    results: list[ToolResultBlock] = []
    for tool_use in reply.get_content_blocks(ToolUseBlock):
        if tool_use.id not in reasons:
            continue
        console.print(f"[yellow]Tool suspended:[/] {format_tool_call(tool_use)}")
        print_info(f"  reason: {reasons[tool_use.id]}")
        question = tool_use.input.get("question") if tool_use.name == "ask_user" else None
        answer = await _ask(f"{question or 'Result'}: ")
        results.append(
            ToolResultBlock(id=tool_use.id, name=tool_use.name, output=(TextBlock(answer),))
        )
    if not results:
        return None
    return Message(name=USER_NAME, role=Role.USER, content=tuple(results))


async def run_until_settled(agent: ReActAgent, msg: Message | None) -> Message:
    """Run a turn and keep resuming while the user supplies what the agent waits for."""
    reply = await run_turn(agent, msg)
    while reply.generate_reason is not None and reply.generate_reason.resumable:
        if reply.generate_reason == GenerateReason.TOOL_SUSPENDED:
            resume = await resolve_suspended(reply)
        else:
            answer = await _ask(f"[yellow]Paused ({reply.generate_reason.value}).[/] Continue? [y/N] ")
            if answer.strip().lower() not in ("y", "yes"):
                break
            resume = None
        reply = await run_turn(agent, resume)

    if reply.generate_reason == GenerateReason.INTERRUPTED:
        console.print("[bright_yellow]● Interrupted[/]")
    elif reply.generate_reason == GenerateReason.MAX_ITERATIONS:
        console.print("[bright_yellow]● Reached the iteration limit[/]")
    return reply


async def run_repl(
    config_path: Path | None = None,
    model: str | None = None,
    max_iters: int | None = None,
    stream: bool | None = None,
    session_id: str | None = None,
    verbose: bool = False,
) -> None:
    """Run the interactive REPL until EOF, Ctrl-C at the prompt, or /quit."""
    configure_logging(get_log_dir(), verbose=verbose)
    config = load_config(config_path)

    overrides = {
        k: v for k, v in (("max_iters", max_iters), ("stream", stream)) if v is not None
    }
    if overrides:
        agent_config = AgentConfig(**{**config.agent.model_dump(), **overrides})
        config = config.model_copy(update={"agent": agent_config})

    provider = create_provider(config, model)
    agent = ReActAgent.from_config(config, model=provider, toolkit=build_toolkit(config))
    agent.hooks.register(LoggingHook())
    agent.hooks.register(_ToolResultPrinter())

    session: SqliteSession | None = None
    if session_id:
        session = SqliteSession(config.session_dir / "sessions.db")
        if session.load_session_state(session_id, agent=agent):
            print_info(f"Loaded session '{session_id}' ({agent.memory.size()} messages)")

    console.print(f"[bold]reactloop[/] - model {provider.model_id}. Ctrl-C interrupts, /quit exits.")

    try:
        while True:
            try:
                user_input = await _ask("[bold cyan]> [/]")
            except (EOFError, KeyboardInterrupt):
                console.print("")
                break

            text = user_input.strip()
            if not text:
                continue
            if text in ("/quit", "/exit", "/q"):
                break

            try:
                await run_until_settled(agent, Message.text(USER_NAME, Role.USER, text))
            except ReactLoopError as e:
                print_error(e.message)

            if session is not None:
                try:
                    session.save_session_state(session_id, agent=agent)
                except (ReactLoopError, OSError) as e:
                    # Log but don't fail the REPL for save errors
                    logger.warning("Session save failed: %s", e)
                    print_error(f"Session save failed: {e}")
    finally:
        await provider.aclose()
        if session is not None:
            session.close()

    console.print("Goodbye!", style="dim")


def main() -> None:
    """Entry point for the reactloop CLI."""
    args = parse_args()
    try:
        asyncio.run(run_repl(
            config_path=args.config,
            model=args.model,
            max_iters=args.max_iters,
            stream=args.stream,
            session_id=args.session,
            verbose=args.verbose,
        ))
    except ReactLoopError as e:
        print_error(e.message)
        raise SystemExit(1) from e
    except KeyboardInterrupt:
        # Handle Ctrl+C during startup
        pass
