"""Argument parsing for the reactloop CLI."""

import argparse
from pathlib import Path


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="reactloop",
        description="Interactive ReAct agent",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file (default: ~/.reactloop/config.json merged with ./.reactloop/config.json)",
    )
    parser.add_argument(
        "--model", "-m",
        help="Model alias or 'provider/alias' (default: config default_model)",
    )
    parser.add_argument(
        "--max-iters",
        dest="max_iters",
        type=int,
        help="Maximum reasoning steps per turn (overrides config)",
    )
    parser.add_argument(
        "--no-stream",
        dest="stream",
        action="store_false",
        default=None,
        help="Wait for complete model responses instead of streaming",
    )
    parser.add_argument(
        "--session", "-s",
        help="Session ID to load at start and save after each turn",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging on the console",
    )

    args = parser.parse_args(argv)
    if args.max_iters is not None and args.max_iters < 1:
        parser.error("--max-iters must be at least 1")
    return args
