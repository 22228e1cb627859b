"""Command-line interface."""

from reactloop.cli.repl import main

__all__ = ["main"]
