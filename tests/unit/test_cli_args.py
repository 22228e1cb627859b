"""Tests for CLI argument parsing, logging setup and output helpers."""

import logging
from pathlib import Path

import pytest
from rich.console import Console

from reactloop.cli.arg_parser import parse_args
from reactloop.cli.bootstrap import LOGGER_NAME, configure_logging
from reactloop.cli.output import format_tool_call
from reactloop.core.types import ToolUseBlock


class TestParseArgs:
    """Tests for parse_args()."""

    def test_defaults(self):
        args = parse_args([])
        assert args.config is None
        assert args.model is None
        assert args.max_iters is None
        assert args.stream is None
        assert args.session is None
        assert args.verbose is False

    def test_all_options(self):
        args = parse_args([
            "--config", "cfg.json", "-m", "openai/smart", "--max-iters", "4",
            "--no-stream", "-s", "chat-1", "-v",
        ])
        assert args.config == Path("cfg.json")
        assert args.model == "openai/smart"
        assert args.max_iters == 4
        assert args.stream is False
        assert args.session == "chat-1"
        assert args.verbose is True

    def test_max_iters_must_be_positive(self):
        with pytest.raises(SystemExit):
            parse_args(["--max-iters", "0"])


@pytest.fixture
def restore_logger():
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_console_only(self, restore_logger):
        assert configure_logging(console=Console(quiet=True)) is None
        assert restore_logger.level == logging.WARNING
        assert len(restore_logger.handlers) == 1
        assert restore_logger.propagate is False

    def test_file_logging(self, tmp_path: Path, restore_logger):
        log_file = configure_logging(tmp_path / "logs", console=Console(quiet=True))

        logging.getLogger("reactloop.agent.react").info("turn finished")
        for handler in restore_logger.handlers:
            handler.flush()

        assert log_file == tmp_path / "logs" / "reactloop.log"
        assert "[INFO] reactloop.agent.react: turn finished" in log_file.read_text()

    def test_reconfigure_replaces_handlers(self, restore_logger):
        configure_logging(console=Console(quiet=True))
        configure_logging(verbose=True, console=Console(quiet=True))
        assert len(restore_logger.handlers) == 1
        assert restore_logger.level == logging.DEBUG


class TestFormatToolCall:
    """Tests for format_tool_call()."""

    def test_formats_arguments(self):
        tool_use = ToolUseBlock(id="c1", name="search", input={"q": "tea", "limit": 3})
        assert format_tool_call(tool_use) == "search(q='tea', limit=3)"

    def test_truncates(self):
        tool_use = ToolUseBlock(id="c1", name="write", input={"text": "x" * 200})
        formatted = format_tool_call(tool_use, max_length=20)
        assert formatted.endswith("...)")
        assert len(formatted) == len("write()") + 20
