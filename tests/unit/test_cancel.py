"""Unit tests for cancellation support."""

import logging
from asyncio import CancelledError

import pytest

from reactloop.core.cancel import CancellationToken


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_not_cancelled_initially(self):
        """Token is not cancelled when created."""
        token = CancellationToken()
        assert token.is_cancelled is False

    def test_cancel_is_idempotent(self):
        """Calling cancel() multiple times is safe."""
        token = CancellationToken()
        token.cancel()
        token.cancel()
        assert token.is_cancelled is True

    def test_raise_if_cancelled(self):
        """raise_if_cancelled() raises only after cancel()."""
        token = CancellationToken()
        token.raise_if_cancelled()  # Should not raise

        token.cancel()
        with pytest.raises(CancelledError, match="cancelled"):
            token.raise_if_cancelled()

    def test_callbacks_run_in_registration_order(self):
        """Callbacks are invoked once, in order, on cancel()."""
        token = CancellationToken()
        results = []
        token.on_cancel(lambda: results.append(1))
        token.on_cancel(lambda: results.append(2))

        token.cancel()
        token.cancel()

        assert results == [1, 2]

    def test_on_cancel_after_cancel_runs_immediately(self):
        """on_cancel() on an already-cancelled token invokes the callback at once."""
        token = CancellationToken()
        token.cancel()

        called = []
        token.on_cancel(lambda: called.append(True))
        assert called == [True]

    def test_remove_callback(self):
        """A removed callback is not invoked."""
        token = CancellationToken()
        called = []

        def callback():
            called.append(True)

        token.on_cancel(callback)
        token.remove_callback(callback)
        token.remove_callback(callback)  # Unknown callbacks are ignored
        token.cancel()

        assert called == []

    def test_reset_clears_state_and_callbacks(self):
        """reset() makes the token reusable for a new run."""
        token = CancellationToken()
        results = []
        token.on_cancel(lambda: results.append("old"))
        token.cancel()

        token.reset()
        assert token.is_cancelled is False

        token.cancel()
        assert results == ["old"]

    def test_callback_error_does_not_prevent_cancellation(self, caplog):
        """A failing callback is logged; other callbacks still run."""
        token = CancellationToken()
        results = []

        def raise_error():
            raise ValueError("oops")

        token.on_cancel(lambda: results.append(1))
        token.on_cancel(raise_error)
        token.on_cancel(lambda: results.append(3))

        with caplog.at_level(logging.WARNING, logger="reactloop.core.cancel"):
            token.cancel()

        assert token.is_cancelled is True
        assert results == [1, 3]
        assert any("callback failed" in r.message for r in caplog.records)
