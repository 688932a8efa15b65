"""
Confirmer and BalanceWatcher tests.

Both pollers share one retry classification: NotFound / InvalidArgument are
misses, anything else is fatal on the attempt that raised it.
"""

import time

import pytest

from txpipe.engine.exceptions import (
    ConnectionError,
    InvalidArgumentError,
    NotFoundError,
    OperationCancelledError,
    ServiceError,
    TimeoutError,
)
from txpipe.pipeline.balance import BalanceWatcher
from txpipe.pipeline.confirmer import Confirmer
from txpipe.pipeline.retry import is_transient, poll
from txpipe.schemas.bases import PollPolicy
from txpipe.utils.cancel import CancelToken

from chain_fakes import FakeTransport, make_tx_response


class ScriptedTransport(FakeTransport):
    """get_tx answers from a script of responses / exceptions."""

    def __init__(self, script):
        super().__init__()
        self.script = list(script)

    async def get_tx(self, tx_hash):
        self.tx_queries += 1
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item


class TestConfirmer:

    @pytest.mark.asyncio
    async def test_timeout_after_max_attempts(self):
        transport = ScriptedTransport([NotFoundError("missing")])
        confirmer = Confirmer(transport)
        policy = PollPolicy(interval=0.05, max_attempts=3)

        started = time.monotonic()
        with pytest.raises(TimeoutError) as exc_info:
            await confirmer.confirm("ABC123", policy)
        elapsed = time.monotonic() - started

        assert transport.tx_queries == 3
        assert exc_info.value.tx_hash == "ABC123"
        assert 0.1 <= elapsed < 1.0

    @pytest.mark.asyncio
    async def test_not_found_then_found(self):
        response = make_tx_response("ABC123", height=42)
        transport = ScriptedTransport([NotFoundError("missing"), InvalidArgumentError("not indexed"), response])
        confirmer = Confirmer(transport, PollPolicy(interval=0.01, max_attempts=5))

        result = await confirmer.confirm("ABC123")
        assert result == response
        assert transport.tx_queries == 3

    @pytest.mark.asyncio
    async def test_failed_execution_is_still_confirmed(self):
        response = make_tx_response("ABC123", code=5, raw_log="insufficient funds")
        confirmer = Confirmer(ScriptedTransport([response]), PollPolicy(interval=0.01, max_attempts=2))

        result = await confirmer.confirm("ABC123")
        assert not result.succeeded
        assert result.code == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fatal", [ConnectionError("channel closed"), ServiceError("internal")])
    async def test_fatal_error_propagates_on_first_attempt(self, fatal):
        transport = ScriptedTransport([fatal, make_tx_response("ABC123")])
        confirmer = Confirmer(transport, PollPolicy(interval=0.01, max_attempts=5))

        with pytest.raises(type(fatal)):
            await confirmer.confirm("ABC123")
        assert transport.tx_queries == 1

    @pytest.mark.asyncio
    async def test_confirm_is_idempotent(self):
        response = make_tx_response("ABC123")
        confirmer = Confirmer(ScriptedTransport([response]), PollPolicy(interval=0.01, max_attempts=2))

        assert await confirmer.confirm("ABC123") == await confirmer.confirm("ABC123")

    @pytest.mark.asyncio
    async def test_cancel_stops_polling(self):
        transport = ScriptedTransport([NotFoundError("missing")])
        confirmer = Confirmer(transport, PollPolicy(interval=10, max_attempts=5))

        with pytest.raises(OperationCancelledError):
            await confirmer.confirm("ABC123", cancel=CancelToken(timeout=0.05))
        assert transport.tx_queries == 1

    @pytest.mark.asyncio
    async def test_already_cancelled_token_issues_no_query(self):
        transport = ScriptedTransport([make_tx_response("ABC123")])
        token = CancelToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            await Confirmer(transport).confirm("ABC123", cancel=token)
        assert transport.tx_queries == 0


class TestBalanceWatcher:

    @pytest.mark.asyncio
    async def test_returns_first_balance_meeting_threshold(self):
        transport = FakeTransport()
        transport.balances[("cosmos1me", "uatom")] = [0, 50, 150, 500]
        watcher = BalanceWatcher(transport, PollPolicy(interval=0.01, max_attempts=10))

        assert await watcher.wait_for_balance("cosmos1me", "uatom", 100) == 150

    @pytest.mark.asyncio
    async def test_transient_errors_are_misses(self):
        transport = FakeTransport()
        transport.balances[("cosmos1me", "uatom")] = [NotFoundError("no account yet"), 100]
        watcher = BalanceWatcher(transport, PollPolicy(interval=0.01, max_attempts=3))

        assert await watcher.wait_for_balance("cosmos1me", "uatom", 100) == 100

    @pytest.mark.asyncio
    async def test_fatal_errors_propagate(self):
        transport = FakeTransport()
        transport.balances[("cosmos1me", "uatom")] = [ConnectionError("down"), 100]
        watcher = BalanceWatcher(transport, PollPolicy(interval=0.01, max_attempts=3))

        with pytest.raises(ConnectionError):
            await watcher.wait_for_balance("cosmos1me", "uatom", 100)

    @pytest.mark.asyncio
    async def test_times_out(self):
        transport = FakeTransport()
        transport.balances[("cosmos1me", "uatom")] = [5]
        watcher = BalanceWatcher(transport)

        with pytest.raises(TimeoutError):
            await watcher.wait_for_balance(
                "cosmos1me", "uatom", 100, PollPolicy(interval=0.01, max_attempts=3)
            )


class TestRetryClassification:

    def test_transient_errors(self):
        assert is_transient(NotFoundError("x"))
        assert is_transient(InvalidArgumentError("x"))
        assert not is_transient(ServiceError("x"))
        assert not is_transient(ConnectionError("x"))

    @pytest.mark.asyncio
    async def test_rejected_values_count_as_misses(self):
        values = iter([1, 2, 3])

        async def query():
            return next(values)

        result = await poll(query, PollPolicy(interval=0.01, max_attempts=3), accept=lambda v: v == 3)
        assert result == 3
