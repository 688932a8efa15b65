"""
AccountSequencer tests: exclusive access, commit/release semantics,
lock-free snapshots, resync and cancellation while waiting for the lock.
"""

import asyncio

import pytest

from txpipe.engine.exceptions import ClientError, NotFoundError, OperationCancelledError
from txpipe.pipeline.sequencer import AccountSequencer
from txpipe.schemas.bases import AccountInfo
from txpipe.utils.cancel import CancelToken

from chain_fakes import FakeTransport


def make_sequencer(sequence: int = 3, account_number: int = 5) -> AccountSequencer:
    return AccountSequencer(AccountInfo(address="cosmos1test", account_number=account_number, sequence=sequence))


class TestCommitAndRelease:

    @pytest.mark.asyncio
    async def test_commit_increments_by_one(self):
        sequencer = make_sequencer(sequence=3)
        async with sequencer.acquire() as guard:
            assert guard.current() == (5, 3)
            guard.commit()
        assert sequencer.snapshot() == (5, 4)

    @pytest.mark.asyncio
    async def test_release_without_commit_keeps_sequence(self):
        sequencer = make_sequencer(sequence=3)
        async with sequencer.acquire() as guard:
            guard.release_without_commit()
        assert sequencer.snapshot() == (5, 3)

    @pytest.mark.asyncio
    async def test_exception_inside_guard_keeps_sequence(self):
        sequencer = make_sequencer(sequence=3)
        with pytest.raises(RuntimeError):
            async with sequencer.acquire():
                raise RuntimeError("broadcast blew up")
        assert sequencer.snapshot() == (5, 3)
        assert not sequencer.locked

    @pytest.mark.asyncio
    async def test_guard_is_single_use(self):
        sequencer = make_sequencer()
        async with sequencer.acquire() as guard:
            guard.commit()
            with pytest.raises(ClientError):
                guard.commit()

    @pytest.mark.asyncio
    async def test_simulation_snapshot_has_no_side_effects(self):
        sequencer = make_sequencer(sequence=9)
        for _ in range(3):
            assert sequencer.snapshot() == (5, 9)
        assert not sequencer.locked


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_holders_get_distinct_sequences(self):
        sequencer = make_sequencer(sequence=3)
        seen = []

        async def sign_and_broadcast():
            async with sequencer.acquire() as guard:
                _, sequence = guard.current()
                await asyncio.sleep(0.01)
                seen.append(sequence)
                guard.commit()

        await asyncio.gather(sign_and_broadcast(), sign_and_broadcast())
        assert sorted(seen) == [3, 4]
        assert sequencer.snapshot()[1] == 5

    @pytest.mark.asyncio
    async def test_snapshot_does_not_wait_for_lock(self):
        sequencer = make_sequencer(sequence=3)
        async with sequencer.acquire():
            assert sequencer.locked
            assert sequencer.snapshot() == (5, 3)

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_for_lock(self):
        sequencer = make_sequencer(sequence=3)
        token = CancelToken()

        async with sequencer.acquire():
            waiter = asyncio.create_task(sequencer.acquire(token).__aenter__())
            await asyncio.sleep(0.01)
            token.cancel("caller gave up")
            with pytest.raises(OperationCancelledError):
                await waiter

        assert not sequencer.locked
        assert sequencer.snapshot() == (5, 3)


class TestNodeSync:

    @pytest.mark.asyncio
    async def test_create_fetches_account(self):
        transport = FakeTransport(account_number=12, sequence=40)
        sequencer = await AccountSequencer.create(transport, "cosmos1test")
        assert sequencer.snapshot() == (12, 40)
        assert transport.account_lookups == 1

    @pytest.mark.asyncio
    async def test_create_propagates_not_found(self):
        transport = FakeTransport()

        async def missing(address):
            raise NotFoundError(f"account {address} not found")

        transport.get_account = missing
        with pytest.raises(NotFoundError):
            await AccountSequencer.create(transport, "cosmos1new")

    @pytest.mark.asyncio
    async def test_create_wraps_unexpected_errors(self):
        transport = FakeTransport()

        async def broken(address):
            raise ValueError("garbage response")

        transport.get_account = broken
        with pytest.raises(ClientError):
            await AccountSequencer.create(transport, "cosmos1test")

    @pytest.mark.asyncio
    async def test_resync_adopts_node_sequence(self):
        transport = FakeTransport(sequence=3)
        sequencer = await AccountSequencer.create(transport, "cosmos1test")
        transport.sequence = 11

        account = await sequencer.resync(transport)
        assert account.sequence == 11
        assert sequencer.snapshot()[1] == 11
