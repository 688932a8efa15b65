"""
Account Sequencer

The only place an account's (account_number, sequence) pair is read for
signing or mutated. Sign+broadcast runs inside ``acquire()``; the guard it
yields either commits (sequence += 1, after an accepted broadcast) or
releases without touching the sequence.

Example:
    sequencer = await AccountSequencer.create(transport, address)
    async with sequencer.acquire() as guard:
        account_number, sequence = guard.current()
        ...
        if accepted:
            guard.commit()
        else:
            guard.release_without_commit()
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Tuple

from ..engine.exceptions import ClientError
from ..schemas.bases import AccountInfo
from ..transports.bases import NodeTransport
from ..utils.cancel import CancelToken, guard


logger = logging.getLogger(__name__)


class SequenceGuard:
    """Exclusive handle on an account's sequence for one sign+broadcast."""

    def __init__(self, sequencer: "AccountSequencer") -> None:
        self._sequencer = sequencer
        self._released = False
        self.committed = False

    @property
    def released(self) -> bool:
        return self._released

    def _check(self) -> None:
        if self._released:
            raise ClientError("sequence guard already released")

    def current(self) -> Tuple[int, int]:
        """(account_number, sequence) to sign with."""
        self._check()
        return self._sequencer._account_number, self._sequencer._sequence

    def commit(self) -> None:
        """Record an accepted broadcast: increment the sequence, then release."""
        self._check()
        self._sequencer._sequence += 1
        self.committed = True
        self._released = True
        logger.debug(f"Sequence for {self._sequencer.address} committed, next={self._sequencer._sequence}")

    def release_without_commit(self) -> None:
        """Release on simulate-only or rejected paths; the sequence is unchanged."""
        self._released = True


class AccountSequencer:
    """
    Owner of one signing account's mutable sequence.

    Use ``create()`` rather than the constructor so the account is fetched
    from the node first.
    """

    def __init__(self, account: AccountInfo) -> None:
        self.address = account.address
        self._account_number = account.account_number
        self._sequence = account.sequence
        self._lock = asyncio.Lock()

    @classmethod
    async def create(
        cls,
        transport: NodeTransport,
        address: str,
        cancel: Optional[CancelToken] = None,
    ) -> "AccountSequencer":
        """
        Fetch the account and build a sequencer for it.

        Raises:
            NotFoundError: If the node does not know the account (e.g. it has
                never received funds).
            ClientError: On any other lookup failure.
        """
        try:
            account = await guard(transport.get_account(address), cancel)
        except ClientError:
            raise
        except Exception as exc:
            raise ClientError(f"account lookup for {address} failed: {exc}") from exc
        logger.debug(f"Account {address}: number={account.account_number}, sequence={account.sequence}")
        return cls(account)

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def snapshot(self) -> Tuple[int, int]:
        """
        Lock-free read of (account_number, sequence).

        Used by the simulator only; the value may be stale by the time a
        transaction is signed, which is harmless for a dry run.
        """
        return self._account_number, self._sequence

    @asynccontextmanager
    async def acquire(self, cancel: Optional[CancelToken] = None) -> AsyncIterator[SequenceGuard]:
        """
        Wait for exclusive access and yield a SequenceGuard.

        Leaving the block without commit(), including by exception or
        cancellation, releases without changing the sequence.
        """
        await guard(self._lock.acquire(), cancel)
        sequence_guard = SequenceGuard(self)
        try:
            yield sequence_guard
        finally:
            if not sequence_guard.released:
                sequence_guard.release_without_commit()
            self._lock.release()

    async def resync(self, transport: NodeTransport, cancel: Optional[CancelToken] = None) -> AccountInfo:
        """Refetch account number and sequence from the node under the lock."""
        async with self.acquire(cancel):
            account = await guard(transport.get_account(self.address), cancel)
            if account.sequence != self._sequence:
                logger.info(f"Sequence for {self.address} resynced: {self._sequence} -> {account.sequence}")
            self._account_number = account.account_number
            self._sequence = account.sequence
            return account
