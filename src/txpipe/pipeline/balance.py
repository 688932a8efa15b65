"""
BalanceWatcher

Polls a balance until it reaches a threshold. Shares the Confirmer's retry
classification (see retry.py): transient query errors are misses, anything
else is fatal.
"""

import logging
from typing import Optional

from ..schemas.bases import PollPolicy
from ..transports.bases import NodeTransport
from ..utils.cancel import CancelToken
from .retry import poll


logger = logging.getLogger(__name__)


class BalanceWatcher:
    """Bounded polling for ``balance >= min_amount``."""

    def __init__(self, transport: NodeTransport, policy: Optional[PollPolicy] = None) -> None:
        self.transport = transport
        self.policy = policy or PollPolicy.default()

    async def wait_for_balance(
        self,
        address: str,
        denom: str,
        min_amount: int,
        policy: Optional[PollPolicy] = None,
        cancel: Optional[CancelToken] = None,
    ) -> int:
        """
        Returns:
            int: The first observed balance that is >= min_amount.

        Raises:
            TimeoutError: After policy.max_attempts misses.
            ClientError: Any non-transient query error.
        """
        balance = await poll(
            lambda: self.transport.get_balance(address, denom),
            policy or self.policy,
            accept=lambda amount: amount >= min_amount,
            cancel=cancel,
            description=f"balance {address} {denom} >= {min_amount}",
        )
        logger.debug(f"Balance of {address} reached {balance}{denom}")
        return balance
