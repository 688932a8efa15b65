"""
Confirmer

Resolves a transaction hash to a TransactionResponse. Each invocation ends
in exactly one terminal state:

    Pending -> Confirmed   (the node returned the transaction)
    Pending -> TimedOut    (max_attempts misses, TimeoutError raised)

Fatal query errors propagate immediately. Account state is never touched.
"""

import logging
from typing import Optional

from ..schemas.bases import PollPolicy, TransactionResponse
from ..transports.bases import NodeTransport
from ..utils.cancel import CancelToken
from .retry import poll


logger = logging.getLogger(__name__)


class Confirmer:
    """Bounded polling for transaction inclusion."""

    def __init__(self, transport: NodeTransport, policy: Optional[PollPolicy] = None) -> None:
        self.transport = transport
        self.policy = policy or PollPolicy.default()

    async def confirm(
        self,
        tx_hash: str,
        policy: Optional[PollPolicy] = None,
        cancel: Optional[CancelToken] = None,
    ) -> TransactionResponse:
        """
        Wait until ``tx_hash`` is included.

        Calling this again for an included transaction returns an equal
        response; the result is whatever the node reports for the hash.

        Raises:
            TimeoutError: After policy.max_attempts misses; ``tx_hash`` is set.
            ClientError: Any non-transient query error.
        """
        policy = policy or self.policy
        response = await poll(
            lambda: self.transport.get_tx(tx_hash),
            policy,
            cancel=cancel,
            description=f"confirm {tx_hash}",
            tx_hash=tx_hash,
        )
        logger.debug(f"Transaction {tx_hash} confirmed at height {response.height}")
        return response
