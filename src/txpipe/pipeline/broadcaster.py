"""
Broadcaster

Submits signed bytes and classifies the node's answer as Accepted or
Rejected. It never touches the sequencer: the caller commits on Accepted and
releases on Rejected.
"""

import logging
from typing import Optional, Union

from ..schemas.bases import Accepted, BroadcastMode, Rejected, SignedTransaction
from ..transports.bases import NodeTransport
from ..utils.cancel import CancelToken


logger = logging.getLogger(__name__)


class Broadcaster:
    """Submit signed transactions through a NodeTransport."""

    def __init__(self, transport: NodeTransport) -> None:
        self.transport = transport

    async def broadcast(
        self,
        signed: SignedTransaction,
        mode: BroadcastMode = BroadcastMode.SYNC,
        cancel: Optional[CancelToken] = None,
    ) -> Union[Accepted, Rejected]:
        """
        Submit ``signed``.

        The cancel token is checked before submission only. Once bytes are on
        the wire the node may already have accepted them, so the call is
        allowed to finish and report the outcome.

        Raises:
            OperationCancelledError: If ``cancel`` fired before submission.
            ConnectionError / ServiceError: On transport failure.
        """
        if cancel is not None:
            cancel.raise_if_cancelled()

        outcome = await self.transport.broadcast_tx(signed.tx_bytes, BroadcastMode(mode))
        if isinstance(outcome, Accepted):
            if outcome.tx_hash.lower() != signed.tx_hash.lower():
                logger.warning(f"Node reported hash {outcome.tx_hash}, computed {signed.tx_hash}")
            logger.debug(f"Broadcast accepted: {outcome.tx_hash} (seq={signed.sequence})")
        else:
            logger.debug(f"Broadcast rejected: code={outcome.code} log={outcome.raw_log}")
        return outcome
