"""
Simulator

Dry-runs a message signed with a zero fee and the current sequence. The
sequence is read, never reserved; concurrent simulations for one account are
fine and do not wait on an in-flight sign+broadcast.
"""

import logging
from typing import Optional

from ..engine.exceptions import NotFoundError, ServiceError
from ..schemas.bases import Message, SimulationResult
from ..transports.bases import NodeTransport
from ..utils.cancel import CancelToken, guard
from .signer import Signer


logger = logging.getLogger(__name__)


class Simulator:
    """Gas estimation through the node's dry-run endpoint."""

    def __init__(self, signer: Signer, transport: NodeTransport) -> None:
        self.signer = signer
        self.transport = transport

    async def simulate(
        self,
        message: Message,
        account_number: int,
        sequence: int,
        memo: str = "",
        cancel: Optional[CancelToken] = None,
    ) -> SimulationResult:
        """
        Dry-run ``message``.

        Returns:
            SimulationResult: A failed execution comes back with a non-zero code.

        Raises:
            ServiceError: If the simulate RPC itself errors.
            ConnectionError: If the node cannot be reached.
        """
        signed = self.signer.sign(message, self.signer.codec.zero_fee(), sequence, account_number, memo=memo)
        try:
            result = await guard(self.transport.simulate(signed.tx_bytes, sender=self.signer.address), cancel)
        except NotFoundError as exc:
            raise ServiceError(f"simulate failed: {exc}") from exc
        logger.debug(
            f"Simulated {message.type_identifier}: gas_used={result.gas_used} code={result.code}"
        )
        return result
