"""
Node transport boundary.

These are the only network calls the pipeline issues. Implementations map
their library's errors onto the txpipe hierarchy:

    absent account / transaction  -> NotFoundError
    node says argument invalid    -> InvalidArgumentError
    channel or socket failure     -> ConnectionError
    any other RPC error           -> ServiceError

An on-chain rejection of a broadcast is not an error: it is returned as a
Rejected outcome.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, Union

from ..schemas.bases import (
    Accepted,
    AccountInfo,
    BroadcastMode,
    Rejected,
    SimulationResult,
    TransactionResponse,
)


class NodeTransport(ABC):
    """Async RPC boundary to one chain node."""

    @abstractmethod
    async def simulate(self, tx_bytes: bytes, sender: Optional[str] = None) -> SimulationResult:
        """Dry-run ``tx_bytes``; a failed execution is a result with non-zero code."""

    @abstractmethod
    async def broadcast_tx(self, tx_bytes: bytes, mode: BroadcastMode = BroadcastMode.SYNC) -> Union[Accepted, Rejected]:
        """Submit signed bytes."""

    @abstractmethod
    async def get_tx(self, tx_hash: str) -> TransactionResponse:
        """Look up an included transaction; raises NotFoundError when absent."""

    @abstractmethod
    async def get_account(self, address: str) -> AccountInfo:
        """Account number and next sequence; raises NotFoundError when absent."""

    @abstractmethod
    async def get_balance(self, address: str, denom: str) -> int:
        """Balance in minimal units."""

    async def gas_price(self) -> Optional[Decimal]:
        """Current unit gas price, or None when the node cannot tell."""
        return None

    async def close(self) -> None:
        """Release network resources."""
        return None
