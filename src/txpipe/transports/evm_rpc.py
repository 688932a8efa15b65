"""
EVM JSON-RPC transport.

Wraps an ``AsyncWeb3`` instance and normalizes receipts, nonces and balances
into txpipe schemas. The account "sequence" on EVM is the pending nonce and
account_number is always 0.
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Dict, List, Optional, TypeVar, Union

from eth_utils import keccak
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3RPCError

from ..codecs.evm import checksum_address, decode_transaction
from ..engine.exceptions import (
    ConnectionError,
    InvalidArgumentError,
    NotFoundError,
    ServiceError,
)
from ..schemas.bases import (
    Accepted,
    AccountInfo,
    BroadcastMode,
    Event,
    Rejected,
    SimulationResult,
    TransactionResponse,
)
from .bases import NodeTransport


logger = logging.getLogger(__name__)

T = TypeVar("T")

NATIVE_DENOMS = ("wei", "eth", "")

# JSON-RPC "invalid params"
_INVALID_PARAMS = -32602


def get_balance_abi() -> List[Dict[str, Any]]:
    """ABI for ERC-20 ``balanceOf(address)``."""
    return [
        {
            "name": "balanceOf",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "account", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
        }
    ]


def _rpc_error_fields(exc: Web3RPCError) -> Dict[str, Any]:
    response = getattr(exc, "rpc_response", None) or {}
    error = response.get("error") if isinstance(response, dict) else None
    return error if isinstance(error, dict) else {}


class EvmRpcTransport(NodeTransport):
    """
    NodeTransport over EVM JSON-RPC.

    Args:
        rpc_url: HTTP(S) JSON-RPC endpoint.
        timeout: Per-request timeout in seconds.
        w3: Pre-built AsyncWeb3 instance, mainly for tests.

    Note:
        EVM nodes have no broadcast modes; every mode returns once the node
        admits the transaction to its pool, and inclusion is observed through
        the Confirmer.
    """

    def __init__(self, rpc_url: Optional[str] = None, timeout: float = 10.0, w3: Optional[AsyncWeb3] = None) -> None:
        if w3 is None:
            w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.w3 = w3

    async def _call(self, awaitable: Awaitable[T], context: str) -> T:
        try:
            return await awaitable
        except TransactionNotFound as exc:
            raise NotFoundError(f"{context}: {exc}") from exc
        except ContractLogicError:
            # A revert is an execution result; callers decide what it means.
            raise
        except Web3RPCError as exc:
            if _rpc_error_fields(exc).get("code") == _INVALID_PARAMS:
                raise InvalidArgumentError(f"{context}: {exc}") from exc
            raise ServiceError(f"{context}: {exc}") from exc
        except (OSError, asyncio.TimeoutError) as exc:
            raise ConnectionError(f"{context}: {exc}") from exc

    async def simulate(self, tx_bytes: bytes, sender: Optional[str] = None) -> SimulationResult:
        decoded = decode_transaction(tx_bytes)
        call: Dict[str, Any] = {"to": decoded["to"], "value": decoded["value"], "data": decoded["data"]}
        if sender:
            call["from"] = checksum_address(sender)
        try:
            gas = await self._call(self.w3.eth.estimate_gas(call), "estimate gas failed")
        except ContractLogicError as exc:
            logger.debug(f"Dry run reverted: {exc}")
            return SimulationResult(code=1, log=str(exc))
        return SimulationResult(gas_wanted=gas, gas_used=gas)

    async def broadcast_tx(self, tx_bytes: bytes, mode: BroadcastMode = BroadcastMode.SYNC) -> Union[Accepted, Rejected]:
        try:
            tx_hash = await self.w3.eth.send_raw_transaction(tx_bytes)
        except Web3RPCError as exc:
            error = _rpc_error_fields(exc)
            return Rejected(
                tx_hash="0x" + keccak(tx_bytes).hex(),
                code=int(error.get("code") or 1),
                raw_log=str(error.get("message") or exc),
            )
        except (OSError, asyncio.TimeoutError) as exc:
            raise ConnectionError(f"broadcast failed: {exc}") from exc
        return Accepted(tx_hash=AsyncWeb3.to_hex(tx_hash))

    async def get_tx(self, tx_hash: str) -> TransactionResponse:
        receipt = await self._call(self.w3.eth.get_transaction_receipt(tx_hash), f"receipt {tx_hash}")
        tx = await self._call(self.w3.eth.get_transaction(tx_hash), f"transaction {tx_hash}")
        block = await self._call(self.w3.eth.get_block(receipt["blockNumber"]), f"block {receipt['blockNumber']}")

        succeeded = receipt["status"] == 1
        events = [
            Event(
                event_type="log",
                attributes=[
                    ("address", log["address"]),
                    ("topics", ",".join(AsyncWeb3.to_hex(topic) for topic in log["topics"])),
                    ("data", AsyncWeb3.to_hex(log["data"])),
                ],
            )
            for log in receipt["logs"]
        ]
        return TransactionResponse(
            tx_hash=AsyncWeb3.to_hex(receipt["transactionHash"]),
            height=receipt["blockNumber"],
            gas_wanted=tx["gas"],
            gas_used=receipt["gasUsed"],
            code=0 if succeeded else 1,
            events=events,
            data=receipt.get("contractAddress") or "",
            raw_log="" if succeeded else "execution reverted",
            timestamp=datetime.fromtimestamp(block["timestamp"], tz=timezone.utc).isoformat(),
            block_hash=AsyncWeb3.to_hex(receipt["blockHash"]),
            original_request_payload=AsyncWeb3.to_hex(tx["input"]),
        )

    async def get_account(self, address: str) -> AccountInfo:
        checksum = checksum_address(address)
        nonce = await self._call(self.w3.eth.get_transaction_count(checksum, "pending"), f"nonce for {checksum}")
        return AccountInfo(address=checksum, account_number=0, sequence=nonce)

    async def get_balance(self, address: str, denom: str) -> int:
        owner = checksum_address(address)
        if denom.lower() in NATIVE_DENOMS:
            return await self._call(self.w3.eth.get_balance(owner), f"balance of {owner}")
        token = self.w3.eth.contract(address=checksum_address(denom), abi=get_balance_abi())
        return await self._call(token.functions.balanceOf(owner).call(), f"token balance of {owner}")

    async def gas_price(self) -> Optional[Decimal]:
        price = await self._call(self.w3.eth.gas_price, "gas price query failed")
        return Decimal(price)

    async def close(self) -> None:
        disconnect = getattr(self.w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
