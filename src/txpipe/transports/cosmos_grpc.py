"""
Cosmos SDK gRPC transport.

Talks to a node's gRPC endpoint with cosmpy's generated service stubs over a
``grpc.aio`` channel and normalizes responses into txpipe schemas.
"""

import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Union

import grpc
from cosmpy.protos.cosmos.auth.v1beta1.auth_pb2 import BaseAccount, ModuleAccount
from cosmpy.protos.cosmos.auth.v1beta1.query_pb2 import QueryAccountRequest
from cosmpy.protos.cosmos.auth.v1beta1.query_pb2_grpc import QueryStub as AuthQueryStub
from cosmpy.protos.cosmos.bank.v1beta1.query_pb2 import QueryBalanceRequest
from cosmpy.protos.cosmos.bank.v1beta1.query_pb2_grpc import QueryStub as BankQueryStub
from cosmpy.protos.cosmos.tx.v1beta1.service_pb2 import (
    BROADCAST_MODE_ASYNC,
    BROADCAST_MODE_BLOCK,
    BROADCAST_MODE_SYNC,
    BroadcastTxRequest,
    GetTxRequest,
    SimulateRequest,
)
from cosmpy.protos.cosmos.tx.v1beta1.service_pb2_grpc import ServiceStub

from ..chains.constants import fetch_registry_gas_price
from ..engine.exceptions import (
    ClientError,
    ConnectionError,
    InvalidArgumentError,
    NotFoundError,
    ParseError,
    SerializationError,
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

_BROADCAST_MODES = {
    BroadcastMode.SYNC: BROADCAST_MODE_SYNC,
    BroadcastMode.ASYNC: BROADCAST_MODE_ASYNC,
    BroadcastMode.BLOCK: BROADCAST_MODE_BLOCK,
}


def map_rpc_error(exc: grpc.RpcError, context: str) -> ClientError:
    """Translate a gRPC status into the txpipe hierarchy."""
    code = exc.code() if hasattr(exc, "code") else None
    details = exc.details() if hasattr(exc, "details") else str(exc)
    message = f"{context}: {details}"
    if code == grpc.StatusCode.NOT_FOUND:
        return NotFoundError(message)
    if code == grpc.StatusCode.INVALID_ARGUMENT:
        return InvalidArgumentError(message)
    if code in (grpc.StatusCode.UNAVAILABLE, grpc.StatusCode.DEADLINE_EXCEEDED):
        return ConnectionError(message)
    return ServiceError(message)


def _text(value: Union[str, bytes]) -> str:
    # Older Tendermint protos carry event attributes as bytes.
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def convert_events(events: Iterable) -> List[Event]:
    return [
        Event(
            event_type=event.type,
            attributes=[(_text(attr.key), _text(attr.value)) for attr in event.attributes],
        )
        for event in events
    ]


def convert_tx_response(tx_response) -> TransactionResponse:
    """Normalize a cosmos.base.abci.v1beta1.TxResponse."""
    payload = tx_response.tx.value.hex() if tx_response.HasField("tx") else None
    return TransactionResponse(
        tx_hash=tx_response.txhash,
        height=tx_response.height,
        gas_wanted=tx_response.gas_wanted,
        gas_used=tx_response.gas_used,
        code=tx_response.code,
        events=convert_events(tx_response.events),
        data=tx_response.data,
        raw_log=tx_response.raw_log,
        timestamp=tx_response.timestamp or None,
        block_hash=None,
        original_request_payload=payload,
    )


class CosmosGrpcTransport(NodeTransport):
    """
    NodeTransport over Cosmos SDK gRPC.

    Args:
        grpc_url: ``host:port`` for plaintext, ``https://host[:port]`` or
            ``grpcs://host[:port]`` for TLS.
        timeout: Per-call deadline in seconds.
        registry_name: Chain-registry directory used by gas_price().
        fee_denom: Fee denomination used by gas_price().
        channel: Pre-built channel, mainly for tests.
    """

    def __init__(
        self,
        grpc_url: str,
        timeout: float = 10.0,
        registry_name: Optional[str] = None,
        fee_denom: Optional[str] = None,
        channel: Optional[grpc.aio.Channel] = None,
    ) -> None:
        self.grpc_url = grpc_url
        self.timeout = timeout
        self.registry_name = registry_name
        self.fee_denom = fee_denom
        self.channel = channel if channel is not None else self._open_channel(grpc_url)
        self.tx_service = ServiceStub(self.channel)
        self.auth_query = AuthQueryStub(self.channel)
        self.bank_query = BankQueryStub(self.channel)

    @staticmethod
    def _open_channel(grpc_url: str) -> grpc.aio.Channel:
        for scheme in ("https://", "grpcs://"):
            if grpc_url.startswith(scheme):
                target = grpc_url[len(scheme):]
                if ":" not in target:
                    target += ":443"
                return grpc.aio.secure_channel(target, grpc.ssl_channel_credentials())
        for scheme in ("http://", "grpc://"):
            if grpc_url.startswith(scheme):
                grpc_url = grpc_url[len(scheme):]
        return grpc.aio.insecure_channel(grpc_url)

    async def simulate(self, tx_bytes: bytes, sender: Optional[str] = None) -> SimulationResult:
        try:
            response = await self.tx_service.Simulate(SimulateRequest(tx_bytes=tx_bytes), timeout=self.timeout)
        except grpc.RpcError as exc:
            raise map_rpc_error(exc, "simulate failed") from exc
        return SimulationResult(
            gas_wanted=response.gas_info.gas_wanted,
            gas_used=response.gas_info.gas_used,
            log=response.result.log,
            events=convert_events(response.result.events),
        )

    async def broadcast_tx(self, tx_bytes: bytes, mode: BroadcastMode = BroadcastMode.SYNC) -> Union[Accepted, Rejected]:
        request = BroadcastTxRequest(tx_bytes=tx_bytes, mode=_BROADCAST_MODES[BroadcastMode(mode)])
        try:
            response = await self.tx_service.BroadcastTx(request, timeout=self.timeout)
        except grpc.RpcError as exc:
            raise map_rpc_error(exc, "broadcast failed") from exc

        tx_response = response.tx_response
        if tx_response.code != 0:
            return Rejected(
                tx_hash=tx_response.txhash or None,
                code=tx_response.code,
                raw_log=tx_response.raw_log,
                codespace=tx_response.codespace,
            )
        return Accepted(tx_hash=tx_response.txhash)

    async def get_tx(self, tx_hash: str) -> TransactionResponse:
        try:
            response = await self.tx_service.GetTx(GetTxRequest(hash=tx_hash), timeout=self.timeout)
        except grpc.RpcError as exc:
            raise map_rpc_error(exc, f"get tx {tx_hash} failed") from exc
        if not response.HasField("tx_response"):
            raise NotFoundError(f"transaction {tx_hash} not found")
        return convert_tx_response(response.tx_response)

    async def get_account(self, address: str) -> AccountInfo:
        try:
            response = await self.auth_query.Account(QueryAccountRequest(address=address), timeout=self.timeout)
        except grpc.RpcError as exc:
            raise map_rpc_error(exc, f"account {address} lookup failed") from exc

        account = response.account
        if account.Is(BaseAccount.DESCRIPTOR):
            base = BaseAccount()
            account.Unpack(base)
        elif account.Is(ModuleAccount.DESCRIPTOR):
            module = ModuleAccount()
            account.Unpack(module)
            base = module.base_account
        else:
            raise SerializationError(f"unsupported account type {account.type_url} for {address}")
        return AccountInfo(address=address, account_number=base.account_number, sequence=base.sequence)

    async def get_balance(self, address: str, denom: str) -> int:
        request = QueryBalanceRequest(address=address, denom=denom)
        try:
            response = await self.bank_query.Balance(request, timeout=self.timeout)
        except grpc.RpcError as exc:
            raise map_rpc_error(exc, f"balance query for {address} failed") from exc
        raw = response.balance.amount or "0"
        try:
            return int(raw)
        except ValueError as exc:
            raise ParseError(f"node returned a non-integer balance {raw!r}") from exc

    async def gas_price(self) -> Optional[Decimal]:
        if not self.registry_name or not self.fee_denom:
            return None
        return await fetch_registry_gas_price(self.registry_name, self.fee_denom, timeout=self.timeout)

    async def close(self) -> None:
        await self.channel.close()
