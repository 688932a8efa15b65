"""
CosmosGrpcTransport tests with mocked gRPC stubs.

No channel is opened: a Mock channel is injected and the generated stubs
are replaced with AsyncMocks returning real cosmpy response protos.
"""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import grpc
import pytest
from cosmpy.protos.cosmos.auth.v1beta1.auth_pb2 import BaseAccount, ModuleAccount
from cosmpy.protos.cosmos.auth.v1beta1.query_pb2 import QueryAccountResponse
from cosmpy.protos.cosmos.bank.v1beta1.query_pb2 import QueryBalanceResponse
from cosmpy.protos.cosmos.base.abci.v1beta1.abci_pb2 import GasInfo, Result, TxResponse
from cosmpy.protos.cosmos.base.v1beta1.coin_pb2 import Coin as ProtoCoin
from cosmpy.protos.cosmos.tx.v1beta1.service_pb2 import (
    BROADCAST_MODE_BLOCK,
    BroadcastTxResponse,
    GetTxResponse,
    SimulateResponse,
)
from google.protobuf.any_pb2 import Any as ProtoAny

from txpipe.chains import constants
from txpipe.engine.exceptions import (
    ConnectionError,
    InvalidArgumentError,
    NotFoundError,
    ParseError,
    SerializationError,
    ServiceError,
)
from txpipe.schemas.bases import Accepted, BroadcastMode, Rejected
from txpipe.transports import cosmos_grpc
from txpipe.transports.cosmos_grpc import CosmosGrpcTransport, convert_events, map_rpc_error


class FakeRpcError(grpc.RpcError):
    def __init__(self, code: grpc.StatusCode, details: str = "boom"):
        self._code = code
        self._details = details

    def code(self):
        return self._code

    def details(self):
        return self._details


@pytest.fixture
def transport():
    transport = CosmosGrpcTransport("localhost:9090", timeout=3, channel=Mock())
    transport.tx_service = Mock()
    transport.auth_query = Mock()
    transport.bank_query = Mock()
    return transport


def packed(message) -> ProtoAny:
    container = ProtoAny()
    container.Pack(message)
    return container


class TestErrorMapping:

    @pytest.mark.parametrize(
        "code, expected",
        [
            (grpc.StatusCode.NOT_FOUND, NotFoundError),
            (grpc.StatusCode.INVALID_ARGUMENT, InvalidArgumentError),
            (grpc.StatusCode.UNAVAILABLE, ConnectionError),
            (grpc.StatusCode.DEADLINE_EXCEEDED, ConnectionError),
            (grpc.StatusCode.INTERNAL, ServiceError),
        ],
    )
    def test_status_codes(self, code, expected):
        error = map_rpc_error(FakeRpcError(code, "details"), "ctx")
        assert type(error) is expected
        assert "ctx: details" in str(error)


class TestBroadcast:

    @pytest.mark.asyncio
    async def test_accepted(self, transport):
        transport.tx_service.BroadcastTx = AsyncMock(
            return_value=BroadcastTxResponse(tx_response=TxResponse(code=0, txhash="ABCD"))
        )
        outcome = await transport.broadcast_tx(b"tx", BroadcastMode.BLOCK)

        assert outcome == Accepted(tx_hash="ABCD")
        request = transport.tx_service.BroadcastTx.call_args.args[0]
        assert request.mode == BROADCAST_MODE_BLOCK
        assert transport.tx_service.BroadcastTx.call_args.kwargs["timeout"] == 3

    @pytest.mark.asyncio
    async def test_rejected_is_an_outcome(self, transport):
        transport.tx_service.BroadcastTx = AsyncMock(
            return_value=BroadcastTxResponse(
                tx_response=TxResponse(code=32, txhash="ABCD", raw_log="account sequence mismatch", codespace="sdk")
            )
        )
        outcome = await transport.broadcast_tx(b"tx")

        assert isinstance(outcome, Rejected)
        assert (outcome.code, outcome.codespace) == (32, "sdk")
        assert outcome.raw_log == "account sequence mismatch"

    @pytest.mark.asyncio
    async def test_channel_failure_raises(self, transport):
        transport.tx_service.BroadcastTx = AsyncMock(side_effect=FakeRpcError(grpc.StatusCode.UNAVAILABLE))
        with pytest.raises(ConnectionError):
            await transport.broadcast_tx(b"tx")


class TestQueries:

    @pytest.mark.asyncio
    async def test_simulate(self, transport):
        transport.tx_service.Simulate = AsyncMock(
            return_value=SimulateResponse(gas_info=GasInfo(gas_wanted=0, gas_used=91_234), result=Result(log="ok"))
        )
        result = await transport.simulate(b"tx")
        assert result.gas_used == 91_234
        assert result.succeeded

    @pytest.mark.asyncio
    async def test_simulate_rpc_error(self, transport):
        transport.tx_service.Simulate = AsyncMock(side_effect=FakeRpcError(grpc.StatusCode.UNKNOWN, "out of gas"))
        with pytest.raises(ServiceError):
            await transport.simulate(b"tx")

    @pytest.mark.asyncio
    async def test_get_tx(self, transport):
        transport.tx_service.GetTx = AsyncMock(
            return_value=GetTxResponse(
                tx_response=TxResponse(
                    txhash="ABCD",
                    height=77,
                    gas_wanted=200_000,
                    gas_used=120_000,
                    raw_log="[]",
                    timestamp="2024-01-01T00:00:00Z",
                )
            )
        )
        response = await transport.get_tx("ABCD")

        assert (response.tx_hash, response.height, response.gas_used) == ("ABCD", 77, 120_000)
        assert response.timestamp == "2024-01-01T00:00:00Z"
        assert response.original_request_payload is None

    @pytest.mark.asyncio
    async def test_get_tx_not_found(self, transport):
        transport.tx_service.GetTx = AsyncMock(side_effect=FakeRpcError(grpc.StatusCode.NOT_FOUND))
        with pytest.raises(NotFoundError):
            await transport.get_tx("ABCD")

    @pytest.mark.asyncio
    async def test_get_tx_empty_response_is_not_found(self, transport):
        transport.tx_service.GetTx = AsyncMock(return_value=GetTxResponse())
        with pytest.raises(NotFoundError):
            await transport.get_tx("ABCD")

    @pytest.mark.asyncio
    async def test_base_account(self, transport):
        account = BaseAccount(address="cosmos1me", account_number=5, sequence=7)
        transport.auth_query.Account = AsyncMock(return_value=QueryAccountResponse(account=packed(account)))

        info = await transport.get_account("cosmos1me")
        assert (info.account_number, info.sequence) == (5, 7)

    @pytest.mark.asyncio
    async def test_module_account(self, transport):
        module = ModuleAccount(base_account=BaseAccount(address="cosmos1mod", account_number=9, sequence=2), name="fees")
        transport.auth_query.Account = AsyncMock(return_value=QueryAccountResponse(account=packed(module)))

        info = await transport.get_account("cosmos1mod")
        assert (info.account_number, info.sequence) == (9, 2)

    @pytest.mark.asyncio
    async def test_unknown_account_type(self, transport):
        transport.auth_query.Account = AsyncMock(
            return_value=QueryAccountResponse(account=packed(ProtoCoin(denom="uatom", amount="1")))
        )
        with pytest.raises(SerializationError):
            await transport.get_account("cosmos1me")

    @pytest.mark.asyncio
    async def test_balance(self, transport):
        transport.bank_query.Balance = AsyncMock(
            return_value=QueryBalanceResponse(balance=ProtoCoin(denom="uatom", amount="123456"))
        )
        assert await transport.get_balance("cosmos1me", "uatom") == 123_456

    @pytest.mark.asyncio
    async def test_missing_balance_is_zero(self, transport):
        transport.bank_query.Balance = AsyncMock(return_value=QueryBalanceResponse())
        assert await transport.get_balance("cosmos1me", "uatom") == 0

    @pytest.mark.asyncio
    async def test_non_integer_balance(self, transport):
        transport.bank_query.Balance = AsyncMock(
            return_value=QueryBalanceResponse(balance=ProtoCoin(denom="uatom", amount="1.5"))
        )
        with pytest.raises(ParseError):
            await transport.get_balance("cosmos1me", "uatom")

    def test_convert_events_accepts_bytes(self):
        event = SimpleNamespace(type="transfer", attributes=[SimpleNamespace(key=b"amount", value=b"1uatom")])
        converted = convert_events([event])
        assert converted[0].event_type == "transfer"
        assert converted[0].attributes == [("amount", "1uatom")]


class TestGasPrice:

    @pytest.mark.asyncio
    async def test_without_registry_returns_none(self, transport):
        assert await transport.gas_price() is None

    @pytest.mark.asyncio
    async def test_registry_lookup(self, transport, monkeypatch):
        transport.registry_name = "cosmoshub"
        transport.fee_denom = "uatom"
        lookups = []

        async def fake_fetch(registry_name, denom, timeout=10.0):
            lookups.append((registry_name, denom))
            return Decimal("0.005")

        monkeypatch.setattr(cosmos_grpc, "fetch_registry_gas_price", fake_fetch)
        assert await transport.gas_price() == Decimal("0.005")
        assert lookups == [("cosmoshub", "uatom")]

    def test_parse_registry_payload(self):
        payload = {"fees": {"fee_tokens": [{"denom": "uatom", "average_gas_price": 0.025}]}}
        assert constants.parse_registry_gas_price(payload, "uatom") == Decimal("0.025")

    def test_registry_payload_without_denom(self):
        with pytest.raises(ParseError):
            constants.parse_registry_gas_price({"fees": {"fee_tokens": []}}, "uatom")

    @pytest.mark.asyncio
    async def test_fetch_registry_gas_price_uses_chain_url(self, monkeypatch):
        urls = []

        async def fake_fetch_json(url, timeout=10.0):
            urls.append(url)
            return {"fees": {"fee_tokens": [{"denom": "untrn", "average_gas_price": "0.0053"}]}}

        monkeypatch.setattr(constants, "fetch_json", fake_fetch_json)
        assert await constants.fetch_registry_gas_price("neutron", "untrn") == Decimal("0.0053")
        assert urls == [constants.CHAIN_REGISTRY_URL.format(chain="neutron")]
