"""
txpipe: async transaction pipeline for Cosmos SDK and EVM chains.

One generic TransactionClient simulates, prices, signs, broadcasts and
confirms transactions; chains differ only by ChainProfile, codec and
transport.
"""

import logging

from .chains import ChainProfile, PROFILES, get_profile
from .clients import ClientSettings, TransactionClient, codec_for, transport_for
from .codecs import CosmosCodec, EvmCodec, bank_send_message, erc20_transfer_message, native_transfer_message
from .crypto import SigningService, load_private_key
from .engine.exceptions import (
    BroadcastRejectedError,
    ClientError,
    ConfigurationError,
    ConnectionError,
    InvalidArgumentError,
    InvalidKeyError,
    NotFoundError,
    OperationCancelledError,
    ParseError,
    SerializationError,
    ServiceError,
    SimulationFailedError,
    TimeoutError,
)
from .schemas import (
    AutoFeePolicy,
    BroadcastMode,
    Coin,
    CustomFeePolicy,
    Fee,
    FixedFeePolicy,
    Message,
    PollPolicy,
    SignedTransaction,
    SimulationResult,
    TransactionResponse,
)
from .transports import CosmosGrpcTransport, EvmRpcTransport, NodeTransport
from .utils import CancelToken, configure_logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ChainProfile",
    "PROFILES",
    "get_profile",
    "ClientSettings",
    "TransactionClient",
    "codec_for",
    "transport_for",
    "CosmosCodec",
    "EvmCodec",
    "bank_send_message",
    "erc20_transfer_message",
    "native_transfer_message",
    "SigningService",
    "load_private_key",
    "BroadcastRejectedError",
    "ClientError",
    "ConfigurationError",
    "ConnectionError",
    "InvalidArgumentError",
    "InvalidKeyError",
    "NotFoundError",
    "OperationCancelledError",
    "ParseError",
    "SerializationError",
    "ServiceError",
    "SimulationFailedError",
    "TimeoutError",
    "AutoFeePolicy",
    "BroadcastMode",
    "Coin",
    "CustomFeePolicy",
    "Fee",
    "FixedFeePolicy",
    "Message",
    "PollPolicy",
    "SignedTransaction",
    "SimulationResult",
    "TransactionResponse",
    "CosmosGrpcTransport",
    "EvmRpcTransport",
    "NodeTransport",
    "CancelToken",
    "configure_logging",
]
