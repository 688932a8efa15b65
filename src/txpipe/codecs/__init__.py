from .bases import MessageCodec, validate_denom
from .cosmos import (
    CosmosCodec,
    address_from_public_key,
    bank_send_message,
    decode_cosmos_address,
    to_cosmos_address,
    validate_cosmos_address,
)
from .evm import EvmCodec, checksum_address, decode_transaction, erc20_transfer_message, native_transfer_message

__all__ = [
    "MessageCodec",
    "validate_denom",
    "CosmosCodec",
    "address_from_public_key",
    "bank_send_message",
    "decode_cosmos_address",
    "to_cosmos_address",
    "validate_cosmos_address",
    "EvmCodec",
    "checksum_address",
    "decode_transaction",
    "erc20_transfer_message",
    "native_transfer_message",
]
