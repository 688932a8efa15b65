"""
EVM transaction codec (EIP-1559, type 0x02).

Message mapping:
    type_identifier -> ``to`` address
    payload         -> call data
    value           -> native value in wei

Fee mapping:
    max_fee_per_gas          = ceil(fee amount in wei / gas_limit)
    max_priority_fee_per_gas = min(profile.priority_fee, max_fee_per_gas)
"""

from typing import Any, Dict, Union

import rlp
from eth_abi import encode as abi_encode
from eth_utils import function_signature_to_4byte_selector, is_address, keccak, to_canonical_address, to_checksum_address

from ..crypto.service import SigningService
from ..engine.exceptions import ParseError, SerializationError
from ..schemas.bases import Fee, Message
from .bases import MessageCodec


DYNAMIC_FEE_TX_TYPE = b"\x02"

_UNSIGNED_FIELDS = (
    "chain_id", "nonce", "max_priority_fee_per_gas", "max_fee_per_gas",
    "gas", "to", "value", "data", "access_list",
)


def checksum_address(address: str) -> str:
    """
    Raises:
        ParseError: If ``address`` is not a 20-byte hex address.
    """
    if not isinstance(address, str) or not is_address(address):
        raise ParseError(f"invalid EVM address: {address!r}")
    return to_checksum_address(address)


def native_transfer_message(to: str, value: int) -> Message:
    """Plain value transfer."""
    return Message(type_identifier=checksum_address(to), payload=b"", value=value)


def erc20_transfer_message(token: str, to: str, amount: int) -> Message:
    """ERC-20 ``transfer(address,uint256)`` call."""
    data = function_signature_to_4byte_selector("transfer(address,uint256)") + abi_encode(
        ["address", "uint256"], [checksum_address(to), amount]
    )
    return Message(type_identifier=checksum_address(token), payload=data)


def _to_int(raw: bytes) -> int:
    return int.from_bytes(raw, "big")


def decode_transaction(tx_bytes: bytes) -> Dict[str, Any]:
    """
    Decode an unsigned or signed type-2 transaction into its fields.

    Raises:
        SerializationError: If the bytes are not a type-2 RLP transaction.
    """
    if not tx_bytes or tx_bytes[:1] != DYNAMIC_FEE_TX_TYPE:
        raise SerializationError("not an EIP-1559 (type 2) transaction")
    try:
        items = rlp.decode(tx_bytes[1:])
    except rlp.DecodingError as exc:
        raise SerializationError("malformed RLP transaction payload") from exc
    if len(items) not in (9, 12):
        raise SerializationError(f"unexpected field count {len(items)} in type 2 transaction")

    fields = dict(zip(_UNSIGNED_FIELDS, items))
    decoded = {
        name: _to_int(fields[name])
        for name in ("chain_id", "nonce", "max_priority_fee_per_gas", "max_fee_per_gas", "gas", "value")
    }
    decoded["to"] = to_checksum_address(fields["to"]) if fields["to"] else None
    decoded["data"] = bytes(fields["data"])
    if len(items) == 12:
        decoded["y_parity"] = _to_int(items[9])
        decoded["r"] = _to_int(items[10])
        decoded["s"] = _to_int(items[11])
    return decoded


class EvmCodec(MessageCodec):
    """EIP-1559 codec for EVM chains. ``sequence`` is the account nonce."""

    family = "evm"

    def fee_caps(self, fee: Fee) -> Dict[str, int]:
        amount = fee.total(self.profile.fee_denom)
        max_fee = -(-amount // fee.gas_limit) if fee.gas_limit else 0
        return {
            "max_fee_per_gas": max_fee,
            "max_priority_fee_per_gas": min(self.profile.priority_fee, max_fee),
        }

    def sign_bytes(
        self,
        message: Message,
        fee: Fee,
        sequence: int,
        account_number: int,
        public_key: bytes,
        memo: str = "",
    ) -> bytes:
        caps = self.fee_caps(fee)
        try:
            to = to_canonical_address(checksum_address(message.type_identifier))
        except ParseError as exc:
            raise SerializationError(f"cannot encode call target: {exc}") from exc

        fields = [
            int(self.profile.chain_id),
            sequence,
            caps["max_priority_fee_per_gas"],
            caps["max_fee_per_gas"],
            fee.gas_limit,
            to,
            message.value,
            message.payload,
            [],
        ]
        return DYNAMIC_FEE_TX_TYPE + rlp.encode(fields)

    def digest(self, sign_bytes: bytes) -> bytes:
        return keccak(sign_bytes)

    def assemble(self, sign_bytes: bytes, signature: bytes, recovery_id: int) -> bytes:
        if len(signature) != 64:
            raise SerializationError(f"expected a 64-byte r||s signature, got {len(signature)} bytes")
        try:
            items = rlp.decode(sign_bytes[1:])
        except rlp.DecodingError as exc:
            raise SerializationError("sign bytes are not an RLP transaction") from exc
        r = int.from_bytes(signature[:32], "big")
        s = int.from_bytes(signature[32:], "big")
        return DYNAMIC_FEE_TX_TYPE + rlp.encode(list(items) + [recovery_id, r, s])

    def tx_hash(self, tx_bytes: bytes) -> str:
        return "0x" + keccak(tx_bytes).hex()

    def address_from_private_key(self, signing: SigningService, private_key: Union[bytes, str]) -> str:
        return to_checksum_address(signing.address_from_private_key(private_key))
