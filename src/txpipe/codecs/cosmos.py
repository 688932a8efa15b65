"""
Cosmos SDK transaction codec (SIGN_MODE_DIRECT).

Builds TxBody / AuthInfo / SignDoc protobufs with cosmpy's generated
classes, signs the SHA-256 of the SignDoc and assembles a TxRaw.

Core Functions:
    - CosmosCodec: MessageCodec for account/sequence ledgers
    - address_from_public_key / validate_cosmos_address / to_cosmos_address
    - bank_send_message: MsgSend builder

Dependencies:
    - cosmpy: Cosmos SDK protobuf classes
    - bech32: Address encoding
    - pycryptodome: RIPEMD-160 (not reliably available from hashlib)
"""

import hashlib
from typing import Iterable, List, Tuple, Union

import bech32
from Crypto.Hash import RIPEMD160
from cosmpy.protos.cosmos.bank.v1beta1.tx_pb2 import MsgSend
from cosmpy.protos.cosmos.base.v1beta1.coin_pb2 import Coin as ProtoCoin
from cosmpy.protos.cosmos.crypto.secp256k1.keys_pb2 import PubKey
from cosmpy.protos.cosmos.tx.signing.v1beta1.signing_pb2 import SignMode
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import (
    AuthInfo,
    Fee as ProtoFee,
    ModeInfo,
    SignDoc,
    SignerInfo,
    TxBody,
    TxRaw,
)
from google.protobuf.any_pb2 import Any as ProtoAny
from google.protobuf.message import DecodeError

from ..crypto.service import SigningService
from ..engine.exceptions import ParseError, SerializationError
from ..schemas.bases import Coin, Fee, Message
from .bases import MessageCodec, validate_denom


SECP256K1_PUBKEY_TYPE_URL = "/cosmos.crypto.secp256k1.PubKey"
MSG_SEND_TYPE_URL = "/cosmos.bank.v1beta1.MsgSend"


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

def address_from_public_key(public_key: bytes, prefix: str) -> str:
    """bech32(prefix, ripemd160(sha256(compressed_pubkey)))."""
    if len(public_key) != 33:
        raise ParseError(f"expected a 33-byte compressed public key, got {len(public_key)} bytes")
    digest = RIPEMD160.new(hashlib.sha256(public_key).digest()).digest()
    return bech32.bech32_encode(prefix, bech32.convertbits(digest, 8, 5))


def decode_cosmos_address(address: str) -> Tuple[str, bytes]:
    """
    Split a bech32 address into (prefix, raw bytes).

    Raises:
        ParseError: If the address is not valid bech32 or has a bad length.
    """
    prefix, data = bech32.bech32_decode(address)
    if prefix is None or data is None:
        raise ParseError(f"invalid bech32 address: {address!r}")
    raw = bech32.convertbits(data, 5, 8, False)
    if raw is None or len(raw) not in (20, 32):
        raise ParseError(f"invalid address length for {address!r}")
    return prefix, bytes(raw)


def validate_cosmos_address(address: str, prefix: str) -> str:
    """
    Raises:
        ParseError: If ``address`` is malformed or carries another prefix.
    """
    actual, _ = decode_cosmos_address(address)
    if actual != prefix:
        raise ParseError(f"address {address!r} has prefix '{actual}', expected '{prefix}'")
    return address


def to_cosmos_address(address: str, prefix: str) -> str:
    """Re-encode a bech32 address under another prefix (same key, other chain)."""
    _, raw = decode_cosmos_address(address)
    return bech32.bech32_encode(prefix, bech32.convertbits(raw, 8, 5))


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

def _proto_coins(coins: Iterable[Coin]) -> List[ProtoCoin]:
    return [ProtoCoin(denom=validate_denom(coin.denom), amount=str(coin.amount)) for coin in coins]


def bank_send_message(from_address: str, to_address: str, coins: List[Coin]) -> Message:
    """Build a /cosmos.bank.v1beta1.MsgSend message."""
    msg = MsgSend(from_address=from_address, to_address=to_address, amount=_proto_coins(coins))
    return Message(type_identifier=MSG_SEND_TYPE_URL, payload=msg.SerializeToString())


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

class CosmosCodec(MessageCodec):
    """SIGN_MODE_DIRECT codec for Cosmos SDK chains."""

    family = "cosmos"

    def sign_bytes(
        self,
        message: Message,
        fee: Fee,
        sequence: int,
        account_number: int,
        public_key: bytes,
        memo: str = "",
    ) -> bytes:
        if not message.type_identifier.startswith("/"):
            raise SerializationError(f"not a protobuf type URL: {message.type_identifier!r}")

        body = TxBody(
            messages=[ProtoAny(type_url=message.type_identifier, value=message.payload)],
            memo=memo,
        )
        signer_info = SignerInfo(
            public_key=ProtoAny(
                type_url=SECP256K1_PUBKEY_TYPE_URL,
                value=PubKey(key=public_key).SerializeToString(),
            ),
            mode_info=ModeInfo(single=ModeInfo.Single(mode=SignMode.SIGN_MODE_DIRECT)),
            sequence=sequence,
        )
        auth_info = AuthInfo(
            signer_infos=[signer_info],
            fee=ProtoFee(
                amount=_proto_coins(fee.amount),
                gas_limit=fee.gas_limit,
                payer=fee.payer or "",
                granter=fee.granter or "",
            ),
        )
        sign_doc = SignDoc(
            body_bytes=body.SerializeToString(deterministic=True),
            auth_info_bytes=auth_info.SerializeToString(deterministic=True),
            chain_id=str(self.profile.chain_id),
            account_number=account_number,
        )
        return sign_doc.SerializeToString(deterministic=True)

    def digest(self, sign_bytes: bytes) -> bytes:
        return hashlib.sha256(sign_bytes).digest()

    def assemble(self, sign_bytes: bytes, signature: bytes, recovery_id: int) -> bytes:
        # Cosmos signatures are the 64-byte r||s; the recovery id is not transmitted.
        sign_doc = SignDoc()
        try:
            sign_doc.ParseFromString(sign_bytes)
        except DecodeError as exc:
            raise SerializationError("sign bytes are not a SignDoc") from exc
        tx_raw = TxRaw(
            body_bytes=sign_doc.body_bytes,
            auth_info_bytes=sign_doc.auth_info_bytes,
            signatures=[signature],
        )
        return tx_raw.SerializeToString()

    def tx_hash(self, tx_bytes: bytes) -> str:
        return hashlib.sha256(tx_bytes).hexdigest().upper()

    def address_from_private_key(self, signing: SigningService, private_key: Union[bytes, str]) -> str:
        return address_from_public_key(signing.public_key(private_key, compressed=True), self.profile.address_prefix)
