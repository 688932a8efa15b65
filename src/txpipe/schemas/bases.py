"""
Base Schema Models for the txpipe transaction client

This module defines the chain-agnostic data model shared by every stage of
the submission pipeline. Chain families (Cosmos SDK ledgers and EVM ledgers)
are normalized into these types at the codec and transport boundary, so the
pipeline itself never branches on the chain family.

Core Classes:
    - CanonicalModel: Pydantic base model with deterministic JSON serialization
    - AccountInfo: Node view of a signing account (number and sequence)
    - Message: Opaque, immutable unsigned operation
    - Coin / Fee: Fee amount and gas limit attached to a transaction
    - Event: Normalized transaction event
    - SimulationResult: Gas usage reported by a dry run
    - TransactionResponse: Normalized result of an included transaction
    - PollPolicy: Interval and attempt bound for polling loops
    - SignedTransaction: Wire-ready signed bytes plus signing context
    - Accepted / Rejected: Broadcast outcomes

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class CanonicalModel(BaseModel):
    """
    Pydantic base model with canonical JSON serialization.

    The JSON representation is deterministically ordered and whitespace
    minimal, which keeps logs and hooks stable across runs. Byte fields are
    rendered as base64 so arbitrary payloads survive a JSON round trip.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        model = MyModel(name="test", value=123)
        model.to_canonical_json()  # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True, ser_json_bytes="base64", val_json_bytes="base64")

    def to_canonical_json(self) -> str:
        """
        Convert model to a canonical JSON string.

        Returns:
            str: JSON with sorted keys and no extra whitespace.
        """
        data = self.model_dump(mode="json")
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to dictionary representation.

        Returns:
            Dict[str, Any]: Dictionary with all model fields.
        """
        return self.model_dump()


class BroadcastMode(str, Enum):
    """How long a broadcast call blocks before returning."""
    SYNC = "sync"      # after CheckTx / mempool admission
    ASYNC = "async"    # immediately
    BLOCK = "block"    # after block inclusion, where the node supports it


# ---------------------------------------------------------------------------
# Accounts and messages
# ---------------------------------------------------------------------------

class AccountInfo(CanonicalModel):
    """
    Node view of a signing account.

    For EVM ledgers account_number is always 0 and sequence is the pending nonce.
    """
    address: str
    account_number: int = Field(0, ge=0)
    sequence: int = Field(0, ge=0)


class Message(CanonicalModel):
    """
    Opaque unsigned operation.

    The pipeline never interprets payload; only the chain codec does.

    Attributes:
        type_identifier: Cosmos type URL (e.g. "/cosmos.bank.v1beta1.MsgSend"),
            or the call target address for EVM ledgers.
        payload: Encoded message body (protobuf bytes or ABI call data).
        value: Native coin value attached to an EVM call. Ignored by Cosmos codecs.
    """
    model_config = ConfigDict(frozen=True, ser_json_bytes="base64", val_json_bytes="base64")

    type_identifier: str = Field(..., min_length=1)
    payload: bytes = b""
    value: int = Field(0, ge=0)


# ---------------------------------------------------------------------------
# Fees
# ---------------------------------------------------------------------------

class Coin(CanonicalModel):
    """A (denom, amount) pair in minimal units."""
    denom: str
    amount: int = Field(..., ge=0)

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


class Fee(CanonicalModel):
    """
    Concrete fee attached to one signing attempt.

    Attributes:
        amount: Ordered list of coins paid as fee.
        gas_limit: Maximum gas the transaction may consume.
        payer: Optional fee payer address (Cosmos fee payer).
        granter: Optional fee granter address (Cosmos feegrant).
    """
    amount: List[Coin] = Field(default_factory=list)
    gas_limit: int = Field(0, ge=0)
    payer: Optional[str] = None
    granter: Optional[str] = None

    def total(self, denom: str) -> int:
        """Sum of the amounts paid in ``denom``."""
        return sum(coin.amount for coin in self.amount if coin.denom == denom)


# ---------------------------------------------------------------------------
# Simulation and responses
# ---------------------------------------------------------------------------

class Event(CanonicalModel):
    """A normalized transaction event with ordered key/value attributes."""
    event_type: str
    attributes: List[Tuple[str, str]] = Field(default_factory=list)


class SimulationResult(CanonicalModel):
    """
    Gas usage reported by a dry run.

    A failed dry run is returned with a non-zero code and the node log rather
    than raised; only RPC failures raise.
    """
    gas_wanted: int = Field(0, ge=0)
    gas_used: int = Field(0, ge=0)
    log: str = ""
    events: List[Event] = Field(default_factory=list)
    code: int = 0

    @property
    def succeeded(self) -> bool:
        return self.code == 0


class TransactionResponse(CanonicalModel):
    """
    Normalized view of an included transaction.

    Attributes:
        tx_hash: Transaction hash as reported by the chain.
        height: Block height of inclusion.
        gas_wanted: Gas limit the transaction declared.
        gas_used: Gas the transaction actually consumed.
        code: Result code, 0 means success.
        events: Emitted events.
        data: Hex encoded result data.
        raw_log: Node result log.
        timestamp: ISO-8601 block time, when known.
        block_hash: Hash of the including block, when known.
        original_request_payload: Hex encoded request body as recorded on chain.
    """
    model_config = ConfigDict(frozen=True)

    tx_hash: str
    height: int = 0
    gas_wanted: int = 0
    gas_used: int = 0
    code: int = 0
    events: List[Event] = Field(default_factory=list)
    data: str = ""
    raw_log: str = ""
    timestamp: Optional[str] = None
    block_hash: Optional[str] = None
    original_request_payload: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.code == 0


class PollPolicy(CanonicalModel):
    """
    Bounded polling configuration.

    Attributes:
        interval: Seconds to sleep between attempts.
        max_attempts: Number of queries before giving up.
    """
    model_config = ConfigDict(frozen=True)

    interval: float = Field(1.0, gt=0)
    max_attempts: int = Field(60, ge=1)

    @classmethod
    def default(cls) -> "PollPolicy":
        return cls()


class SignedTransaction(CanonicalModel):
    """Wire-ready transaction plus the context it was signed with."""
    tx_bytes: bytes
    tx_hash: str
    sequence: int
    account_number: int
    fee: Fee


# ---------------------------------------------------------------------------
# Broadcast outcomes
# ---------------------------------------------------------------------------

class Accepted(CanonicalModel):
    """The node admitted the transaction; the sequence must be committed."""
    status: Literal["accepted"] = "accepted"
    tx_hash: str


class Rejected(CanonicalModel):
    """The node refused the transaction; the sequence must not move."""
    status: Literal["rejected"] = "rejected"
    tx_hash: Optional[str] = None
    code: int = 1
    raw_log: str = ""
    codespace: str = ""


BroadcastOutcome = Annotated[Union[Accepted, Rejected], Field(discriminator="status")]
