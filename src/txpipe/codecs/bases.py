"""
Abstract Message Codec

A MessageCodec is the capability interface that turns the chain-agnostic
pipeline types into one chain family's wire format. The pipeline only ever
calls these methods; it never inspects message payloads itself.

Contract:
    - sign_bytes() is deterministic: identical inputs give identical bytes.
    - digest(sign_bytes) is what the SigningService signs.
    - assemble(sign_bytes, signature, recovery_id) gives broadcastable bytes.
    - tx_hash(tx_bytes) matches the hash the node reports for those bytes.
"""

import re
from abc import ABC, abstractmethod
from typing import Union

from ..chains.profiles import ChainProfile
from ..crypto.service import SigningService
from ..engine.exceptions import ConfigurationError, ParseError
from ..schemas.bases import Coin, Fee, Message


# Same shape as the Cosmos SDK denom regex.
DENOM_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9/:._-]{2,127}$")


def validate_denom(denom: str) -> str:
    """
    Raises:
        ParseError: If ``denom`` is not a valid denomination.
    """
    if not isinstance(denom, str) or not DENOM_PATTERN.match(denom):
        raise ParseError(f"invalid denomination: {denom!r}")
    return denom


class MessageCodec(ABC):
    """
    Encode, sign-prepare and hash transactions for one chain family.

    Args:
        profile: Chain profile the codec encodes for. Its family must match
            the codec's family.
    """

    family: str = ""

    def __init__(self, profile: ChainProfile) -> None:
        if profile.family != self.family:
            raise ConfigurationError(
                f"{type(self).__name__} cannot encode for {profile.family} profile '{profile.name}'"
            )
        self.profile = profile

    def zero_fee(self) -> Fee:
        """Placeholder fee used for dry runs."""
        return Fee(amount=[Coin(denom=self.profile.fee_denom, amount=0)], gas_limit=0)

    @abstractmethod
    def sign_bytes(
        self,
        message: Message,
        fee: Fee,
        sequence: int,
        account_number: int,
        public_key: bytes,
        memo: str = "",
    ) -> bytes:
        """Canonical bytes to be hashed and signed."""

    @abstractmethod
    def digest(self, sign_bytes: bytes) -> bytes:
        """32-byte digest of ``sign_bytes``."""

    @abstractmethod
    def assemble(self, sign_bytes: bytes, signature: bytes, recovery_id: int) -> bytes:
        """Signed envelope ready for broadcast."""

    @abstractmethod
    def tx_hash(self, tx_bytes: bytes) -> str:
        """Hash of broadcast bytes, formatted the way the chain reports it."""

    @abstractmethod
    def address_from_private_key(self, signing: SigningService, private_key: Union[bytes, str]) -> str:
        """Chain address for the signer."""
