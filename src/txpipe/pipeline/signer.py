"""
Signer

Produces a SignedTransaction from a message, a fee and the signing context.
The sequence is passed in by the caller holding the SequenceGuard; the
Signer never reads or mutates the sequencer itself.
"""

import logging
from typing import Union

from ..codecs.bases import MessageCodec
from ..crypto.backends import coerce_private_key
from ..crypto.service import SigningService
from ..engine.exceptions import SerializationError
from ..schemas.bases import Fee, Message, SignedTransaction


logger = logging.getLogger(__name__)


class Signer:
    """
    Sign transactions for one identity on one chain.

    Args:
        codec: Chain codec providing sign bytes, digest and envelope.
        signing: Shared SigningService.
        private_key: 32-byte key or hex string.

    Raises:
        InvalidKeyError: If the private key is malformed.
    """

    def __init__(self, codec: MessageCodec, signing: SigningService, private_key: Union[bytes, str]) -> None:
        self.codec = codec
        self.signing = signing
        self._private_key = coerce_private_key(private_key)
        self.public_key = signing.public_key(self._private_key, compressed=True)
        self.address = codec.address_from_private_key(signing, self._private_key)

    def sign(
        self,
        message: Message,
        fee: Fee,
        sequence: int,
        account_number: int,
        memo: str = "",
    ) -> SignedTransaction:
        """
        Build canonical sign bytes, sign their digest and assemble the envelope.

        Raises:
            SerializationError: If encoding or signing fails.
            ParseError: If a fee denomination or address is malformed.
        """
        try:
            sign_bytes = self.codec.sign_bytes(
                message, fee, sequence, account_number, self.public_key, memo=memo
            )
            signature, recovery_id = self.signing.sign(self._private_key, self.codec.digest(sign_bytes))
            tx_bytes = self.codec.assemble(sign_bytes, signature, recovery_id)
        except (ValueError, TypeError) as exc:
            raise SerializationError(f"failed to sign {message.type_identifier}: {exc}") from exc

        tx_hash = self.codec.tx_hash(tx_bytes)
        logger.debug(f"Signed {message.type_identifier} seq={sequence} gas={fee.gas_limit} hash={tx_hash}")
        return SignedTransaction(
            tx_bytes=tx_bytes,
            tx_hash=tx_hash,
            sequence=sequence,
            account_number=account_number,
            fee=fee,
        )
