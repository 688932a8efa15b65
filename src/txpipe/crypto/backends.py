"""
Cryptographic backends for hashing, signing and address derivation.

Both backends expose the same secp256k1 contract through eth_keys: a
pure-Python implementation that is always available, and a libsecp256k1
implementation backed by coincurve that is used when the optional ``fast``
extra is installed and passes a known-answer self-test.

Core Classes:
    - CryptoBackend: Abstract primitive set used by the SigningService
    - KeyAPIBackend: eth_keys implementation over a pluggable ECC backend
    - BackendProbe: Typed result of a capability check

Dependencies:
    - eth_keys: secp256k1 keys and ECDSA
    - eth_utils: keccak-256
    - coincurve (optional): libsecp256k1 bindings
"""

import importlib.util
import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple, Union

from eth_keys.backends import NativeECCBackend
from eth_keys.datatypes import PrivateKey, Signature
from eth_utils import keccak
from pydantic import BaseModel, ConfigDict

from ..engine.exceptions import InvalidKeyError


logger = logging.getLogger(__name__)

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

NATIVE_BACKEND = "native"
FAST_BACKEND = "coincurve"

# Private key 1 maps to this well-known address; used for the self-test.
_KNOWN_ANSWER_KEY = (1).to_bytes(32, "big")
_KNOWN_ANSWER_ADDRESS = bytes.fromhex("7e5f4552091a69125d5dfcb7b8c2659029395bdf")


def coerce_private_key(private_key: Union[bytes, str]) -> bytes:
    """
    Normalize a private key to 32 raw bytes.

    Args:
        private_key: Raw bytes or a hex string, with or without 0x prefix.

    Returns:
        bytes: 32-byte big-endian scalar.

    Raises:
        InvalidKeyError: If the key is not 32 bytes, not hex, zero, or not
            below the secp256k1 group order.
    """
    if isinstance(private_key, str):
        text = private_key.strip()
        if text.startswith(("0x", "0X")):
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError as exc:
            raise InvalidKeyError("private key is not valid hex") from exc
    elif isinstance(private_key, (bytes, bytearray)):
        raw = bytes(private_key)
    else:
        raise InvalidKeyError(f"private key must be bytes or hex str, got {type(private_key).__name__}")

    if len(raw) != 32:
        raise InvalidKeyError(f"private key must be 32 bytes, got {len(raw)}")
    scalar = int.from_bytes(raw, "big")
    if not 0 < scalar < SECP256K1_N:
        raise InvalidKeyError("private key is outside the secp256k1 range")
    return raw


class CryptoBackend(ABC):
    """Hash, sign and address-derivation primitives behind one interface."""

    name: str = ""

    def hash(self, data: bytes) -> bytes:
        """keccak-256 of ``data``."""
        return keccak(data)

    @abstractmethod
    def sign(self, private_key: bytes, digest: bytes) -> Tuple[bytes, int]:
        """Sign a 32-byte digest, returning (r||s, recovery_id)."""

    @abstractmethod
    def public_key(self, private_key: bytes, compressed: bool = True) -> bytes:
        """Public key bytes: 33-byte compressed or 64-byte uncompressed (no prefix)."""

    def address_from_private_key(self, private_key: bytes) -> bytes:
        """20-byte Ethereum-style address: keccak(uncompressed_pub)[12:]."""
        return self.hash(self.public_key(private_key, compressed=False))[12:]


class KeyAPIBackend(CryptoBackend):
    """
    CryptoBackend over an eth_keys ECC backend.

    Signatures come back low-S normalized, so the same bytes are valid for
    Cosmos SDK ledgers (which reject high-S) and EVM ledgers.
    """

    def __init__(self, name: str, ecc_backend) -> None:
        self.name = name
        self._ecc = ecc_backend

    def _key(self, private_key: bytes) -> PrivateKey:
        return PrivateKey(coerce_private_key(private_key), backend=self._ecc)

    def sign(self, private_key: bytes, digest: bytes) -> Tuple[bytes, int]:
        if len(digest) != 32:
            raise ValueError(f"digest must be 32 bytes, got {len(digest)}")
        signature = self._key(private_key).sign_msg_hash(digest)
        r, s, recovery_id = signature.r, signature.s, signature.v
        if s > SECP256K1_N // 2:
            s = SECP256K1_N - s
            recovery_id ^= 1
        return r.to_bytes(32, "big") + s.to_bytes(32, "big"), recovery_id

    def public_key(self, private_key: bytes, compressed: bool = True) -> bytes:
        public = self._key(private_key).public_key
        return public.to_compressed_bytes() if compressed else public.to_bytes()


def native_backend() -> KeyAPIBackend:
    """The pure-Python backend. Always available."""
    return KeyAPIBackend(NATIVE_BACKEND, NativeECCBackend())


# ---------------------------------------------------------------------------
# Capability check
# ---------------------------------------------------------------------------

class BackendProbe(BaseModel):
    """
    Result of probing an optional backend.

    Attributes:
        name: Backend name that was probed.
        available: True when the backend can be used.
        reason: Why it cannot be used, empty when available.
        backend: The ready backend instance when available.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    available: bool
    reason: str = ""
    backend: Optional[CryptoBackend] = None


def _self_test(candidate: CryptoBackend) -> str:
    """Return an empty string when ``candidate`` agrees with known answers."""
    if candidate.address_from_private_key(_KNOWN_ANSWER_KEY) != _KNOWN_ANSWER_ADDRESS:
        return "address derivation self-test mismatch"

    digest = keccak(b"txpipe backend self-test")
    signature, recovery_id = candidate.sign(_KNOWN_ANSWER_KEY, digest)
    vrs = (recovery_id, int.from_bytes(signature[:32], "big"), int.from_bytes(signature[32:], "big"))
    recovered = Signature(vrs=vrs, backend=NativeECCBackend()).recover_public_key_from_msg_hash(digest)
    if recovered.to_canonical_address() != _KNOWN_ANSWER_ADDRESS:
        return "signature recovery self-test mismatch"
    return ""


def probe_fast_backend() -> BackendProbe:
    """
    Check whether the coincurve backend can be used in this process.

    Returns:
        BackendProbe: ``available`` with a ready backend, or the reason it is not.
    """
    if importlib.util.find_spec("coincurve") is None:
        return BackendProbe(name=FAST_BACKEND, available=False, reason="coincurve is not installed")

    from eth_keys.backends import CoinCurveECCBackend

    try:
        candidate = KeyAPIBackend(FAST_BACKEND, CoinCurveECCBackend())
    except (ImportError, OSError) as exc:
        return BackendProbe(name=FAST_BACKEND, available=False, reason=f"coincurve failed to load: {exc}")

    failure = _self_test(candidate)
    if failure:
        return BackendProbe(name=FAST_BACKEND, available=False, reason=failure)
    return BackendProbe(name=FAST_BACKEND, available=True, backend=candidate)
