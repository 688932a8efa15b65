"""
SigningService: the one object that owns backend selection.

Construct a single SigningService at process startup and pass it to every
TransactionClient that should share it. Selection happens once, on the first
call to ``initialize()`` (or lazily on first use), and is immutable afterwards,
so the service is safe to share across any number of concurrent tasks.
"""

import logging
import threading
from typing import Optional, Tuple, Union

from .backends import (
    BackendProbe,
    CryptoBackend,
    coerce_private_key,
    native_backend,
    probe_fast_backend,
)


logger = logging.getLogger(__name__)


class SigningService:
    """
    Explicit, injectable crypto backend registry.

    Args:
        prefer_fast: Try the coincurve backend first and fall back to the
            pure implementation when it is unavailable.
        backend: Use this backend unconditionally; skips probing. Mostly
            useful for tests.

    Example:
        service = SigningService()
        service.initialize()
        signature, recovery_id = service.sign(private_key, service.hash(b"data"))
    """

    def __init__(self, prefer_fast: bool = True, backend: Optional[CryptoBackend] = None) -> None:
        self.prefer_fast = prefer_fast
        self._forced = backend
        self._backend: Optional[CryptoBackend] = None
        self._probe: Optional[BackendProbe] = None
        self._lock = threading.Lock()

    def initialize(self) -> CryptoBackend:
        """
        Select the backend. Idempotent: later calls return the first choice.

        Returns:
            CryptoBackend: The active backend.
        """
        if self._backend is not None:
            return self._backend
        with self._lock:
            if self._backend is None:
                self._backend = self._select()
                logger.debug(f"Signing backend selected: {self._backend.name}")
        return self._backend

    def _select(self) -> CryptoBackend:
        if self._forced is not None:
            return self._forced
        if self.prefer_fast:
            self._probe = probe_fast_backend()
            if self._probe.available:
                return self._probe.backend
            logger.info(f"Fast signing backend unavailable ({self._probe.reason}); using native backend")
        return native_backend()

    @property
    def backend(self) -> CryptoBackend:
        return self.initialize()

    @property
    def backend_name(self) -> str:
        return self.initialize().name

    @property
    def probe(self) -> Optional[BackendProbe]:
        """Result of the fast-backend probe, if one was run."""
        return self._probe

    def hash(self, data: bytes) -> bytes:
        return self.backend.hash(data)

    def sign(self, private_key: Union[bytes, str], digest: bytes) -> Tuple[bytes, int]:
        """
        Sign a 32-byte digest.

        Raises:
            InvalidKeyError: If the private key is malformed.
        """
        return self.backend.sign(coerce_private_key(private_key), digest)

    def public_key(self, private_key: Union[bytes, str], compressed: bool = True) -> bytes:
        return self.backend.public_key(coerce_private_key(private_key), compressed=compressed)

    def address_from_private_key(self, private_key: Union[bytes, str]) -> bytes:
        return self.backend.address_from_private_key(coerce_private_key(private_key))
