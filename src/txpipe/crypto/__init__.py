from .backends import (
    CryptoBackend,
    KeyAPIBackend,
    BackendProbe,
    coerce_private_key,
    native_backend,
    probe_fast_backend,
    NATIVE_BACKEND,
    FAST_BACKEND,
)
from .service import SigningService
from .keys import private_key_from_mnemonic, load_private_key, COSMOS_HD_PATH, EVM_HD_PATH

__all__ = [
    "CryptoBackend",
    "KeyAPIBackend",
    "BackendProbe",
    "coerce_private_key",
    "native_backend",
    "probe_fast_backend",
    "NATIVE_BACKEND",
    "FAST_BACKEND",
    "SigningService",
    "private_key_from_mnemonic",
    "load_private_key",
    "COSMOS_HD_PATH",
    "EVM_HD_PATH",
]
