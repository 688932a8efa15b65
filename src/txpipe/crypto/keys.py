"""Signing identity helpers: mnemonic derivation and key loading."""

from typing import Optional, Union

from eth_account import Account
from eth_utils import ValidationError

from ..engine.exceptions import ConfigurationError, InvalidKeyError
from .backends import coerce_private_key


COSMOS_HD_PATH = "m/44'/118'/0'/0/0"
EVM_HD_PATH = "m/44'/60'/0'/0/0"

Account.enable_unaudited_hdwallet_features()


def private_key_from_mnemonic(mnemonic: str, hd_path: str = COSMOS_HD_PATH, passphrase: str = "") -> bytes:
    """
    Derive a secp256k1 private key from a BIP-39 mnemonic.

    Args:
        mnemonic: Space separated BIP-39 phrase.
        hd_path: BIP-32 derivation path, e.g. m/44'/118'/0'/0/0 for Cosmos.
        passphrase: Optional BIP-39 passphrase.

    Returns:
        bytes: 32-byte private key.

    Raises:
        InvalidKeyError: If the phrase or path is invalid.
    """
    try:
        account = Account.from_mnemonic(mnemonic.strip(), passphrase=passphrase, account_path=hd_path)
    except (ValueError, ValidationError) as exc:
        raise InvalidKeyError(f"cannot derive key from mnemonic: {exc}") from exc
    return bytes(account.key)


def load_private_key(
    private_key: Optional[Union[str, bytes]] = None,
    mnemonic: Optional[str] = None,
    hd_path: str = COSMOS_HD_PATH,
) -> bytes:
    """Resolve a signing key from an explicit key or a mnemonic, in that order."""
    if private_key:
        return coerce_private_key(private_key)
    if mnemonic:
        return private_key_from_mnemonic(mnemonic, hd_path=hd_path)
    raise ConfigurationError("no signing key configured: set a private key or a mnemonic")
