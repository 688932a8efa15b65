"""
Chain configuration sources outside the built-in profile table.

Includes environment-variable accessors (``.env`` files are loaded on import)
and the Cosmos chain-registry lookup used for dynamic gas prices.
"""

import os
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import dotenv
import httpx

from ..engine.exceptions import ConfigurationError, ParseError, ServiceError

dotenv.load_dotenv()


CHAIN_REGISTRY_URL = "https://raw.githubusercontent.com/cosmos/chain-registry/master/{chain}/chain.json"


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

def get_chain_from_env() -> Optional[str]:
    """Profile name to use (``TXPIPE_CHAIN``), e.g. "neutron" or "base"."""
    return os.getenv("TXPIPE_CHAIN")


def get_rpc_url_from_env() -> Optional[str]:
    """
    Node endpoint (``TXPIPE_RPC_URL``).

    gRPC ``host:port`` for Cosmos profiles, an HTTP JSON-RPC URL for EVM profiles.
    """
    return os.getenv("TXPIPE_RPC_URL")


def get_private_key_from_env() -> Optional[str]:
    """
    Hex signing key (``TXPIPE_PRIVATE_KEY``).

    Note:
        Keep the key in the environment or a local ``.env`` file and never
        commit it to version control.
    """
    return os.getenv("TXPIPE_PRIVATE_KEY")


def get_mnemonic_from_env() -> Optional[str]:
    """BIP-39 phrase (``TXPIPE_MNEMONIC``), used when no private key is set."""
    return os.getenv("TXPIPE_MNEMONIC")


def get_float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def get_int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def get_bool_from_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Chain registry
# ---------------------------------------------------------------------------

async def fetch_json(url: str, timeout: float = 10.0) -> Dict[str, Any]:
    """
    Fetch a JSON document.

    Raises:
        ServiceError: On a 4xx/5xx status, a network failure or a non-JSON body.
    """
    async with httpx.AsyncClient(timeout=timeout) as client:
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ServiceError(f"HTTP {exc.response.status_code} error while requesting {url}") from exc
        except httpx.RequestError as exc:
            raise ServiceError(f"Request to {url} failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise ServiceError(
                f"Failed to decode JSON from {url}. Content-Type: {response.headers.get('Content-Type')}"
            ) from exc


def parse_registry_gas_price(payload: Dict[str, Any], denom: str) -> Decimal:
    """
    Extract ``average_gas_price`` for ``denom`` from a chain.json payload.

    Raises:
        ParseError: If the fee token or its price is missing.
    """
    fee_tokens = (payload.get("fees") or {}).get("fee_tokens") or []
    for entry in fee_tokens:
        if entry.get("denom") != denom:
            continue
        price = entry.get("average_gas_price")
        if price is None:
            break
        try:
            return Decimal(str(price))
        except InvalidOperation as exc:
            raise ParseError(f"invalid average_gas_price {price!r} for {denom}") from exc
    raise ParseError(f"chain registry has no average gas price for {denom}")


async def fetch_registry_gas_price(registry_name: str, denom: str, timeout: float = 10.0) -> Decimal:
    """Average gas price for ``denom`` as published in the Cosmos chain registry."""
    payload = await fetch_json(CHAIN_REGISTRY_URL.format(chain=registry_name), timeout=timeout)
    return parse_registry_gas_price(payload, denom)
