"""
Client settings loaded from the environment.

Variables (a local ``.env`` file is honoured):
    TXPIPE_CHAIN            profile name, default "gaia"
    TXPIPE_RPC_URL          gRPC target (Cosmos) or JSON-RPC URL (EVM)
    TXPIPE_PRIVATE_KEY      hex signing key
    TXPIPE_MNEMONIC         BIP-39 phrase, used when no key is set
    TXPIPE_POLL_INTERVAL    seconds between confirmation polls, default 1
    TXPIPE_POLL_ATTEMPTS    confirmation polls before timing out, default 60
    TXPIPE_REQUEST_TIMEOUT  per-request timeout in seconds, default 10
    TXPIPE_FAST_CRYPTO      try the coincurve backend first, default true
    TXPIPE_LOG_LEVEL        level for configure_logging(), default WARNING
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from ..chains.constants import (
    get_bool_from_env,
    get_chain_from_env,
    get_float_from_env,
    get_int_from_env,
    get_mnemonic_from_env,
    get_private_key_from_env,
    get_rpc_url_from_env,
)
from ..chains.profiles import ChainProfile, get_profile
from ..engine.exceptions import ConfigurationError
from ..schemas.bases import PollPolicy


class ClientSettings(BaseModel):
    """Everything needed to build a TransactionClient without code."""
    chain: str = "gaia"
    rpc_url: Optional[str] = None
    private_key: Optional[str] = Field(None, repr=False)
    mnemonic: Optional[str] = Field(None, repr=False)
    poll_interval: float = Field(1.0, gt=0)
    poll_attempts: int = Field(60, ge=1)
    request_timeout: float = Field(10.0, gt=0)
    fast_crypto: bool = True
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "ClientSettings":
        """
        Read settings from environment variables.

        Raises:
            ConfigurationError: If a value is malformed.
        """
        try:
            return cls(
                chain=get_chain_from_env() or "gaia",
                rpc_url=get_rpc_url_from_env(),
                private_key=get_private_key_from_env(),
                mnemonic=get_mnemonic_from_env(),
                poll_interval=get_float_from_env("TXPIPE_POLL_INTERVAL", 1.0),
                poll_attempts=get_int_from_env("TXPIPE_POLL_ATTEMPTS", 60),
                request_timeout=get_float_from_env("TXPIPE_REQUEST_TIMEOUT", 10.0),
                fast_crypto=get_bool_from_env("TXPIPE_FAST_CRYPTO", True),
                log_level=os.getenv("TXPIPE_LOG_LEVEL", "WARNING"),
            )
        except ValidationError as exc:
            raise ConfigurationError(f"invalid TXPIPE_* settings: {exc}") from exc

    def profile(self) -> ChainProfile:
        return get_profile(self.chain)

    def poll_policy(self) -> PollPolicy:
        return PollPolicy(interval=self.poll_interval, max_attempts=self.poll_attempts)
