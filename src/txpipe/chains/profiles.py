"""
Chain profiles.

A ChainProfile carries everything that differs between chains of the same
family: identifiers, address prefix, fee denomination and gas defaults.
Chains are data here, not subclasses; one TransactionClient serves them all.
"""

from decimal import Decimal
from typing import Dict, Literal, Optional, Union

from pydantic import Field

from ..crypto.keys import COSMOS_HD_PATH, EVM_HD_PATH
from ..engine.exceptions import ConfigurationError
from ..schemas.bases import CanonicalModel


GWEI = 10 ** 9


class ChainProfile(CanonicalModel):
    """
    Chain-specific constants consumed by the generic pipeline.

    Attributes:
        name: Short profile name (e.g. "gaia", "base").
        family: "cosmos" for account/sequence ledgers, "evm" for nonce ledgers.
        chain_id: Cosmos chain id string or EVM integer chain id.
        address_prefix: Bech32 human readable part; empty for EVM.
        fee_denom: Denomination fees are paid in ("wei" for EVM).
        gas_price: Static unit gas price in minimal fee units per gas.
        gas_adjustment: Default multiplier applied to simulated gas.
        default_gas_limit: Gas limit used by the auto policy when a dry run
            reports no gas usage.
        max_gas_price: Ceiling for dynamically queried gas prices (EVM).
        priority_fee: EIP-1559 priority fee per gas in wei (EVM).
        hd_path: BIP-32 path used when the signer is a mnemonic.
        dynamic_gas_price: Ask the node for the current gas price before pricing.
        registry_name: Cosmos chain-registry directory name, used for dynamic
            gas prices on Cosmos profiles.
    """
    name: str
    family: Literal["cosmos", "evm"]
    chain_id: Union[int, str]
    address_prefix: str = ""
    fee_denom: str
    gas_price: Decimal = Field(..., ge=0)
    gas_adjustment: float = Field(1.3, gt=0)
    default_gas_limit: int = Field(200_000, gt=0)
    max_gas_price: Optional[Decimal] = None
    priority_fee: int = Field(0, ge=0)
    hd_path: str = COSMOS_HD_PATH
    dynamic_gas_price: bool = False
    registry_name: Optional[str] = None

    @property
    def is_evm(self) -> bool:
        return self.family == "evm"

    def with_overrides(self, **fields) -> "ChainProfile":
        """Return a validated copy with ``fields`` replaced."""
        return ChainProfile.model_validate({**self.model_dump(), **fields})


# ---------------------------------------------------------------------------
# Built-in profiles
# ---------------------------------------------------------------------------

GAIA = ChainProfile(
    name="gaia",
    family="cosmos",
    chain_id="cosmoshub-4",
    address_prefix="cosmos",
    fee_denom="uatom",
    gas_price=Decimal("0.025"),
    gas_adjustment=1.3,
    registry_name="cosmoshub",
)

NEUTRON = ChainProfile(
    name="neutron",
    family="cosmos",
    chain_id="neutron-1",
    address_prefix="neutron",
    fee_denom="untrn",
    gas_price=Decimal("0.025"),
    gas_adjustment=1.5,
    registry_name="neutron",
)

OSMOSIS = ChainProfile(
    name="osmosis",
    family="cosmos",
    chain_id="osmosis-1",
    address_prefix="osmo",
    fee_denom="uosmo",
    gas_price=Decimal("0.025"),
    gas_adjustment=1.3,
    registry_name="osmosis",
)

NOBLE = ChainProfile(
    name="noble",
    family="cosmos",
    chain_id="noble-1",
    address_prefix="noble",
    fee_denom="uusdc",
    gas_price=Decimal("0.1"),
    gas_adjustment=1.3,
    registry_name="noble",
)

ETHEREUM = ChainProfile(
    name="ethereum",
    family="evm",
    chain_id=1,
    fee_denom="wei",
    gas_price=Decimal(20 * GWEI),
    gas_adjustment=1.3,
    default_gas_limit=21_000,
    max_gas_price=Decimal(100 * GWEI),
    priority_fee=GWEI,
    hd_path=EVM_HD_PATH,
    dynamic_gas_price=True,
)

BASE = ChainProfile(
    name="base",
    family="evm",
    chain_id=8453,
    fee_denom="wei",
    gas_price=Decimal(GWEI // 10),
    gas_adjustment=1.3,
    default_gas_limit=1_000_000,
    max_gas_price=Decimal(100 * GWEI),
    priority_fee=GWEI // 1000,
    hd_path=EVM_HD_PATH,
    dynamic_gas_price=True,
)

PROFILES: Dict[str, ChainProfile] = {
    profile.name: profile for profile in (GAIA, NEUTRON, OSMOSIS, NOBLE, ETHEREUM, BASE)
}


def get_profile(name: str) -> ChainProfile:
    """
    Look up a built-in profile by name (case insensitive).

    Raises:
        ConfigurationError: If no profile has that name.
    """
    try:
        return PROFILES[name.strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown chain profile '{name}'. Known profiles: {', '.join(sorted(PROFILES))}"
        ) from None
