"""
Fee Policy Types (Discriminated Union)

A fee policy tells the Fee Estimator how to turn a SimulationResult into a
concrete Fee. Pydantic selects the variant from the ``kind`` field, so
policies can be loaded from configuration as plain dictionaries.

Variants:
    - AutoFeePolicy (kind="auto"): gas from simulation times an adjustment,
      priced at the chain's unit gas price.
    - FixedFeePolicy (kind="fixed"): caller-supplied amount and gas limit,
      simulation ignored.
    - CustomFeePolicy (kind="custom"): caller-supplied gas limit and unit
      price, simulation ignored.

Example usage:
    policy = FeePolicy.validate_python({"kind": "auto", "gas_adjustment": 1.5})
"""

from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from .bases import CanonicalModel, Coin


class AutoFeePolicy(CanonicalModel):
    """Derive gas limit from simulation; None falls back to the chain profile."""
    kind: Literal["auto"] = "auto"
    gas_adjustment: Optional[float] = Field(None, gt=0)


class FixedFeePolicy(CanonicalModel):
    """
    Pass a fee through unchanged.

    ``amount`` is either a coin list or a coin string such as
    "5000uatom" / "5000uatom,10untrn".
    """
    kind: Literal["fixed"] = "fixed"
    amount: Union[str, List[Coin]]
    gas_limit: int = Field(..., ge=0)


class CustomFeePolicy(CanonicalModel):
    """Explicit gas limit and unit price, independent of simulation."""
    kind: Literal["custom"] = "custom"
    gas_limit: int = Field(..., ge=0)
    unit_price: Decimal = Field(..., ge=0)
    denom: Optional[str] = None


FeePolicyTypes = Annotated[
    Union[
        AutoFeePolicy,    # kind: "auto"
        FixedFeePolicy,   # kind: "fixed"
        CustomFeePolicy,  # kind: "custom"
    ],
    Field(discriminator="kind")
]

FeePolicy = TypeAdapter(FeePolicyTypes)
