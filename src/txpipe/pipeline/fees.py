"""
Fee Estimator

Pure mapping from a SimulationResult and a FeePolicy to a concrete Fee.
No I/O happens here; the caller supplies the unit gas price (static from the
chain profile or queried from the node).

Rules:
    auto:   gas_limit = ceil(gas_used * gas_adjustment), or the profile's
                        default_gas_limit when the dry run reports no usage
            amount    = round_half_up(gas_limit * unit_price), at least 1 when
                        gas_limit > 0 and unit_price > 0
    fixed:  amount and gas_limit passed through unchanged
    custom: amount    = round_half_up(gas_limit * unit_price), same floor

Decimal arithmetic keeps 150000 * 0.025 exactly 3750.
"""

import re
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional, Union

from ..chains.profiles import ChainProfile
from ..codecs.bases import validate_denom
from ..engine.exceptions import ClientError, ParseError
from ..schemas.bases import Coin, Fee, SimulationResult
from ..schemas.fees import AutoFeePolicy, CustomFeePolicy, FeePolicyTypes, FixedFeePolicy


_COIN_PATTERN = re.compile(r"^\s*(\d+)\s*([a-zA-Z][a-zA-Z0-9/:._-]*)\s*$")


def _decimal(value: Union[Decimal, float, int, str], what: str) -> Decimal:
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ParseError(f"invalid {what}: {value!r}") from exc
    if not result.is_finite() or result < 0:
        raise ParseError(f"invalid {what}: {value!r}")
    return result


def parse_coin_string(text: str) -> Coin:
    """
    Parse "1000000uatom" into Coin(denom="uatom", amount=1000000).

    Raises:
        ParseError: If the text is not <integer><denom>.
    """
    match = _COIN_PATTERN.match(text or "")
    if not match:
        raise ParseError(f"invalid coin string: {text!r}")
    amount, denom = match.groups()
    return Coin(denom=validate_denom(denom), amount=int(amount))


def parse_coins(text: str) -> List[Coin]:
    """Parse a comma separated coin list such as "5000uatom,10untrn"."""
    return [parse_coin_string(part) for part in text.split(",") if part.strip()]


def format_coin(coin: Coin) -> str:
    return f"{coin.amount}{coin.denom}"


def calculate_gas_limit(gas_used: int, gas_adjustment: Union[Decimal, float]) -> int:
    """ceil(gas_used * gas_adjustment)."""
    product = Decimal(gas_used) * _decimal(gas_adjustment, "gas adjustment")
    return int(product.to_integral_value(rounding=ROUND_CEILING))


def calculate_fee_amount(gas_limit: int, unit_price: Union[Decimal, float, str]) -> int:
    """Rounded fee amount with a floor of one minimal unit for non-zero inputs."""
    price = _decimal(unit_price, "unit gas price")
    amount = int((Decimal(gas_limit) * price).to_integral_value(rounding=ROUND_HALF_UP))
    if amount == 0 and gas_limit > 0 and price > 0:
        return 1
    return amount


class FeeEstimator:
    """
    Turn simulations into fees for one chain profile.

    Args:
        profile: Supplies the fee denom, default gas adjustment and static
            gas price.

    Example:
        estimator = FeeEstimator(GAIA)
        fee = estimator.estimate(SimulationResult(gas_used=100_000), AutoFeePolicy(gas_adjustment=1.5))
    """

    def __init__(self, profile: ChainProfile) -> None:
        self.profile = profile

    def estimate(
        self,
        sim: Optional[SimulationResult],
        policy: Optional[FeePolicyTypes] = None,
        unit_price: Optional[Union[Decimal, float, str]] = None,
    ) -> Fee:
        """
        Compute the fee for one signing attempt.

        Args:
            sim: Dry run result; only required by the auto policy.
            policy: Fee policy, AutoFeePolicy() when None.
            unit_price: Override for the profile's static gas price.

        Returns:
            Fee: Fresh fee object.

        Raises:
            ParseError: On a malformed denomination, coin string or price.
            ClientError: If the auto policy is used without a simulation.
        """
        policy = policy or AutoFeePolicy()
        denom = validate_denom(self.profile.fee_denom)

        if isinstance(policy, FixedFeePolicy):
            amount = parse_coins(policy.amount) if isinstance(policy.amount, str) else list(policy.amount)
            for coin in amount:
                validate_denom(coin.denom)
            return Fee(amount=amount, gas_limit=policy.gas_limit)

        if isinstance(policy, CustomFeePolicy):
            if policy.denom is not None:
                denom = validate_denom(policy.denom)
            amount = calculate_fee_amount(policy.gas_limit, policy.unit_price)
            return Fee(amount=[Coin(denom=denom, amount=amount)], gas_limit=policy.gas_limit)

        if sim is None:
            raise ClientError("auto fee policy requires a simulation result")
        adjustment = policy.gas_adjustment if policy.gas_adjustment is not None else self.profile.gas_adjustment
        price = unit_price if unit_price is not None else self.profile.gas_price
        if sim.gas_used > 0:
            gas_limit = calculate_gas_limit(sim.gas_used, adjustment)
        else:
            # nothing metered, fall back to the chain default
            gas_limit = self.profile.default_gas_limit
        amount = calculate_fee_amount(gas_limit, price)
        return Fee(amount=[Coin(denom=denom, amount=amount)], gas_limit=gas_limit)
