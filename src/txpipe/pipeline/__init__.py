"""
Submission pipeline stages.

Each stage is a small class with one responsibility; flows.py wires them
together as event handlers on an EventBus.
"""

from .balance import BalanceWatcher
from .broadcaster import Broadcaster
from .confirmer import Confirmer
from .fees import (
    FeeEstimator,
    calculate_fee_amount,
    calculate_gas_limit,
    format_coin,
    parse_coin_string,
    parse_coins,
)
from .flows import resolve_unit_price, setup_event_bus
from .retry import is_transient, poll
from .sequencer import AccountSequencer, SequenceGuard
from .signer import Signer
from .simulator import Simulator

__all__ = [
    "BalanceWatcher",
    "Broadcaster",
    "Confirmer",
    "FeeEstimator",
    "calculate_fee_amount",
    "calculate_gas_limit",
    "format_coin",
    "parse_coin_string",
    "parse_coins",
    "resolve_unit_price",
    "setup_event_bus",
    "is_transient",
    "poll",
    "AccountSequencer",
    "SequenceGuard",
    "Signer",
    "Simulator",
]
