from .bases import (
    CanonicalModel,
    BroadcastMode,
    AccountInfo,
    Message,
    Coin,
    Fee,
    Event,
    SimulationResult,
    TransactionResponse,
    PollPolicy,
    SignedTransaction,
    Accepted,
    Rejected,
    BroadcastOutcome,
)
from .fees import AutoFeePolicy, FixedFeePolicy, CustomFeePolicy, FeePolicyTypes, FeePolicy

__all__ = [
    "CanonicalModel",
    "BroadcastMode",
    "AccountInfo",
    "Message",
    "Coin",
    "Fee",
    "Event",
    "SimulationResult",
    "TransactionResponse",
    "PollPolicy",
    "SignedTransaction",
    "Accepted",
    "Rejected",
    "BroadcastOutcome",
    "AutoFeePolicy",
    "FixedFeePolicy",
    "CustomFeePolicy",
    "FeePolicyTypes",
    "FeePolicy",
]
