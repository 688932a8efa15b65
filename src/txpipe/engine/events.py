"""
Event-driven system with typed events and clear data flow.

Each pipeline stage is a handler that consumes one event and returns the
next one. Events carry their own data; the pipeline's collaborators are
injected separately through Dependencies. Hooks registered on the bus see
every event of their type before the stage handler runs, which is how
callers observe a submission without changing it.

Submission flow:
    SubmitRequestedEvent -> SimulatedEvent -> FeeEstimatedEvent
        -> BroadcastAcceptedEvent -> TxConfirmedEvent
        -> BroadcastRejectedEvent
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict

from ..schemas.bases import (
    BroadcastMode,
    Fee,
    Message,
    PollPolicy,
    Rejected,
    SignedTransaction,
    SimulationResult,
    TransactionResponse,
)
from ..schemas.fees import FeePolicyTypes
from ..utils.cancel import CancelToken

# ==================== Base Event ====================

class BaseEvent(ABC):
    """Base class for all events in the system."""

    @abstractmethod
    def __repr__(self) -> str:
        """String representation of the event."""
        pass


# ==================== Trigger Events (External) ====================

class SubmitRequestedEvent(BaseModel, BaseEvent):
    """External trigger: submit one message through the pipeline."""
    message: Message
    fee_policy: Optional[FeePolicyTypes] = None
    memo: str = ""
    mode: BroadcastMode = BroadcastMode.SYNC
    poll: Optional[PollPolicy] = None
    wait: bool = True
    cancel: Optional[CancelToken] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"SubmitRequestedEvent(type={self.message.type_identifier}, mode={self.mode.value})"


# ==================== Stage Events ====================

class SimulatedEvent(BaseModel, BaseEvent):
    """Stage: dry run finished with gas usage."""
    request: SubmitRequestedEvent
    simulation: Optional[SimulationResult] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        gas = self.simulation.gas_used if self.simulation else None
        return f"SimulatedEvent(gas_used={gas})"


class FeeEstimatedEvent(BaseModel, BaseEvent):
    """Stage: concrete fee chosen for the signing attempt."""
    request: SubmitRequestedEvent
    fee: Fee

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"FeeEstimatedEvent(gas_limit={self.fee.gas_limit}, amount={[str(c) for c in self.fee.amount]})"


class BroadcastAcceptedEvent(BaseModel, BaseEvent):
    """Result: node accepted the transaction; sequence already committed."""
    request: SubmitRequestedEvent
    signed: SignedTransaction

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"BroadcastAcceptedEvent(tx_hash={self.signed.tx_hash}, sequence={self.signed.sequence})"


class BroadcastRejectedEvent(BaseModel, BaseEvent):
    """Result: node rejected the transaction; sequence unchanged."""
    request: SubmitRequestedEvent
    signed: SignedTransaction
    outcome: Rejected

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"BroadcastRejectedEvent(code={self.outcome.code})"


class TxConfirmedEvent(BaseModel, BaseEvent):
    """Result: transaction included."""
    response: TransactionResponse

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"TxConfirmedEvent(tx_hash={self.response.tx_hash}, code={self.response.code})"


class BreakEvent(BaseModel, BaseEvent):
    """Internal event to break the event chain."""
    break_reason: str = ""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return "BreakEvent()"


# ==================== Dependencies Container ====================

@dataclass(frozen=True)
class Dependencies:
    """Container for pipeline collaborators (read-only)."""
    profile: Any = None
    transport: Any = None
    sequencer: Any = None
    signer: Any = None
    simulator: Any = None
    estimator: Any = None
    broadcaster: Any = None
    confirmer: Any = None


# ==================== Event Bus ====================

EventHandlerFunc = Callable[[BaseEvent, Dependencies], Awaitable[Optional[BaseEvent]]]
EventHookFunc = Callable[[BaseEvent, Dependencies], Awaitable[None]]


class EventBus:
    """Event dispatcher for publishing and subscribing to events."""

    def __init__(self) -> None:
        """Initialize with empty subscribers and hooks."""
        self._subscribers: Dict[type, list[EventHandlerFunc]] = {}
        self._hooks: Dict[type, list[EventHookFunc]] = {}

    def subscribe(self, event_class: type[BaseEvent], handler: EventHandlerFunc) -> None:
        """
        Register an async handler for the given event class.
        Multiple handlers can be subscribed to the same event type and run in parallel.

        Args:
            event_class: The event class to subscribe to.
            handler: The async handler function to call when the event is published.

        Raises:
            TypeError: If handler is not a coroutine function.
        """
        if not inspect.iscoroutinefunction(handler):
            raise TypeError(f"Handler must be a coroutine function, got {type(handler).__name__}")

        self._subscribers.setdefault(event_class, []).append(handler)

    def hook(self, event_class: type[BaseEvent], hook_func: EventHookFunc) -> None:
        """
        Register an observer for the given event class.
        Hooks run before subscribers and their return values are ignored.

        Raises:
            TypeError: If hook_func is not a coroutine function.
        """
        if not inspect.iscoroutinefunction(hook_func):
            raise TypeError(f"Hook must be a coroutine function, got {type(hook_func).__name__}")

        self._hooks.setdefault(event_class, []).append(hook_func)

    async def dispatch(self, event: BaseEvent, deps: Dependencies) -> AsyncGenerator[Optional[BaseEvent], None]:
        """
        Dispatch an event to all registered hooks and subscribers.
        Hooks run first (concurrently), then all subscribers run in parallel.

        Yields:
            Results from all subscribers as they complete. Yields nothing if no
            subscribers are registered. A subscriber exception propagates.
        """
        hooks = self._hooks.get(type(event), [])
        await asyncio.gather(*(hook(event, deps) for hook in hooks))

        handlers = self._subscribers.get(type(event), [])
        if not handlers:
            return

        tasks = [asyncio.ensure_future(handler(event, deps)) for handler in handlers]
        try:
            for coro in asyncio.as_completed(tasks):
                result = await coro
                yield result
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
