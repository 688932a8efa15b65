"""
Built-in event handlers for the transaction submission workflow.

Implements the core flow: simulate -> estimate fee -> sign+broadcast under
the sequence guard -> confirm. Each handler is one stage; the sequence guard
is held only inside handle_fee_estimated so that sign+broadcast is the single
critical section.
"""

import logging
from decimal import Decimal
from typing import Optional, Union

from ..engine.events import (
    BroadcastAcceptedEvent,
    BroadcastRejectedEvent,
    Dependencies,
    EventBus,
    FeeEstimatedEvent,
    SimulatedEvent,
    SubmitRequestedEvent,
    TxConfirmedEvent,
)
from ..engine.exceptions import ClientError, SimulationFailedError, classify_rejection
from ..schemas.bases import Accepted
from ..schemas.fees import AutoFeePolicy
from ..utils.cancel import CancelToken, guard


logger = logging.getLogger(__name__)


async def resolve_unit_price(deps: Dependencies, cancel: Optional[CancelToken] = None) -> Decimal:
    """
    Unit gas price for the next fee.

    Profiles with dynamic_gas_price ask the transport and clamp to
    max_gas_price; the static profile price is used when the query fails or
    returns nothing.
    """
    profile = deps.profile
    if not profile.dynamic_gas_price:
        return profile.gas_price
    try:
        price = await guard(deps.transport.gas_price(), cancel)
    except ClientError as exc:
        logger.warning(f"Dynamic gas price unavailable for {profile.name}, using static price: {exc}")
        return profile.gas_price
    if price is None:
        return profile.gas_price
    if profile.max_gas_price is not None and price > profile.max_gas_price:
        logger.debug(f"Gas price {price} clamped to {profile.max_gas_price}")
        return profile.max_gas_price
    return price


# ==================== Event Handlers ====================

async def handle_submit_requested(
    event: SubmitRequestedEvent,
    deps: Dependencies
) -> SimulatedEvent:
    """Dry-run the message unless the fee policy does not need gas usage."""
    policy = event.fee_policy or AutoFeePolicy()
    if not isinstance(policy, AutoFeePolicy):
        return SimulatedEvent(request=event, simulation=None)

    account_number, sequence = deps.sequencer.snapshot()
    simulation = await deps.simulator.simulate(
        event.message, account_number, sequence, memo=event.memo, cancel=event.cancel
    )
    if not simulation.succeeded:
        raise SimulationFailedError(
            f"simulation of {event.message.type_identifier} failed: {simulation.log}",
            code=simulation.code,
            log=simulation.log,
        )
    return SimulatedEvent(request=event, simulation=simulation)


async def handle_simulated(
    event: SimulatedEvent,
    deps: Dependencies
) -> FeeEstimatedEvent:
    """Turn the simulation into a concrete fee."""
    policy = event.request.fee_policy or AutoFeePolicy()
    unit_price = None
    if isinstance(policy, AutoFeePolicy):
        unit_price = await resolve_unit_price(deps, event.request.cancel)
    fee = deps.estimator.estimate(event.simulation, policy, unit_price=unit_price)
    return FeeEstimatedEvent(request=event.request, fee=fee)


async def handle_fee_estimated(
    event: FeeEstimatedEvent,
    deps: Dependencies
) -> Union[BroadcastAcceptedEvent, BroadcastRejectedEvent]:
    """Sign and broadcast under the sequence guard; commit only on acceptance."""
    request = event.request
    async with deps.sequencer.acquire(request.cancel) as sequence_guard:
        account_number, sequence = sequence_guard.current()
        signed = deps.signer.sign(request.message, event.fee, sequence, account_number, memo=request.memo)
        outcome = await deps.broadcaster.broadcast(signed, request.mode, cancel=request.cancel)
        if isinstance(outcome, Accepted):
            sequence_guard.commit()
            return BroadcastAcceptedEvent(request=request, signed=signed)
        sequence_guard.release_without_commit()

    return BroadcastRejectedEvent(request=request, signed=signed, outcome=outcome)


async def handle_broadcast_accepted(
    event: BroadcastAcceptedEvent,
    deps: Dependencies
) -> Optional[TxConfirmedEvent]:
    """Poll for inclusion when the caller asked to wait."""
    if not event.request.wait:
        return None
    response = await deps.confirmer.confirm(event.signed.tx_hash, event.request.poll, cancel=event.request.cancel)
    return TxConfirmedEvent(response=response)


async def handle_broadcast_rejected(
    event: BroadcastRejectedEvent,
    deps: Dependencies
) -> None:
    """Resync the sequence from the node when the rejection says it drifted."""
    if classify_rejection(event.outcome.raw_log) == "sequence_mismatch":
        logger.info(f"Sequence mismatch for {deps.sequencer.address}, resyncing from node")
        await deps.sequencer.resync(deps.transport, event.request.cancel)
    return None


# ==================== Event Bus Setup ====================

def setup_event_bus(auto_resync: bool = True) -> EventBus:
    """Initialize event bus with the built-in submission handlers.

    Args:
        auto_resync: If True, a sequence-mismatch rejection refetches the
            account sequence before the rejection is reported.
    """
    event_bus = EventBus()

    event_bus.subscribe(SubmitRequestedEvent, handle_submit_requested)
    event_bus.subscribe(SimulatedEvent, handle_simulated)
    event_bus.subscribe(FeeEstimatedEvent, handle_fee_estimated)
    event_bus.subscribe(BroadcastAcceptedEvent, handle_broadcast_accepted)

    if auto_resync:
        event_bus.subscribe(BroadcastRejectedEvent, handle_broadcast_rejected)

    return event_bus
