"""
Bounded polling shared by the Confirmer and the BalanceWatcher.

Both pollers use one classification: NotFoundError and InvalidArgumentError
are transient (the node has not seen or indexed the thing yet) and count as
a miss; every other error is fatal and propagates unchanged on the attempt
that raised it.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..engine.exceptions import InvalidArgumentError, NotFoundError, TimeoutError
from ..schemas.bases import PollPolicy
from ..utils.cancel import CancelToken, guard, sleep


logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (NotFoundError, InvalidArgumentError)


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, TRANSIENT_ERRORS)


async def poll(
    query: Callable[[], Awaitable[T]],
    policy: PollPolicy,
    accept: Optional[Callable[[T], bool]] = None,
    cancel: Optional[CancelToken] = None,
    description: str = "poll",
    tx_hash: Optional[str] = None,
) -> T:
    """
    Run ``query`` until ``accept`` holds for its result.

    Each attempt issues one query; a transient error or a rejected value is a
    miss and is followed by a ``policy.interval`` sleep. After
    ``policy.max_attempts`` misses the poll times out, so a never-satisfied
    poll takes about ``max_attempts * interval``.

    Args:
        query: Zero-argument coroutine factory, called once per attempt.
        policy: Interval and attempt bound.
        accept: Predicate on the query result; any result is accepted when None.
        cancel: Optional cancel token applied to queries and sleeps.
        description: Label used in logs and the timeout message.
        tx_hash: Attached to the TimeoutError when polling for a transaction.

    Raises:
        TimeoutError: After max_attempts misses.
        OperationCancelledError: If ``cancel`` fires.
        ClientError: Any non-transient query error, unchanged.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await guard(query(), cancel)
        except TRANSIENT_ERRORS as exc:
            logger.debug(f"{description}: attempt {attempt}/{policy.max_attempts} missed ({exc})")
        else:
            if accept is None or accept(result):
                return result
            logger.debug(f"{description}: attempt {attempt}/{policy.max_attempts} not satisfied")
        await sleep(policy.interval, cancel)

    raise TimeoutError(
        f"{description} timed out after {policy.max_attempts} attempts",
        tx_hash=tx_hash,
    )
