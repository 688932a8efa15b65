"""
Event chain execution engine.

Provides workflow orchestration on top of EventBus, processing events
recursively until no handler produces a further event.
"""

import asyncio
from typing import AsyncGenerator

from .events import BaseEvent, BreakEvent, EventBus, Dependencies


class _ChainFailed:
    """Queue item carrying a handler exception to the consumer."""

    def __init__(self, error: BaseException) -> None:
        self.error = error


class EventChain:
    """Executes event-driven workflows by chaining event handler results.

    Closing the generator early (break inside ``aclosing``, or cancelling the
    consuming task) cancels whatever stage is still running. A handler
    exception ends the chain and is re-raised to the consumer at the point it
    occurred in the event order.
    """

    def __init__(
        self,
        event_bus: EventBus,
        deps: Dependencies,
    ) -> None:
        """
        Initialize event chain executor.

        Args:
            event_bus: The event bus to dispatch events through.
            deps: Dependencies container to pass to handlers.
        """
        self.event_bus = event_bus
        self.deps = deps
        self._producer: "asyncio.Task | None" = None

    async def execute(self, initial_event: BaseEvent) -> AsyncGenerator[BaseEvent, None]:
        """
        Execute event chain starting from initial event.

        Yields:
            Events produced during chain execution, in order.

        Raises:
            Exception: Whatever a handler raised.
        """
        events_queue: asyncio.Queue = asyncio.Queue()

        async def producer():
            try:
                async for event in self._process_event(initial_event):
                    await events_queue.put(event)
            except Exception as exc:
                await events_queue.put(_ChainFailed(exc))
                return
            await events_queue.put(None)  # Sentinel to indicate completion

        self._producer = asyncio.create_task(producer())

        try:
            while True:
                item = await events_queue.get()
                if item is None:  # Chain complete
                    break
                if isinstance(item, _ChainFailed):
                    raise item.error
                yield item
        finally:
            if not self._producer.done():
                self._producer.cancel()
            await asyncio.gather(self._producer, return_exceptions=True)

    async def _process_event(self, event: BaseEvent) -> AsyncGenerator[BaseEvent, None]:
        """
        Process single event and recursively handle results.

        Yields:
            Events from the chain.
        """
        if isinstance(event, BreakEvent):
            return

        async for result in self.event_bus.dispatch(event, self.deps):
            if result is None:
                continue
            if isinstance(result, BaseEvent):
                yield result
                async for e in self._process_event(result):
                    yield e
            else:
                raise TypeError(f"Handler returned unsupported type: {type(result).__name__}")
