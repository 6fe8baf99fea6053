"""Event log for committed invocations."""
from typing import Callable, List

from hotoken_reservation.schemas import TokenPurchaseEvent
from mcp.server.fastmcp.utilities.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[[TokenPurchaseEvent], None]


class EventLog:
    """Keeps every emitted event and notifies subscribed listeners."""

    def __init__(self):
        self.events: List[TokenPurchaseEvent] = []
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def emit(self, event: TokenPurchaseEvent) -> None:
        self.events.append(event)
        logger.info(f"{event.event}: purchaser={event.purchaser}, value={event.value}, amount={event.amount}")
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                # The state is already committed; a listener cannot undo it.
                logger.exception(f"Event listener {listener!r} failed on {event.event}: {e}")
