"""Inbound frame relay."""

import logging
from typing import Callable, List

FrameHandler = Callable[[str], None]


class FrameRelay:
    """Deliver every inbound frame to the subscribed handlers.

    Frames published while nobody is subscribed are kept in a backlog and
    replayed, in arrival order, to the first handler that subscribes.
    """

    def __init__(self) -> None:
        """Create an empty relay."""
        self.log = logging.getLogger("huddle-logger")
        self._handlers: List[FrameHandler] = []
        self._backlog: List[str] = []

    def subscribe(self, handler: FrameHandler) -> Callable[[], None]:
        """Register a handler and return a callable unsubscribing it."""
        self._handlers.append(handler)

        if self._backlog:
            pending = self._backlog
            self._backlog = []
            self.log.debug(f"Flushing {len(pending)} backlogged frame(s)")
            for frame in pending:
                self._deliver(handler, frame)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, frame: str) -> None:
        """Publish an inbound frame."""
        if not self._handlers:
            self._backlog.append(frame)
            return

        for handler in list(self._handlers):
            self._deliver(handler, frame)

    def _deliver(self, handler: FrameHandler, frame: str) -> None:
        try:
            handler(frame)
        except Exception as e:
            self.log.error(
                f"Frame handler failed ({type(e).__name__}): {str(e)}"
            )
