"""Subscriber/notify base for the stateful interaction components."""

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class Observable:
    """
    Owner of a piece of UI state with a change feed.

    Subclasses mutate their own fields and call _notify(); every listener
    then receives the snapshot returned by snapshot(). Listeners run
    synchronously, in subscription order, on the event loop thread.
    """

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def snapshot(self) -> Any:
        raise NotImplementedError

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                # A broken view must not take the state machine down with it
                logger.error(f"Listener {listener!r} failed: {e}")
