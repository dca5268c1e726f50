from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Callable, List

from ..domain.models import StudioState

logger = logging.getLogger("genfeatures.state")

Listener = Callable[[StudioState], None]


class StateStore:
    """Holds the current ``StudioState`` and swaps it atomically.

    ``dispatch`` runs a pure reducer against the current snapshot. When the
    reducer returns a different object the version is bumped and listeners are
    notified; a reducer that returns its input unchanged is a no-op.
    """

    def __init__(self, initial: StudioState | None = None) -> None:
        self._state = initial or StudioState()
        self._listeners: List[Listener] = []
        self._lock = RLock()

    @property
    def state(self) -> StudioState:
        with self._lock:
            return self._state

    def dispatch(self, reducer: Callable[..., StudioState], *args: Any, **kwargs: Any) -> StudioState:
        with self._lock:
            current = self._state
            updated = reducer(current, *args, **kwargs)
            if updated is current:
                return current
            updated = updated.model_copy(update={"version": current.version + 1})
            self._state = updated
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(updated)
            except Exception:
                logger.exception("state_listener_failed", extra={"version": updated.version})
        return updated

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe
