"""
In-process auth-state-change stream.

Login, logout and grant changes (user update/delete) emit an AuthStateEvent;
authorization sessions and staff sockets subscribe to react to them.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Final

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AuthEvent:
    """Kinds of auth-state changes."""

    SIGNED_IN: Final[str] = "SIGNED_IN"
    SIGNED_OUT: Final[str] = "SIGNED_OUT"
    GRANTS_CHANGED: Final[str] = "GRANTS_CHANGED"


@dataclass(frozen=True)
class AuthStateEvent:
    kind: str
    # None means "every user" (e.g. a bulk grant reset)
    user_id: int | None = None

    def concerns(self, user_id: int | None) -> bool:
        return self.user_id is None or self.user_id == user_id


AuthListener = Callable[[AuthStateEvent], None]


class AuthStateNotifier:
    """
    Thread-safe listener registry.

    Listeners run synchronously in the emitting thread. A failing listener
    is logged and does not prevent the others from running.
    """

    def __init__(self) -> None:
        self._listeners: list[AuthListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener. Returns the function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def emit(self, event: AuthStateEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    "Auth state listener failed",
                    kind=event.kind,
                    user_id=event.user_id,
                    error=str(e),
                    exc_info=True,
                )


# Process-wide stream
auth_notifier = AuthStateNotifier()
