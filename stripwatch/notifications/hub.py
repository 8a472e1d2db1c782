from __future__ import annotations

import logging
import threading
from typing import Callable

from stripwatch.core.models import StripEvent

StripListener = Callable[[StripEvent], None]


class NotificationHub:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        # dict keeps insertion order and rejects duplicates
        self._listeners: dict[StripListener, None] = {}
        self._logger = logging.getLogger("stripwatch.notify")

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def subscribe(self, listener: StripListener | None) -> None:
        if listener is None:
            return
        with self._lock:
            self._listeners.setdefault(listener, None)

    def unsubscribe(self, listener: StripListener | None) -> None:
        if listener is None:
            return
        with self._lock:
            self._listeners.pop(listener, None)

    def notify_all(self, event: StripEvent) -> int:
        """Deliver ``event`` to every listener, in subscription order.

        Listeners unsubscribed while the round is running are skipped if
        their turn has not come yet. Returns the number of deliveries.
        """
        with self._lock:
            snapshot = list(self._listeners)

        delivered = 0
        for listener in snapshot:
            with self._lock:
                if listener not in self._listeners:
                    continue
            try:
                listener(event)
            except Exception:
                self._logger.exception("Strip listener %r failed", listener)
                continue
            delivered += 1
        return delivered
