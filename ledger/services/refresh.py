# ledger/services/refresh.py
"""
Change notification and coalesced refresh.

Ledger writes publish the names of the tables they touched on a
ChangeNotifier. Anything that caches derived data (dashboards, debt
snapshots) subscribes a RefreshScheduler, which turns a burst of change
events into a single refresh after a quiet period and never runs two
refreshes at once.
"""

import logging
import threading
from typing import Callable, Iterable, List

logger = logging.getLogger(__name__)

Listener = Callable[[tuple], None]


class ChangeNotifier:
    def __init__(self):
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, *tables: str) -> None:
        with self._lock:
            listeners = list(self._listeners)

        logger.debug("Ledger change on %s", ", ".join(tables))
        for listener in listeners:
            try:
                listener(tables)
            except Exception:
                # the write has already committed by now
                logger.exception("Change listener %r failed", listener)


class RefreshScheduler:
    """
    Trailing-edge debounce with a single-flight guard.

    Each notify() restarts the delay timer. When it fires, `refresh` runs
    unless a refresh is already in progress; in that case one more refresh
    runs right after the current one finishes.
    """

    def __init__(
        self,
        refresh: Callable[[], None],
        delay: float = 1.0,
        timer_factory=threading.Timer,
    ):
        self._refresh = refresh
        self._delay = delay
        self._timer_factory = timer_factory
        self._timer = None
        self._busy = False
        self._pending = False
        self._closed = False
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._busy

    def notify(self, tables: Iterable[str] = ()) -> None:
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self._timer_factory(self._delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
            if self._busy:
                self._pending = True
                return
            self._busy = True

        while True:
            try:
                self._refresh()
            except Exception:
                logger.exception("Refresh failed")

            with self._lock:
                if not self._pending or self._closed:
                    self._busy = False
                    self._pending = False
                    return
                self._pending = False

    def close(self) -> None:
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
