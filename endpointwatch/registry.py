"""Registry: endpoint identity → monitor map, safe to mutate during a tick scan."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from endpointwatch.endpoint import EndpointIdentity

if TYPE_CHECKING:
    from endpointwatch.monitor import EndpointMonitor


class Registry:
    """Concurrent keyed collection of endpoint monitors.

    Holds at most one monitor per identity. Iteration goes through
    ``snapshot()`` so that a tick scan never holds the lock.
    """

    def __init__(self) -> None:
        self._monitors: dict[EndpointIdentity, EndpointMonitor] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self,
        identity: EndpointIdentity,
        factory: Callable[[], EndpointMonitor],
    ) -> tuple[EndpointMonitor, bool]:
        """Return the monitor for ``identity``, creating it atomically if absent.

        The second item is True when the monitor was created by this call.
        """
        with self._lock:
            existing = self._monitors.get(identity)
            if existing is not None:
                return existing, False
            monitor = factory()
            self._monitors[identity] = monitor
            return monitor, True

    def get(self, identity: EndpointIdentity) -> EndpointMonitor | None:
        with self._lock:
            return self._monitors.get(identity)

    def remove(self, identity: EndpointIdentity) -> EndpointMonitor | None:
        """Remove the monitor for ``identity``; idempotent."""
        with self._lock:
            return self._monitors.pop(identity, None)

    def snapshot(self) -> list[EndpointMonitor]:
        """Return a stable list of the current monitors."""
        with self._lock:
            return list(self._monitors.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._monitors)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._monitors
