from __future__ import annotations

import threading
from collections.abc import Callable

from ob6control.domain.device_state import DeviceState


class DeviceStateCache:
    """Holds the last known `DeviceState` of the connected unit.

    States are immutable; writers swap the whole value under a lock, so a
    reader never sees a channel from one dump next to flags from another.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state: DeviceState | None = None

    def get(self) -> DeviceState | None:
        with self._lock:
            return self._state

    def publish(self, state: DeviceState) -> None:
        with self._lock:
            self._state = state

    def update(self, change: Callable[[DeviceState], DeviceState]) -> DeviceState | None:
        """Apply `change` to the current state atomically. No-op before the first publish."""

        with self._lock:
            if self._state is None:
                return None
            self._state = change(self._state)
            return self._state

    def clear(self) -> None:
        with self._lock:
            self._state = None
