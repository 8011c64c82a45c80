"""Per-kind timer gates that decide whether a cache refresh is due."""

from __future__ import annotations

__all__ = ("AlwaysThrottle", "Throttle", "ThrottleComponents")

import threading
import time
from collections.abc import Callable, Iterable, Mapping


class Throttle:
    """A gate that is due again only ``interval`` seconds after `delay`.

    Parameters
    ----------
    interval : `float`
        Seconds between two refreshes.
    clock : callable, optional
        Monotonic clock, replaceable in tests.
    """

    def __init__(
        self, interval: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._lock = threading.Lock()
        self._interval = interval
        self._clock = clock
        self._next: float | None = None
        self._count = 0

    @classmethod
    def create(
        cls, interval: float, clock: Callable[[], float] = time.monotonic
    ) -> Throttle:
        """Create a throttle; a zero interval yields an `AlwaysThrottle`."""
        if interval <= 0:
            return AlwaysThrottle()
        return cls(interval, clock)

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def delay(self) -> None:
        """Arm the gate for another interval."""
        with self._lock:
            self._next = self._clock() + self._interval
            self._count += 1

    def throttle(self) -> bool:
        """Return `True` if a refresh is due."""
        with self._lock:
            return self._next is None or self._next <= self._clock()

    def invalidate(self) -> None:
        """Make the gate due now, regardless of arming."""
        with self._lock:
            self._next = None

    def copy(self) -> Throttle:
        with self._lock:
            clone = Throttle(self._interval, self._clock)
            clone._next = self._next
            clone._count = self._count
            return clone


class AlwaysThrottle(Throttle):
    """A throttle that is always due."""

    def __init__(self) -> None:
        super().__init__(0)

    def delay(self) -> None:
        with self._lock:
            self._count += 1

    def throttle(self) -> bool:
        return True

    def invalidate(self) -> None:
        pass

    def copy(self) -> Throttle:
        return self


class ThrottleComponents:
    """One throttle per kind name."""

    def __init__(self, throttles: Mapping[str, Throttle] | None = None) -> None:
        self._throttles: dict[str, Throttle] = dict(throttles or {})

    @classmethod
    def from_intervals(
        cls,
        intervals: Mapping[str, float],
        clock: Callable[[], float] = time.monotonic,
    ) -> ThrottleComponents:
        return cls(
            {
                name: Throttle.create(interval, clock)
                for name, interval in intervals.items()
            }
        )

    @classmethod
    def always(cls, names: Iterable[str] = ()) -> ThrottleComponents:
        return cls({name: AlwaysThrottle() for name in names})

    def get(self, name: str) -> Throttle:
        """Return the throttle of ``name``, or an always-due one."""
        throttle = self._throttles.get(name)
        if throttle is None:
            return AlwaysThrottle()
        return throttle

    def invalidate(self, *names: str) -> None:
        for name in names:
            self.get(name).invalidate()

    def counts(self) -> dict[str, int]:
        return {name: t.count for name, t in self._throttles.items()}

    def copy(self) -> ThrottleComponents:
        return ThrottleComponents(
            {name: t.copy() for name, t in self._throttles.items()}
        )
