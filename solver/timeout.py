"""TimeoutManager: Zeitbudget eines Planungslaufs (Wanduhr, monoton)."""

import time
from typing import Callable, Optional

from solver.errors import TimeoutExceeded


class TimeoutManager:
    """Verfolgt das Zeitbudget eines Laufs.

    timeout_ms=None bedeutet kein Limit; ein Budget von 0 ist sofort
    verbraucht. Bei check_interval_ms > 0 wird die Uhr innerhalb des
    Intervalls nicht erneut gelesen, sondern die letzte Antwort
    zurückgegeben (für heiße Schleifen).
    """

    def __init__(self, timeout_ms: Optional[float], check_interval_ms: float = 0,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.timeout_ms = timeout_ms
        self.check_interval_ms = check_interval_ms
        self._clock = clock
        self._start = clock()
        self._last_check: Optional[float] = None
        self._last_result = False

    def _now_ms(self) -> float:
        return (self._clock() - self._start) * 1000

    @property
    def unlimited(self) -> bool:
        return self.timeout_ms is None

    def is_timed_out(self) -> bool:
        if self.unlimited:
            return False
        now = self._clock()
        if (self.check_interval_ms > 0 and self._last_check is not None
                and (now - self._last_check) * 1000 < self.check_interval_ms):
            return self._last_result
        self._last_check = now
        self._last_result = (now - self._start) * 1000 >= self.timeout_ms
        return self._last_result

    def get_elapsed_ms(self) -> float:
        return self._now_ms()

    def get_remaining_ms(self) -> float:
        """Restzeit, nie negativ. Ohne Limit: unendlich."""
        if self.unlimited:
            return float("inf")
        return max(0.0, self.timeout_ms - self._now_ms())

    def get_time_progress(self) -> float:
        """Verbrauchter Anteil des Budgets in Prozent (0–100)."""
        if self.unlimited:
            return 0.0
        if self.timeout_ms <= 0:
            return 100.0
        return min(100.0, self._now_ms() / self.timeout_ms * 100)

    def check_and_throw(self) -> None:
        """Wirft TimeoutExceeded wenn das Budget verbraucht ist."""
        if self.is_timed_out():
            raise TimeoutExceeded(self._now_ms(), self.timeout_ms)

    def reset(self) -> None:
        self._start = self._clock()
        self._last_check = None
        self._last_result = False
