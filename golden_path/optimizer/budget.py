"""
Search budgets for bounded path generation
"""
from typing import Callable, Optional
from threading import Event
import time


class CancellationToken:
    """Caller-owned flag checked between expansion steps"""

    def __init__(self):
        self._event = Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class SearchBudget:
    """
    Expansion-step, wall-clock and cancellation bound.

    ``consume`` returns False once any bound is hit; the reason is kept
    for reporting.
    """

    def __init__(
        self,
        max_steps: int,
        time_budget_seconds: float,
        cancellation: Optional[CancellationToken] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.max_steps = max_steps
        self.time_budget_seconds = time_budget_seconds
        self.cancellation = cancellation
        self._timer = timer
        self._started = timer()
        self.steps = 0
        self.reason: Optional[str] = None

    @property
    def exhausted(self) -> bool:
        return self.reason is not None

    @property
    def elapsed_seconds(self) -> float:
        return self._timer() - self._started

    def consume(self, amount: int = 1) -> bool:
        if self.reason is not None:
            return False
        if self.cancellation is not None and self.cancellation.cancelled:
            self.reason = "cancelled"
            return False
        if self.steps + amount > self.max_steps:
            self.reason = "step_budget"
            return False
        if self.elapsed_seconds > self.time_budget_seconds:
            self.reason = "time_budget"
            return False
        self.steps += amount
        return True
