"""Instrumentation hooks for inference.

A :class:`LogFunction` is passed explicitly into the inference entry
points; nothing here is stored in global state.  The default,
:class:`NullLogFunction`, records nothing.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class LogFunction(ABC):
    """Timers and statistics collected during inference.

    Timers are keyed by name and may be started and stopped repeatedly;
    each stop adds to the timer's total and invocation count.
    """

    def __init__(self) -> None:
        self._started: Dict[str, float] = {}
        self._elapsed: Dict[str, float] = {}
        self._invocations: Dict[str, int] = {}

    def start_timer(self, name: str) -> None:
        """Start (or restart) the timer called *name*."""
        self._started[name] = time.perf_counter()

    def stop_timer(self, name: str) -> float:
        """Stop the timer called *name*.

        Returns:
            Milliseconds elapsed since the matching :meth:`start_timer`.

        Raises:
            KeyError: If the timer was never started.
        """
        if name not in self._started:
            raise KeyError(f"Timer '{name}' was not started")
        elapsed = (time.perf_counter() - self._started.pop(name)) * 1000.0
        self._elapsed[name] = self._elapsed.get(name, 0.0) + elapsed
        self._invocations[name] = self._invocations.get(name, 0) + 1
        return elapsed

    def timer_elapsed(self, name: str) -> float:
        """Total milliseconds recorded by the timer called *name*."""
        return self._elapsed.get(name, 0.0)

    def timer_invocations(self, name: str) -> int:
        """Number of completed start/stop pairs for *name*."""
        return self._invocations.get(name, 0)

    def timers(self) -> List[str]:
        """Names of every timer stopped at least once, sorted."""
        return sorted(self._elapsed)

    @abstractmethod
    def log_statistic(self, name: str, value: Any) -> None:
        """Record a named statistic."""
        pass


class NullLogFunction(LogFunction):
    """A :class:`LogFunction` which doesn't log anything."""

    def start_timer(self, name: str) -> None:
        pass

    def stop_timer(self, name: str) -> float:
        return 0.0

    def log_statistic(self, name: str, value: Any) -> None:
        pass


class DefaultLogFunction(LogFunction):
    """Writes statistics and timer summaries through :mod:`logging`.

    Args:
        log_interval: Only every ``log_interval``-th call to
            :meth:`log_statistic` for a given name is emitted.
        level: Logging level used for emitted records.
    """

    def __init__(self, log_interval: int = 1, level: int = logging.INFO) -> None:
        super().__init__()
        if log_interval < 1:
            raise ValueError(f"log_interval must be >= 1, got {log_interval}")
        self.log_interval = log_interval
        self.level = level
        self._statistic_counts: Dict[str, int] = {}

    def log_statistic(self, name: str, value: Any) -> None:
        count = self._statistic_counts.get(name, 0)
        self._statistic_counts[name] = count + 1
        if count % self.log_interval == 0:
            logger.log(self.level, "%s=%s", name, value)

    def log_time_statistics(self) -> None:
        """Emit total and average time for every recorded timer."""
        logger.log(self.level, "Elapsed time statistics:")
        for name in self.timers():
            total = self.timer_elapsed(name)
            invocations = self.timer_invocations(name)
            logger.log(
                self.level,
                "%s: %.3f ms (%.3f * %d)",
                name, total, total / invocations, invocations,
            )
