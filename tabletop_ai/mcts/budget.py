"""
Budget controllers for Monte Carlo Tree Search.

A budget controller is consulted after every completed iteration and decides
whether the search should stop. Three policies are available:

- TimeBudget: stop before an iteration is likely to overrun the time limit
- IterationBudget: stop after a fixed number of iterations
- ForwardModelCallBudget: stop after a fixed number of forward model calls,
  or as soon as an iteration made no calls (the reachable tree is exhausted)
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Optional, TYPE_CHECKING
import time

from tabletop_ai.mcts.config import MCTSConfig, BudgetType
from tabletop_ai.utils.logging import get_logger

if TYPE_CHECKING:
    from tabletop_ai.mcts.node import SearchTree

logger = get_logger(__name__)


class BudgetController(ABC):
    """Decides, at iteration boundaries, whether a search should stop."""

    def __init__(self):
        self.stop_reason: Optional[str] = None

    def start(self, tree: SearchTree) -> None:
        """Called once before the first iteration."""
        self.stop_reason = None

    @abstractmethod
    def should_stop(self, tree: SearchTree, iterations: int) -> bool:
        """
        Check the budget after an iteration.

        Args:
            tree: The tree being searched
            iterations: Number of iterations completed so far

        Returns:
            True if no further iteration should be started
        """

    def _stop(self, reason: str) -> bool:
        self.stop_reason = reason
        logger.debug("Budget exhausted: %s", reason)
        return True


class TimeBudget(BudgetController):
    """
    Stops when the remaining time is at most twice the average iteration
    time, or at most the safety margin.
    """

    def __init__(
        self,
        limit: float,
        safety_margin: float = 0.01,
        clock: Callable[[], float] = time.perf_counter,
    ):
        super().__init__()
        self.limit = limit
        self.safety_margin = safety_margin
        self.clock = clock
        self.start_time = 0.0

    def start(self, tree: SearchTree) -> None:
        super().start(tree)
        self.start_time = self.clock()

    def elapsed(self) -> float:
        return self.clock() - self.start_time

    def should_stop(self, tree: SearchTree, iterations: int) -> bool:
        elapsed = self.elapsed()
        remaining = self.limit - elapsed
        average = elapsed / max(1, iterations)

        if remaining <= 2 * average:
            return self._stop(
                f"{remaining:.4f}s left, average iteration takes {average:.4f}s"
            )
        if remaining <= self.safety_margin:
            return self._stop(f"{remaining:.4f}s left, within safety margin")
        return False


class IterationBudget(BudgetController):
    """Stops once a fixed number of iterations has completed."""

    def __init__(self, limit: int):
        super().__init__()
        self.limit = int(limit)

    def should_stop(self, tree: SearchTree, iterations: int) -> bool:
        if iterations >= self.limit:
            return self._stop(f"{iterations} iterations completed")
        return False


class ForwardModelCallBudget(BudgetController):
    """
    Stops once the tree's forward model call counter exceeds the limit, or
    when the counter did not move since the previous check.
    """

    def __init__(self, limit: float):
        super().__init__()
        self.limit = limit
        self._last_calls = 0

    def start(self, tree: SearchTree) -> None:
        super().start(tree)
        self._last_calls = tree.fm_calls

    def should_stop(self, tree: SearchTree, iterations: int) -> bool:
        calls = tree.fm_calls
        if calls > self.limit:
            return self._stop(f"{calls} forward model calls made")
        if calls == self._last_calls:
            return self._stop("no forward model calls since last check, tree exhausted")
        self._last_calls = calls
        return False


def create_budget(config: MCTSConfig) -> BudgetController:
    """
    Create the budget controller described by a configuration.

    Args:
        config: MCTS configuration

    Returns:
        A fresh budget controller
    """
    if config.budget_type is BudgetType.TIME:
        clock = time.process_time if config.use_cpu_time else time.perf_counter
        return TimeBudget(config.budget, config.time_safety_margin, clock)
    elif config.budget_type is BudgetType.ITERATIONS:
        return IterationBudget(int(config.budget))
    elif config.budget_type is BudgetType.FM_CALLS:
        return ForwardModelCallBudget(config.budget)
    raise ValueError(f"Unknown budget type: {config.budget_type}")
