"""
Configuration for Monte Carlo Tree Search (MCTS).

This module defines the configuration parameters for the MCTS algorithm,
including the exploration constant, rollout settings and the budget that
decides when a search stops.
"""
from dataclasses import dataclass, fields
from enum import Enum
from typing import Optional, Literal
import math


class BudgetType(Enum):
    """Resource that limits a search."""
    TIME = "time"                 # Seconds of wall-clock (or CPU) time
    ITERATIONS = "iterations"     # Completed select/expand/simulate/backprop cycles
    FM_CALLS = "fm_calls"         # Calls to the forward model's advance()


@dataclass
class MCTSConfig:
    """
    Configuration parameters for Monte Carlo Tree Search.

    This class defines all tunable parameters for the MCTS algorithm,
    with validation and sensible defaults.
    """
    # Tree policy
    exploration_weight: float = math.sqrt(2)
    """UCB1 exploration parameter (default is sqrt(2))"""

    max_tree_depth: int = 100
    """Maximum depth the selection phase descends to"""

    epsilon: float = 1e-6
    """Magnitude of the noise used to break ties between equal scores"""

    # Default policy
    rollout_length: int = 10
    """Maximum number of random actions played in a rollout"""

    discount_factor: float = 1.0
    """Rollout values are multiplied by discount_factor ** steps"""

    # Budget
    budget_type: BudgetType = BudgetType.ITERATIONS
    """Resource that limits the search"""

    budget: float = 1000
    """Limit for budget_type: seconds, iterations or forward model calls"""

    time_safety_margin: float = 0.01
    """Seconds kept in reserve when budget_type is TIME"""

    use_cpu_time: bool = False
    """Measure process CPU time instead of wall-clock time"""

    # Final move
    final_selection: Literal["ucb", "visits"] = "ucb"
    """How the root action is chosen after search ('ucb' score or most 'visits')"""

    seed: Optional[int] = None
    """Seed of the random source (None = fresh entropy)"""

    def __post_init__(self):
        """Validate configuration parameters."""
        if isinstance(self.budget_type, str):
            self.budget_type = BudgetType(self.budget_type)

        if self.exploration_weight < 0:
            raise ValueError("exploration_weight must be non-negative")

        if self.max_tree_depth <= 0:
            raise ValueError("max_tree_depth must be positive")

        if self.epsilon <= 0:
            raise ValueError("epsilon must be positive")

        if self.rollout_length < 0:
            raise ValueError("rollout_length must be non-negative")

        if not 0.0 <= self.discount_factor <= 1.0:
            raise ValueError("discount_factor must be between 0 and 1")

        if self.budget <= 0:
            raise ValueError("budget must be positive")

        if self.budget_type is BudgetType.ITERATIONS and int(self.budget) != self.budget:
            raise ValueError("an iteration budget must be a whole number")

        if self.time_safety_margin < 0:
            raise ValueError("time_safety_margin must be non-negative")

        if self.final_selection not in ["ucb", "visits"]:
            raise ValueError("final_selection must be 'ucb' or 'visits'")

    @classmethod
    def default(cls) -> 'MCTSConfig':
        """
        Get the default configuration.

        Returns:
            Default MCTSConfig object
        """
        return cls()

    @classmethod
    def fast(cls) -> 'MCTSConfig':
        """
        Get a configuration optimized for speed (fewer iterations).

        Returns:
            Fast MCTSConfig object
        """
        return cls(
            budget_type=BudgetType.ITERATIONS,
            budget=100,
            rollout_length=5,
        )

    @classmethod
    def deep(cls) -> 'MCTSConfig':
        """
        Get a configuration optimized for deep search.

        Returns:
            Deep MCTSConfig object
        """
        return cls(
            budget_type=BudgetType.ITERATIONS,
            budget=5000,
            exploration_weight=1.2,  # Slightly less exploration
            max_tree_depth=200,
            rollout_length=30,
        )

    @classmethod
    def timed(cls, seconds: float) -> 'MCTSConfig':
        """
        Get a configuration that searches for a fixed amount of time.

        Args:
            seconds: Time budget per decision

        Returns:
            Time-limited MCTSConfig object
        """
        return cls(budget_type=BudgetType.TIME, budget=seconds)

    @classmethod
    def from_dict(cls, config_dict: dict) -> 'MCTSConfig':
        """
        Create a configuration from a dictionary.

        Args:
            config_dict: Dictionary of configuration parameters

        Returns:
            MCTSConfig object
        """
        # Filter out any keys that aren't valid parameters
        valid_params = {k: v for k, v in config_dict.items()
                       if k in cls.__dataclass_fields__}
        return cls(**valid_params)

    def to_dict(self) -> dict:
        """
        Convert the configuration to a dictionary.

        Enum values are stored by value so the result is JSON serializable.

        Returns:
            Dictionary of configuration parameters
        """
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = value.value if isinstance(value, Enum) else value
        return result

    def __str__(self) -> str:
        params = [f"{name}={value}" for name, value in self.to_dict().items()]
        return f"MCTSConfig({', '.join(params)})"
