"""
Baseline agents.
"""
from typing import Any, Callable, Hashable, Optional

import numpy as np

from tabletop_ai.core.interfaces import ForwardModel


class RandomAgent:
    """Agent that picks uniformly among the legal actions."""

    def __init__(self, forward_model: ForwardModel, seed: Optional[int] = None, name: str = "Random Agent"):
        self.forward_model = forward_model
        self.name = name
        self._rng = np.random.default_rng(seed)

    def select_action(self, state: Any, player_id: int) -> Hashable:
        valid_actions = self.forward_model.legal_actions(state)
        if not valid_actions:
            raise ValueError(f"No valid actions for player {player_id}")
        return valid_actions[int(self._rng.integers(len(valid_actions)))]

    def get_action_callback(self) -> Callable[[Any, int], Hashable]:
        return lambda state, player_id: self.select_action(state, player_id)

    def __str__(self) -> str:
        return self.name
