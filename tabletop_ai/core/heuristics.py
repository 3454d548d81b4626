"""
Generic state heuristics.

These heuristics only rely on the optional score/winner queries of a
ForwardModel, so they work for any game that reports them.
"""
from __future__ import annotations
from typing import Any, Optional
import math

from tabletop_ai.core.interfaces import ForwardModel, StateHeuristic
from tabletop_ai.core.exceptions import NonFiniteHeuristicError


class RelativeScoreHeuristic(StateHeuristic):
    """
    Player score relative to the spread of all scores, mapped to [-1, 1).

    The leader scores close to 1, the last player scores -1. The +1 in the
    denominator keeps the value defined when every player has the same score.
    """

    def __init__(self, forward_model: ForwardModel):
        self.forward_model = forward_model

    def evaluate_state(self, state: Any, player_id: int) -> float:
        scores = self.forward_model.player_scores(state)
        player_score = scores[player_id]
        max_score = max(scores)
        min_score = min(scores)

        relative = (player_score - min_score) / float(max_score - min_score + 1)
        return 2 * relative - 1


class WinLossHeuristic(StateHeuristic):
    """
    +1 for a win, -1 for a loss and 0 for a draw in terminal states.

    Non-terminal states are delegated to `fallback`, or scored 0 without one.
    """

    def __init__(self, forward_model: ForwardModel, fallback: Optional[StateHeuristic] = None):
        self.forward_model = forward_model
        self.fallback = fallback

    def evaluate_state(self, state: Any, player_id: int) -> float:
        if self.forward_model.is_terminal(state):
            winner = self.forward_model.winner(state)
            if winner is None:
                return 0.0
            return self.max_value() if winner == player_id else self.min_value()

        if self.fallback is not None:
            return self.fallback.evaluate_state(state, player_id)
        return 0.0


def evaluate_checked(heuristic: StateHeuristic, state: Any, player_id: int) -> float:
    """
    Evaluate a heuristic and reject non-finite results.

    Raises:
        NonFiniteHeuristicError: if the heuristic returned NaN or +/-inf
    """
    value = float(heuristic(state, player_id))
    if not math.isfinite(value):
        raise NonFiniteHeuristicError(value, player_id)
    return value
