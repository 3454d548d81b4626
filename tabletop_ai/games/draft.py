"""
A card-draft scoring game for two or more players.

A row of valued cards lies face up. Players take turns picking one card from
the row and add its value to their score (some cards are worth negative
points). The game ends when the row is empty; the highest score wins.

States are mutable; `advance` updates the state in place and returns it.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from tabletop_ai.core.interfaces import ForwardModel


@dataclass
class DraftState:
    row: List[int] = field(default_factory=list)
    scores: List[int] = field(default_factory=list)
    current_player: int = 0
    turn_count: int = 0

    @property
    def num_players(self) -> int:
        return len(self.scores)

    def clone(self) -> DraftState:
        return DraftState(
            row=list(self.row),
            scores=list(self.scores),
            current_player=self.current_player,
            turn_count=self.turn_count,
        )

    def __str__(self) -> str:
        return (f"Draft(row={self.row}, scores={self.scores}, "
                f"player {self.current_player} to move)")


def initial_state(
    num_players: int = 2,
    num_cards: int = 12,
    min_value: int = -3,
    max_value: int = 10,
    seed: Optional[int] = None,
) -> DraftState:
    """
    Deal a random row of cards.

    Args:
        num_players: Number of players (at least 2)
        num_cards: Number of cards in the row
        min_value: Lowest card value
        max_value: Highest card value
        seed: Seed for the deal

    Returns:
        Initial DraftState
    """
    if num_players < 2:
        raise ValueError("num_players must be at least 2")
    if num_cards < 0:
        raise ValueError("num_cards must be non-negative")
    if min_value > max_value:
        raise ValueError("min_value must not exceed max_value")

    rng = np.random.default_rng(seed)
    row = [int(v) for v in rng.integers(min_value, max_value + 1, size=num_cards)]
    return DraftState(row=row, scores=[0] * num_players)


class DraftForwardModel(ForwardModel):
    """Rules of the card-draft game."""

    def is_terminal(self, state: DraftState) -> bool:
        return not state.row

    def legal_actions(self, state: DraftState) -> List[int]:
        # Cards of equal value are interchangeable
        return sorted(set(state.row), reverse=True)

    def advance(self, state: DraftState, action: int) -> DraftState:
        if action not in state.row:
            raise ValueError(f"No card worth {action} in the row")
        state.row.remove(action)
        state.scores[state.current_player] += action
        state.current_player = (state.current_player + 1) % state.num_players
        state.turn_count += 1
        return state

    def current_player(self, state: DraftState) -> int:
        return state.current_player

    def copy_state(self, state: DraftState) -> DraftState:
        return state.clone()

    def player_scores(self, state: DraftState) -> List[float]:
        return [float(s) for s in state.scores]

    def winner(self, state: DraftState) -> Optional[int]:
        if not self.is_terminal(state):
            return None
        best = max(state.scores)
        leaders = [i for i, s in enumerate(state.scores) if s == best]
        return leaders[0] if len(leaders) == 1 else None
