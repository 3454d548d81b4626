"""
Nim for two players.

Each move removes between one and `max_take` objects from a single heap
(any number when `max_take` is None). The player who takes the last object
wins. States are immutable; `advance` returns a new state.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from tabletop_ai.core.interfaces import ForwardModel, StateHeuristic


@dataclass(frozen=True)
class NimAction:
    """Remove `count` objects from heap number `heap`."""
    heap: int
    count: int

    def __str__(self) -> str:
        return f"take {self.count} from heap {self.heap}"


@dataclass(frozen=True)
class NimState:
    heaps: Tuple[int, ...]
    current_player: int = 0
    last_player: Optional[int] = None  # Player who made the previous move

    def __str__(self) -> str:
        heaps = " ".join(str(h) for h in self.heaps)
        return f"Nim[{heaps}] player {self.current_player} to move"


def initial_state(heaps: Sequence[int] = (3, 4, 5)) -> NimState:
    if any(h < 0 for h in heaps):
        raise ValueError("heap sizes must be non-negative")
    return NimState(heaps=tuple(heaps))


class NimForwardModel(ForwardModel):
    """Rules of (optionally bounded) normal-play Nim."""

    def __init__(self, max_take: Optional[int] = None):
        if max_take is not None and max_take <= 0:
            raise ValueError("max_take must be positive or None")
        self.max_take = max_take

    def is_terminal(self, state: NimState) -> bool:
        return sum(state.heaps) == 0

    def legal_actions(self, state: NimState) -> List[NimAction]:
        actions = []
        for heap, size in enumerate(state.heaps):
            limit = size if self.max_take is None else min(size, self.max_take)
            for count in range(1, limit + 1):
                actions.append(NimAction(heap, count))
        return actions

    def advance(self, state: NimState, action: NimAction) -> NimState:
        if not 1 <= action.count <= state.heaps[action.heap]:
            raise ValueError(f"Illegal move {action} in {state}")
        heaps = list(state.heaps)
        heaps[action.heap] -= action.count
        return NimState(
            heaps=tuple(heaps),
            current_player=1 - state.current_player,
            last_player=state.current_player,
        )

    def current_player(self, state: NimState) -> int:
        return state.current_player

    def copy_state(self, state: NimState) -> NimState:
        # Immutable
        return state

    def winner(self, state: NimState) -> Optional[int]:
        if not self.is_terminal(state):
            return None
        return state.last_player

    def player_scores(self, state: NimState) -> List[float]:
        winner = self.winner(state)
        return [1.0 if winner == player else 0.0 for player in range(2)]

    def grundy_value(self, state: NimState) -> int:
        """Nim-sum of the heaps; non-zero means the player to move can force a win."""
        value = 0
        for size in state.heaps:
            value ^= size if self.max_take is None else size % (self.max_take + 1)
        return value


class NimSumHeuristic(StateHeuristic):
    """
    Exact result at terminal states (+1/-1), and +/-0.5 elsewhere depending
    on whether the player to move is in a winning position.
    """

    def __init__(self, forward_model: NimForwardModel):
        self.forward_model = forward_model

    def evaluate_state(self, state: NimState, player_id: int) -> float:
        if self.forward_model.is_terminal(state):
            return 1.0 if self.forward_model.winner(state) == player_id else -1.0

        mover_wins = self.forward_model.grundy_value(state) != 0
        if state.current_player == player_id:
            return 0.5 if mover_wins else -0.5
        return -0.5 if mover_wins else 0.5
