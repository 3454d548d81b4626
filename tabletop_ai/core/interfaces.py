"""
Interfaces between the search core and a game engine.

The search never looks inside game states or actions. Everything it needs
goes through a ForwardModel (legality, transitions, terminal checks) and a
StateHeuristic (scoring a state from one player's point of view).
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Hashable, List, Sequence
import copy


class ForwardModel(ABC):
    """
    Capability interface of a game engine.

    Implementations must be deterministic for fixed inputs, unless the game
    itself models chance. `advance` may either mutate the given state and
    return it, or return a new state; callers always use the return value
    and only ever pass a state they own.
    """

    @abstractmethod
    def is_terminal(self, state: Any) -> bool:
        """Whether the game is over in this state."""

    @abstractmethod
    def legal_actions(self, state: Any) -> Sequence[Hashable]:
        """Legal actions for the player to move, in a deterministic order."""

    @abstractmethod
    def advance(self, state: Any, action: Hashable) -> Any:
        """Apply an action and return the resulting state."""

    @abstractmethod
    def current_player(self, state: Any) -> int:
        """ID of the player to move."""

    def copy_state(self, state: Any) -> Any:
        """Return an independent copy of a state."""
        return copy.deepcopy(state)

    def player_scores(self, state: Any) -> List[float]:
        """
        Current score of every player, indexed by player ID.

        Optional; only needed by score-based heuristics and the game runner.
        """
        raise NotImplementedError(f"{type(self).__name__} does not report scores")

    def winner(self, state: Any) -> Any:
        """Winning player ID in a terminal state, or None for a draw/unknown."""
        return None


class StateHeuristic(ABC):
    """
    Scores a state from the point of view of one player.

    Values must be finite and should lie in [min_value(), max_value()].
    """

    @abstractmethod
    def evaluate_state(self, state: Any, player_id: int) -> float:
        """Score `state` for `player_id`."""

    def min_value(self) -> float:
        return -1.0

    def max_value(self) -> float:
        return 1.0

    def __call__(self, state: Any, player_id: int) -> float:
        return self.evaluate_state(state, player_id)
