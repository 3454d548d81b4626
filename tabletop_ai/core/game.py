"""
Game flow management.

This module defines Game, a turn loop over any ForwardModel. Agents are
registered per player as callbacks; the game asks the player to move for an
action, checks it is legal and applies it.
"""
from __future__ import annotations
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple
import time

from tabletop_ai.core.interfaces import ForwardModel
from tabletop_ai.utils.logging import get_logger

logger = get_logger(__name__)

AgentCallback = Callable[[Any, int], Hashable]


class Game:
    """
    Manager for game flow.

    The game owns its current state; agents only ever receive it to read
    (the search copies states before advancing them).
    """

    def __init__(self, forward_model: ForwardModel, initial_state: Any):
        """
        Initialize a game.

        Args:
            forward_model: Rules of the game
            initial_state: Starting state (copied, never modified)
        """
        self.forward_model = forward_model
        self.initial_state = initial_state
        self.state = forward_model.copy_state(initial_state)
        self.turn_count = 0
        self.history: List[Tuple[int, Hashable]] = []  # (player_id, action)
        self.start_time = time.time()

        self.agent_callbacks: Dict[int, AgentCallback] = {}

    @property
    def game_over(self) -> bool:
        return self.forward_model.is_terminal(self.state)

    def reset(self) -> Any:
        """
        Reset the game to a copy of the initial state.

        Returns:
            New game state
        """
        self.state = self.forward_model.copy_state(self.initial_state)
        self.turn_count = 0
        self.history = []
        self.start_time = time.time()
        return self.state

    def register_agent(self, player_id: int, agent_callback: AgentCallback) -> None:
        """
        Register an agent for a player.

        The agent callback should take a game state and player ID and return an action.

        Args:
            player_id: ID of the player
            agent_callback: Function that selects an action given the game state
        """
        self.agent_callbacks[player_id] = agent_callback

    def step(self, action: Optional[Hashable] = None) -> Tuple[Any, bool]:
        """
        Advance the game by one action.

        If no action is provided, the agent registered for the player to move
        chooses one.

        Args:
            action: Optional action to apply

        Returns:
            Tuple of (new game state, whether the game is over)
        """
        if self.game_over:
            return self.state, True

        current_player = self.forward_model.current_player(self.state)

        if action is None and current_player in self.agent_callbacks:
            action = self.agent_callbacks[current_player](self.state, current_player)

        if action is None:
            raise ValueError("No action provided and no agent callback registered for current player")

        if action not in self.forward_model.legal_actions(self.state):
            raise ValueError(f"Invalid action {action!r} for player {current_player}")

        self.state = self.forward_model.advance(self.state, action)
        self.history.append((current_player, action))
        self.turn_count += 1
        logger.debug("Turn %d: player %d played %s", self.turn_count, current_player, action)

        return self.state, self.game_over

    def run_game(self, max_turns: int = 1000) -> Any:
        """
        Run the game until completion or max turns.

        Every player to move must have an agent callback registered.

        Args:
            max_turns: Maximum number of turns to run

        Returns:
            Final game state
        """
        while not self.game_over and self.turn_count < max_turns:
            current_player = self.forward_model.current_player(self.state)
            if current_player not in self.agent_callbacks:
                raise ValueError(f"No agent callback registered for player {current_player}")
            self.step()

        return self.state

    def get_winner(self) -> Optional[int]:
        """
        Get the ID of the winning player, if any.

        Returns:
            ID of the winning player, or None if the game is not over or ended in a draw
        """
        if not self.game_over:
            return None
        return self.forward_model.winner(self.state)

    def get_scores(self) -> List[float]:
        return list(self.forward_model.player_scores(self.state))

    def get_game_statistics(self) -> Dict[str, Any]:
        """
        Get statistics about the game.

        Returns:
            Dictionary of game statistics
        """
        stats: Dict[str, Any] = {
            "turns": self.turn_count,
            "duration": time.time() - self.start_time,
            "game_over": self.game_over,
        }
        if self.game_over:
            stats["winner"] = self.get_winner()
        try:
            stats["scores"] = self.get_scores()
        except NotImplementedError:
            pass
        return stats
