"""
Monte Carlo Tree Search agent.

This module provides the MCTSAgent class, a ready-to-use player that uses
Monte Carlo Tree Search to select actions in any game exposed through a
ForwardModel. The agent can be configured with different parameters and
provides statistics about its search process.
"""
from typing import Any, Callable, Dict, List, Optional, Tuple
import json
import time

import numpy as np

from tabletop_ai.core.interfaces import ForwardModel, StateHeuristic
from tabletop_ai.core.game import Game
from tabletop_ai.mcts.node import SearchTree, Action
from tabletop_ai.mcts.config import MCTSConfig, BudgetType
from tabletop_ai.mcts.search import (
    run_search, get_action_statistics, get_principal_variation
)
from tabletop_ai.utils.logging import get_logger

logger = get_logger(__name__)


class MCTSAgent:
    """
    Monte Carlo Tree Search agent.

    Every decision builds a fresh search tree. Decisions are seeded from an
    agent-level generator, so an agent created with a fixed config.seed
    plays the same sequence of moves against the same opponent.
    """

    def __init__(
        self,
        forward_model: ForwardModel,
        heuristic: StateHeuristic,
        config: Optional[MCTSConfig] = None,
        name: str = "MCTS Agent",
        verbose: bool = False
    ):
        """
        Initialize an MCTS agent.

        Args:
            forward_model: Game engine used for look-ahead
            heuristic: Scores rollout end states
            config: MCTS configuration parameters
            name: Name of the agent
            verbose: Whether to log detailed information after each search
        """
        self.forward_model = forward_model
        self.heuristic = heuristic
        self.config = config or MCTSConfig()
        self.name = name
        self.verbose = verbose

        self._rng = np.random.default_rng(self.config.seed)

        # Statistics from the most recent search
        self.last_stats: Dict[str, Any] = {}

        # History of all actions and their statistics
        self.action_history: List[Tuple[Action, Dict[str, Any]]] = []

        # Tree of the last search
        self.last_tree: Optional[SearchTree] = None

    def select_action(self, state: Any, player_id: int) -> Action:
        """
        Select an action using Monte Carlo Tree Search.

        Args:
            state: Current game state
            player_id: ID of the player making the decision

        Returns:
            Selected action
        """
        if self.forward_model.current_player(state) != player_id:
            raise ValueError(f"Not player {player_id}'s turn")

        # If there's only one valid action, no need to search
        valid_actions = self.forward_model.legal_actions(state)
        if len(valid_actions) == 1:
            self.last_stats = {"iterations": 0, "forced_move": True}
            self.last_tree = None
            return valid_actions[0]

        rng = np.random.default_rng(int(self._rng.integers(2**32)))
        tree = SearchTree(state, player_id, self.forward_model, self.heuristic, self.config, rng)

        start_time = time.time()
        action, stats = run_search(tree)
        stats["total_time"] = time.time() - start_time

        self.last_stats = stats
        self.last_tree = tree
        self.action_history.append((action, stats))

        if self.verbose:
            self._log_search_info(action, stats)

        return action

    def _log_search_info(self, action: Action, stats: Dict[str, Any]) -> None:
        """
        Log information about the search.

        Args:
            action: Selected action
            stats: Search statistics
        """
        logger.info("%s selected: %s", self.name, action)
        logger.info(
            "Iterations: %d, time: %.3fs (%.1f it/s), nodes: %d, max depth: %d, stop: %s",
            stats['iterations'], stats['time_elapsed'], stats['iterations_per_second'],
            stats['node_count'], stats['max_depth'], stats['stop_reason'],
        )

        actions_by_visits = sorted(
            stats['action_visits'].items(),
            key=lambda x: x[1],
            reverse=True
        )
        for i, (action_str, visits) in enumerate(actions_by_visits[:5]):
            value = stats['action_rewards'].get(action_str)
            logger.info("%d. %s - %d visits, %s value", i + 1, action_str, visits,
                        "n/a" if value is None else f"{value:.3f}")

    def get_action_callback(self) -> Callable[[Any, int], Action]:
        """
        Get a callback function for selecting actions.

        This is useful for registering the agent with a Game object.

        Returns:
            Callback function that takes a game state and player ID and returns an action
        """
        return lambda state, player_id: self.select_action(state, player_id)

    def register_with_game(self, game: Game, player_id: int) -> None:
        """
        Register this agent with a game.

        Args:
            game: Game object
            player_id: ID of the player to register as
        """
        game.register_agent(player_id, self.get_action_callback())

    def get_last_statistics(self) -> Dict[str, Any]:
        return self.last_stats

    def get_principal_variation(self) -> List[Tuple[Action, float]]:
        """
        Get the principal variation (most visited path) from the last search.

        Returns:
            List of (action, value) pairs representing the principal variation
        """
        if self.last_tree is None:
            return []

        return get_principal_variation(self.last_tree.root)

    def get_action_statistics(self) -> Dict[str, Dict[str, Any]]:
        """
        Get statistics for all actions from the last search.

        Returns:
            Dictionary mapping action strings to statistics
        """
        if self.last_tree is None:
            return {}

        return get_action_statistics(self.last_tree.root)

    def reset_statistics(self) -> None:
        """Reset all statistics."""
        self.last_stats = {}
        self.action_history = []
        self.last_tree = None

    def save_statistics(self, filename: str) -> None:
        """
        Save statistics to a file.

        Args:
            filename: Name of the file to save to
        """
        # Convert actions to strings for JSON serialization
        history = []
        for action, stats in self.action_history:
            history.append({
                "action": str(action),
                "stats": {k: v for k, v in stats.items() if not isinstance(v, dict)}
            })

        data = {
            "agent_name": self.name,
            "config": self.config.to_dict(),
            "history": history,
            "total_actions": len(self.action_history)
        }

        with open(filename, 'w') as f:
            json.dump(data, f, indent=2)

    def __str__(self) -> str:
        return f"{self.name} (MCTS, {self.config.budget_type.value} budget {self.config.budget:g})"


class MCTSAgentFactory:
    """
    Factory for creating MCTS agents with different configurations.

    This class provides methods for creating MCTS agents with different
    strengths for one game.
    """

    @staticmethod
    def create_fast(forward_model: ForwardModel, heuristic: StateHeuristic) -> MCTSAgent:
        """Create a fast MCTS agent with few iterations."""
        return MCTSAgent(forward_model, heuristic, MCTSConfig.fast(), name="Fast MCTS")

    @staticmethod
    def create_standard(forward_model: ForwardModel, heuristic: StateHeuristic) -> MCTSAgent:
        """Create a standard MCTS agent with balanced parameters."""
        return MCTSAgent(forward_model, heuristic, MCTSConfig.default(), name="Standard MCTS")

    @staticmethod
    def create_strong(forward_model: ForwardModel, heuristic: StateHeuristic) -> MCTSAgent:
        """Create a strong MCTS agent with more iterations."""
        return MCTSAgent(forward_model, heuristic, MCTSConfig.deep(), name="Strong MCTS")

    @staticmethod
    def create_custom(
        forward_model: ForwardModel,
        heuristic: StateHeuristic,
        budget_type: BudgetType = BudgetType.ITERATIONS,
        budget: float = 1000,
        exploration_weight: float = 1.41,
        rollout_length: int = 10,
        seed: Optional[int] = None,
        name: str = "Custom MCTS"
    ) -> MCTSAgent:
        """
        Create a custom MCTS agent.

        Args:
            forward_model: Game engine used for look-ahead
            heuristic: Scores rollout end states
            budget_type: Resource that limits each search
            budget: Limit for budget_type
            exploration_weight: UCB1 exploration parameter
            rollout_length: Maximum rollout length
            seed: Seed of the agent's random source
            name: Name of the agent

        Returns:
            MCTSAgent
        """
        config = MCTSConfig(
            budget_type=budget_type,
            budget=budget,
            exploration_weight=exploration_weight,
            rollout_length=rollout_length,
            seed=seed,
        )
        return MCTSAgent(forward_model, heuristic, config, name=name)
