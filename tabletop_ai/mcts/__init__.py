"""
Monte Carlo Tree Search (MCTS) implementation.

This package provides a game-agnostic MCTS agent. The MCTS algorithm works by:

1. Selection: Starting from the root node, select child nodes using UCB1 while
   nodes are fully expanded, non-terminal and above the depth limit.
2. Expansion: Create a new child node by taking a random untried action.
3. Simulation: From the new node, play random actions for a bounded number of
   steps and score the reached state with a heuristic.
4. Backpropagation: Add the result to every node on the path to the root.

Rewards are stored from the searching player's point of view; UCB1 flips
their sign at nodes where another player is to move. The search stops when
its time, iteration or forward model call budget is exhausted.
"""

from tabletop_ai.mcts.node import MCTSNode, SearchTree
from tabletop_ai.mcts.agent import MCTSAgent, MCTSAgentFactory
from tabletop_ai.mcts.budget import (
    BudgetController,
    TimeBudget,
    IterationBudget,
    ForwardModelCallBudget,
    create_budget
)
from tabletop_ai.mcts.search import (
    mcts_search,
    run_search,
    run_iteration,
    select_node,
    expand_node,
    simulate_game,
    backpropagate,
    best_action
)
from tabletop_ai.mcts.config import MCTSConfig, BudgetType

# Default configuration
DEFAULT_CONFIG = MCTSConfig(
    budget_type=BudgetType.ITERATIONS,
    budget=1000,               # Number of MCTS iterations per move
    exploration_weight=1.41,   # UCB1 exploration parameter (sqrt(2))
    rollout_length=10,         # Maximum random actions per rollout
    max_tree_depth=100,        # Maximum depth of the selection phase
)

__all__ = [
    'MCTSAgent',
    'MCTSAgentFactory',
    'MCTSNode',
    'SearchTree',
    'MCTSConfig',
    'BudgetType',
    'BudgetController',
    'TimeBudget',
    'IterationBudget',
    'ForwardModelCallBudget',
    'create_budget',
    'mcts_search',
    'run_search',
    'run_iteration',
    'select_node',
    'expand_node',
    'simulate_game',
    'backpropagate',
    'best_action',
    'DEFAULT_CONFIG'
]
