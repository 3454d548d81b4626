"""
Monte Carlo Tree Search (MCTS) algorithm.

This module implements the core MCTS algorithm with the four standard phases:
1. Selection: Descend the tree with UCB1 while nodes are fully expanded
2. Expansion: Create a new child node for an untried action
3. Simulation: Run a bounded random playout to estimate the node's value
4. Backpropagation: Update statistics from the simulated node up to the root

Iterations repeat until the configured budget controller says stop, then
the action selector turns the root's child statistics into one action.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import time

import numpy as np

from tabletop_ai.core.interfaces import ForwardModel, StateHeuristic
from tabletop_ai.core.exceptions import NoExpandedChildError
from tabletop_ai.mcts.node import MCTSNode, SearchTree, Action, noise
from tabletop_ai.mcts.config import MCTSConfig
from tabletop_ai.mcts.budget import BudgetController, create_budget
from tabletop_ai.utils.logging import get_logger

logger = get_logger(__name__)


def mcts_search(
    state: Any,
    player_id: int,
    forward_model: ForwardModel,
    heuristic: StateHeuristic,
    config: Optional[MCTSConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[Action, Dict[str, Any]]:
    """
    Run Monte Carlo Tree Search to find the best action.

    Args:
        state: Current game state (not modified)
        player_id: ID of the player making the decision
        forward_model: Game engine
        heuristic: Scores rollout end states for player_id
        config: MCTS configuration parameters
        rng: Random generator (defaults to one seeded with config.seed)

    Returns:
        Tuple of (best action, search statistics)

    Raises:
        ContractViolationError: if the forward model or heuristic breaks its contract
    """
    tree = SearchTree(state, player_id, forward_model, heuristic, config, rng)
    return run_search(tree)


def run_search(
    tree: SearchTree,
    budget: Optional[BudgetController] = None,
) -> Tuple[Action, Dict[str, Any]]:
    """
    Run iterations on an existing tree until the budget is exhausted.

    At least one iteration is always run.

    Args:
        tree: Search tree rooted at the decision state
        budget: Budget controller (defaults to the one described by tree.config)

    Returns:
        Tuple of (best action, search statistics)
    """
    if budget is None:
        budget = create_budget(tree.config)

    start_time = time.time()
    budget.start(tree)

    iterations = 0
    while True:
        run_iteration(tree)
        iterations += 1
        if budget.should_stop(tree, iterations):
            break

    action = best_action(tree)

    stats: Dict[str, Any] = {
        "iterations": iterations,
        "stop_reason": budget.stop_reason,
        "fm_calls": tree.fm_calls,
        "node_count": len(tree),
        "max_depth": tree.max_depth(),
        "time_elapsed": time.time() - start_time,
        "action_visits": {},
        "action_rewards": {},
    }
    stats["iterations_per_second"] = iterations / max(0.001, stats["time_elapsed"])
    stats["average_simulation_steps"] = tree.rollout_steps / iterations

    # Record statistics about each action
    for child in tree.root.children:
        action_str = str(child.action)
        stats["action_visits"][action_str] = child.visits
        stats["action_rewards"][action_str] = child.mean_value()

    logger.debug(
        "Search finished after %d iterations (%s): %d nodes, %d forward model calls, chose %s",
        iterations, budget.stop_reason, stats["node_count"], tree.fm_calls, action,
    )
    return action, stats


def run_iteration(tree: SearchTree) -> MCTSNode:
    """
    Run one selection, expansion, simulation and backpropagation cycle.

    Args:
        tree: Search tree

    Returns:
        The node the simulation was run from
    """
    node = select_node(tree)

    # Terminal nodes are never expanded
    if not node.is_terminal():
        node = expand_node(tree, node)

    reward = simulate_game(tree, node)
    backpropagate(node, reward)
    return node


def select_node(tree: SearchTree) -> MCTSNode:
    """
    Descend from the root to the frontier node.

    The descent stops at a terminal node, at the maximum tree depth, or at
    the first node that still has untried actions.

    Args:
        tree: Search tree

    Returns:
        Frontier node
    """
    current = tree.root
    while (not current.is_terminal()
           and current.depth < tree.config.max_tree_depth
           and not current.has_untried_actions()):
        current = current.select_child(tree.rng)
    return current


def expand_node(tree: SearchTree, node: MCTSNode) -> MCTSNode:
    """
    Expand a node by adding a child.

    Returns:
        New child node, or `node` itself if it has no untried action
    """
    return node.expand(tree.forward_model, tree.rng)


def simulate_game(tree: SearchTree, node: MCTSNode) -> float:
    """
    Run a rollout from a node with the tree's configuration.

    Returns:
        Discounted value of the rollout for the searching player
    """
    config = tree.config
    return node.simulate(
        tree.forward_model,
        tree.heuristic,
        tree.rng,
        config.rollout_length,
        config.discount_factor,
    )


def backpropagate(node: MCTSNode, reward: float) -> None:
    """
    Update statistics up the tree.

    Every node from `node` to the root (inclusive) gains one visit and
    `reward`, unmodified.
    """
    node.backpropagate(reward)


def best_action(tree: SearchTree) -> Action:
    """
    Choose the action to play after search.

    With final_selection == "ucb" the root's children are compared with the
    same perspective-aware UCB1 score used during selection; with "visits"
    the most visited child wins. Either way ties are broken with noise from
    the tree's generator.

    Raises:
        NoExpandedChildError: if the root has no expanded child
    """
    root = tree.root
    config = tree.config

    best: Optional[Action] = None
    best_value = 0.0
    for child in root.children:
        if config.final_selection == "visits":
            score = float(child.visits)
        else:
            score = root.ucb_score(child)
        value = noise(score, config.epsilon, tree.rng.random())
        if best is None or value > best_value:
            best = child.action
            best_value = value

    if best is None:
        raise NoExpandedChildError()
    return best


def count_nodes(node: MCTSNode) -> int:
    """
    Count the nodes in the subtree rooted at `node`.

    Args:
        node: Root of the subtree

    Returns:
        Total number of nodes
    """
    count = 1  # Count this node
    for child in node.children:
        count += count_nodes(child)
    return count


def get_principal_variation(root: MCTSNode, max_depth: int = 10) -> List[Tuple[Action, float]]:
    """
    Get the principal variation (most visited path) from the root.

    This is useful for analysis and debugging.

    Args:
        root: Root node of the MCTS tree
        max_depth: Maximum depth to explore

    Returns:
        List of (action, mean value) pairs along the principal variation
    """
    result = []
    current = root

    while current.children and len(result) < max_depth:
        best_child = max(current.children, key=lambda c: c.visits)
        if best_child.visits == 0:
            break
        result.append((best_child.action, best_child.mean_value()))
        current = best_child

    return result


def get_action_statistics(root: MCTSNode) -> Dict[str, Dict[str, Any]]:
    """
    Get statistics for all expanded actions at the root.

    This is useful for analysis and debugging.

    Args:
        root: Root node of the MCTS tree

    Returns:
        Dictionary mapping action strings to statistics
    """
    result = {}

    for child in root.children:
        result[str(child.action)] = {
            "visits": child.visits,
            "reward": child.total_reward,
            "value": child.mean_value(),
            "ucb": root.ucb_score(child),
        }

    return result
