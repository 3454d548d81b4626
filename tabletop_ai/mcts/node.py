"""
Monte Carlo Tree Search nodes and the tree that stores them.

A SearchTree is an arena: nodes live in one list and refer to their parent
and children by integer index. Each node fixes its action slots when it is
created (one slot per legal action, empty until that action is expanded), so
"fully expanded" is a counter check and slot order never depends on hashing.
"""
from __future__ import annotations
from typing import Any, Hashable, List, Optional
import math

import numpy as np

from tabletop_ai.core.interfaces import ForwardModel, StateHeuristic
from tabletop_ai.core.heuristics import evaluate_checked
from tabletop_ai.core.exceptions import EmptyActionSetError
from tabletop_ai.mcts.config import MCTSConfig

Action = Hashable


def noise(value: float, epsilon: float, random_value: float) -> float:
    """
    Perturb a score by a relative amount bounded by epsilon.

    Used to break exact ties between scores reproducibly (the random value
    comes from the search's seeded generator) instead of by slot order.
    """
    return (value + epsilon) * (1.0 + epsilon * (random_value - 0.5))


class MCTSNode:
    """
    A node in the Monte Carlo Tree Search.

    Each node owns the game state reached by the action that created it and
    tracks statistics about the simulations that passed through it. Rewards
    are stored as returned by the rollout, from the searching player's point
    of view; the sign for the player to move is applied when scoring.
    """

    def __init__(
        self,
        tree: SearchTree,
        index: int,
        state: Any,
        parent: Optional[int] = None,
        action: Optional[Action] = None,
    ):
        """
        Initialize an MCTS node.

        Args:
            tree: The tree this node belongs to
            index: Position of this node in the tree's arena
            state: The game state this node owns
            parent: Arena index of the parent (None for root)
            action: The action that led to this state (None for root)

        Raises:
            EmptyActionSetError: if the state is not terminal but has no legal actions
        """
        self.tree = tree
        self.index = index
        self.state = state
        self.parent = parent
        self.action = action
        self.depth = 0 if parent is None else tree.nodes[parent].depth + 1

        forward_model = tree.forward_model
        self._terminal = forward_model.is_terminal(state)

        # Fixed action slots; None marks an action that has not been expanded yet
        if self._terminal:
            self.slot_actions: List[Action] = []
            self.player_to_move = -1
        else:
            self.slot_actions = list(forward_model.legal_actions(state))
            if not self.slot_actions:
                raise EmptyActionSetError(state)
            self.player_to_move = forward_model.current_player(state)
        self.slot_children: List[Optional[int]] = [None] * len(self.slot_actions)
        self._unexpanded = len(self.slot_actions)

        # Node statistics
        self.visits = 0
        self.total_reward = 0.0

    @property
    def children(self) -> List[MCTSNode]:
        """Expanded children in slot order."""
        return [self.tree.nodes[i] for i in self.slot_children if i is not None]

    def get_child(self, action: Action) -> Optional[MCTSNode]:
        """Child reached by `action`, or None if that slot is still empty."""
        for slot_action, child_index in zip(self.slot_actions, self.slot_children):
            if slot_action == action:
                return None if child_index is None else self.tree.nodes[child_index]
        raise KeyError(f"{action!r} is not a legal action at this node")

    def is_terminal(self) -> bool:
        return self._terminal

    def is_fully_expanded(self) -> bool:
        """True iff no action slot is empty."""
        return self._unexpanded == 0

    def has_untried_actions(self) -> bool:
        return self._unexpanded > 0

    def untried_actions(self) -> List[Action]:
        """Actions whose slot is still empty, in slot order."""
        return [
            action for action, child_index in zip(self.slot_actions, self.slot_children)
            if child_index is None
        ]

    def mean_value(self) -> Optional[float]:
        """Average reward, or None if the node was never visited."""
        if self.visits == 0:
            return None
        return self.total_reward / self.visits

    def perspective(self) -> float:
        """+1 when the searching player is to move here, -1 otherwise."""
        return 1.0 if self.player_to_move == self.tree.player_id else -1.0

    def ucb_score(self, child: MCTSNode) -> float:
        """
        Calculate the UCB1 score of a child from the point of view of the
        player to move at this node.

        UCB1 = sign * average_reward + exploration_weight * sqrt(ln(visits) / child_visits)

        Args:
            child: Child node to calculate score for

        Returns:
            UCB1 score, or infinity for a child that has never been visited
        """
        if child.visits == 0:
            return math.inf

        exploitation = child.total_reward / child.visits * self.perspective()
        exploration = math.sqrt(math.log(self.visits) / child.visits)
        return exploitation + self.tree.config.exploration_weight * exploration

    def select(self, rng: np.random.Generator) -> Action:
        """
        Pick the action of the expanded child with the highest noisy UCB1 score.

        A child that has never been visited is returned straight away.

        Args:
            rng: Random generator used for tie-break noise

        Returns:
            Action leading to the selected child
        """
        epsilon = self.tree.config.epsilon
        best_action = None
        best_value = -math.inf

        for action, child_index in zip(self.slot_actions, self.slot_children):
            if child_index is None:
                continue
            child = self.tree.nodes[child_index]
            if child.visits == 0:
                return action

            value = noise(self.ucb_score(child), epsilon, rng.random())
            if best_action is None or value > best_value:
                best_action = action
                best_value = value

        if best_action is None:
            raise ValueError("Cannot select child from node with no children")
        return best_action

    def select_child(self, rng: np.random.Generator) -> MCTSNode:
        """Child reached by the action returned from select()."""
        return self.get_child(self.select(rng))

    def expand(self, forward_model: ForwardModel, rng: np.random.Generator) -> MCTSNode:
        """
        Expand the tree by adding a new child node.

        An untried action is picked uniformly at random, applied to a copy of
        this node's state, and the resulting state becomes a new child.

        Args:
            forward_model: Game engine used to apply the action
            rng: Random generator used to pick the action

        Returns:
            The new child node, or this node if every action was already tried
        """
        empty_slots = [i for i, child_index in enumerate(self.slot_children) if child_index is None]
        if not empty_slots:
            return self

        slot = empty_slots[int(rng.integers(len(empty_slots)))]
        action = self.slot_actions[slot]

        next_state = forward_model.advance(forward_model.copy_state(self.state), action)
        self.tree.fm_calls += 1

        child = self.tree.add_node(next_state, parent=self.index, action=action)
        self.slot_children[slot] = child.index
        self._unexpanded -= 1
        return child

    def simulate(
        self,
        forward_model: ForwardModel,
        heuristic: StateHeuristic,
        rng: np.random.Generator,
        rollout_length: int,
        discount_factor: float,
    ) -> float:
        """
        Run a random playout from a copy of this node's state.

        The playout stops after `rollout_length` actions, at a terminal
        state, or at a state that offers no legal actions. The state reached
        is scored for the searching player and discounted by the number of
        actions played.

        Returns:
            Discounted heuristic value

        Raises:
            NonFiniteHeuristicError: if the heuristic returns NaN or infinity
        """
        state = forward_model.copy_state(self.state)
        steps = 0

        while steps < rollout_length and not forward_model.is_terminal(state):
            actions = forward_model.legal_actions(state)
            if not actions:
                break
            action = actions[int(rng.integers(len(actions)))]
            state = forward_model.advance(state, action)
            self.tree.fm_calls += 1
            steps += 1

        self.tree.rollout_steps += steps
        value = evaluate_checked(heuristic, state, self.tree.player_id)
        return value * discount_factor ** steps

    def update(self, reward: float) -> None:
        """Record one simulation result at this node."""
        self.visits += 1
        self.total_reward += reward

    def backpropagate(self, reward: float) -> None:
        """Update this node and every ancestor up to the root with `reward`."""
        index = self.index
        while index is not None:
            node = self.tree.nodes[index]
            node.update(reward)
            index = node.parent

    def __str__(self) -> str:
        return (f"MCTSNode(depth={self.depth}, "
                f"visits={self.visits}, "
                f"reward={self.total_reward:.2f}, "
                f"children={len(self.slot_actions) - self._unexpanded}, "
                f"untried={self._unexpanded})")


class SearchTree:
    """
    Arena holding every node of one search, plus the collaborators the
    nodes share: forward model, heuristic, configuration, searching player,
    random generator and the forward model call counter.

    The tree is built for a single decision and discarded afterwards.
    """

    def __init__(
        self,
        state: Any,
        player_id: int,
        forward_model: ForwardModel,
        heuristic: StateHeuristic,
        config: Optional[MCTSConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.player_id = player_id
        self.forward_model = forward_model
        self.heuristic = heuristic
        self.config = config or MCTSConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)

        self.nodes: List[MCTSNode] = []
        self.fm_calls = 0
        self.rollout_steps = 0
        self.root = self.add_node(state)

    def add_node(
        self,
        state: Any,
        parent: Optional[int] = None,
        action: Optional[Action] = None,
    ) -> MCTSNode:
        """Create a node in the arena and return it."""
        node = MCTSNode(self, len(self.nodes), state, parent=parent, action=action)
        self.nodes.append(node)
        return node

    def __len__(self) -> int:
        return len(self.nodes)

    def max_depth(self) -> int:
        return max(node.depth for node in self.nodes)
