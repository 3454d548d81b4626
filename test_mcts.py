#!/usr/bin/env python
"""
Tests for the Monte Carlo Tree Search core.

These tests drive the search with tiny games written out as explicit trees,
so every expected visit count and reward can be worked out by hand.
"""
import math
import unittest
from typing import Dict, List, Optional

import numpy as np

from tabletop_ai.core.interfaces import ForwardModel, StateHeuristic
from tabletop_ai.core.exceptions import (
    NonFiniteHeuristicError, EmptyActionSetError, NoExpandedChildError
)
from tabletop_ai.games.nim import NimForwardModel, NimSumHeuristic, initial_state
from tabletop_ai.mcts.config import MCTSConfig, BudgetType
from tabletop_ai.mcts.node import SearchTree, noise
from tabletop_ai.mcts.search import (
    mcts_search, run_search, run_iteration, select_node, best_action,
    count_nodes, get_principal_variation, get_action_statistics
)


class TreeGame(ForwardModel):
    """A game spelled out as {state: {action: next_state}}."""

    def __init__(
        self,
        transitions: Dict[str, Dict[str, str]],
        terminals: List[str],
        players: Optional[Dict[str, int]] = None,
    ):
        self.transitions = transitions
        self.terminals = set(terminals)
        self.players = players or {}

    def is_terminal(self, state: str) -> bool:
        return state in self.terminals

    def legal_actions(self, state: str) -> List[str]:
        return list(self.transitions.get(state, {}))

    def advance(self, state: str, action: str) -> str:
        return self.transitions[state][action]

    def current_player(self, state: str) -> int:
        return self.players.get(state, 0)


class TableHeuristic(StateHeuristic):
    """Looks the value up for player 0; other players get the negation."""

    def __init__(self, values: Dict[str, float]):
        self.values = values

    def evaluate_state(self, state: str, player_id: int) -> float:
        value = self.values.get(state, 0.0)
        return value if player_id == 0 else -value


def iterations(n: int, **kwargs) -> MCTSConfig:
    return MCTSConfig(budget_type=BudgetType.ITERATIONS, budget=n, seed=kwargs.pop("seed", 1), **kwargs)


class TestSearchNode(unittest.TestCase):
    """Test node bookkeeping and the four phases in isolation."""

    def setUp(self):
        self.game = TreeGame(
            {"root": {"x": "X", "y": "Y", "z": "Z"}},
            terminals=["X", "Y", "Z"],
        )
        self.heuristic = TableHeuristic({"X": 1.0, "Y": 0.5, "Z": 0.0})

    def make_tree(self, config: Optional[MCTSConfig] = None) -> SearchTree:
        return SearchTree("root", 0, self.game, self.heuristic, config or iterations(10))

    def test_root_slots(self):
        """A new root has one empty slot per legal action."""
        tree = self.make_tree()
        root = tree.root

        self.assertEqual(root.depth, 0)
        self.assertIsNone(root.parent)
        self.assertEqual(root.slot_actions, ["x", "y", "z"])
        self.assertEqual(root.slot_children, [None, None, None])
        self.assertFalse(root.is_fully_expanded())
        self.assertIsNone(root.mean_value())

    def test_untried_actions_are_stable(self):
        """Repeated calls without expansion return the same order."""
        tree = self.make_tree()
        root = tree.root

        self.assertEqual(root.untried_actions(), root.untried_actions())

        child = root.expand(self.game, tree.rng)
        remaining = root.untried_actions()
        self.assertNotIn(child.action, remaining)
        self.assertEqual(remaining, [a for a in ["x", "y", "z"] if a != child.action])
        self.assertEqual(remaining, root.untried_actions())

    def test_expand_fills_slot(self):
        tree = self.make_tree()
        root = tree.root

        child = root.expand(self.game, tree.rng)

        self.assertEqual(child.parent, root.index)
        self.assertEqual(child.depth, 1)
        self.assertEqual(child.state, self.game.advance("root", child.action))
        self.assertIs(root.get_child(child.action), child)
        self.assertEqual(tree.fm_calls, 1)
        self.assertEqual(len(tree), 2)

    def test_expand_fully_expanded_is_noop(self):
        tree = self.make_tree()
        root = tree.root
        for _ in range(3):
            root.expand(self.game, tree.rng)

        self.assertTrue(root.is_fully_expanded())
        self.assertIs(root.expand(self.game, tree.rng), root)
        self.assertEqual(tree.fm_calls, 3)

    def test_each_child_tried_before_repeating(self):
        """With three actions, the first three iterations visit each child once."""
        tree = self.make_tree()
        for _ in range(3):
            run_iteration(tree)

        root = tree.root
        self.assertTrue(root.is_fully_expanded())
        self.assertEqual(sorted(c.action for c in root.children), ["x", "y", "z"])
        self.assertEqual([c.visits for c in root.children], [1, 1, 1])

    def test_select_prefers_unvisited_child(self):
        tree = self.make_tree()
        root = tree.root
        first = root.expand(self.game, tree.rng)
        second = root.expand(self.game, tree.rng)
        first.backpropagate(1.0)

        self.assertEqual(root.select(tree.rng), second.action)
        self.assertIs(root.select_child(tree.rng), second)

    def test_select_without_children_raises(self):
        tree = self.make_tree()
        with self.assertRaises(ValueError):
            tree.root.select(tree.rng)

    def test_backpropagate_updates_path(self):
        chain = TreeGame({"a": {"go": "b"}, "b": {"go": "c"}}, terminals=["c"])
        tree = SearchTree("a", 0, chain, TableHeuristic({}), iterations(5))
        b = tree.root.expand(chain, tree.rng)
        c = b.expand(chain, tree.rng)

        c.backpropagate(0.7)
        c.backpropagate(-0.2)

        for node in (tree.root, b, c):
            self.assertEqual(node.visits, 2)
            self.assertAlmostEqual(node.total_reward, 0.5)
            self.assertAlmostEqual(node.mean_value(), 0.25)

    def test_simulate_discounts_by_steps(self):
        chain = TreeGame({"a": {"go": "b"}, "b": {"go": "c"}}, terminals=["c"])
        tree = SearchTree("a", 0, chain, TableHeuristic({"c": 1.0}), iterations(5))

        reward = tree.root.simulate(chain, tree.heuristic, tree.rng, 10, 0.5)

        self.assertAlmostEqual(reward, 0.25)
        self.assertEqual(tree.fm_calls, 2)

    def test_simulate_respects_rollout_length(self):
        chain = TreeGame({"a": {"go": "b"}, "b": {"go": "c"}}, terminals=["c"])
        tree = SearchTree("a", 0, chain, TableHeuristic({"b": 0.3, "c": 1.0}), iterations(5))

        self.assertAlmostEqual(tree.root.simulate(chain, tree.heuristic, tree.rng, 1, 1.0), 0.3)
        self.assertAlmostEqual(tree.root.simulate(chain, tree.heuristic, tree.rng, 0, 1.0), 0.0)

    def test_rollout_stops_when_no_actions(self):
        """A non-terminal dead end ends the rollout instead of failing."""
        game = TreeGame({"a": {"go": "b"}, "b": {"stall": "stuck"}}, terminals=[])
        tree = SearchTree("a", 0, game, TableHeuristic({"stuck": 0.4}), iterations(1, rollout_length=5))

        action, stats = run_search(tree)

        self.assertEqual(action, "go")
        self.assertAlmostEqual(tree.root.total_reward, 0.4)
        self.assertEqual(stats["fm_calls"], 2)

    def test_nonterminal_state_without_actions_is_fatal(self):
        game = TreeGame({}, terminals=[])
        with self.assertRaises(EmptyActionSetError):
            SearchTree("root", 0, game, TableHeuristic({}))

    def test_expanding_into_dead_end_is_fatal(self):
        """A non-terminal child without legal actions cannot join the tree."""
        game = TreeGame({"root": {"go": "dead"}}, terminals=[])
        tree = SearchTree("root", 0, game, TableHeuristic({}), iterations(1))

        with self.assertRaises(EmptyActionSetError):
            tree.root.expand(game, tree.rng)

    def test_ucb_score_uses_perspective(self):
        """Rewards are stored for the searcher and negated for the opponent's choices."""
        game = TreeGame({"root": {"x": "X", "y": "Y"}}, terminals=["X", "Y"], players={"root": 1})
        tree = SearchTree("root", 0, game, TableHeuristic({}), iterations(5))
        root = tree.root
        child = root.expand(game, tree.rng)
        root.visits, child.visits, child.total_reward = 10, 4, 2.0

        expected = -0.5 + math.sqrt(2) * math.sqrt(math.log(10) / 4)
        self.assertAlmostEqual(root.ucb_score(child), expected)

        tree.player_id = 1
        expected = 0.5 + math.sqrt(2) * math.sqrt(math.log(10) / 4)
        self.assertAlmostEqual(root.ucb_score(child), expected)

    def test_ucb_score_unvisited_is_infinite(self):
        tree = self.make_tree()
        child = tree.root.expand(self.game, tree.rng)
        self.assertEqual(tree.root.ucb_score(child), math.inf)

    def test_noise_is_bounded(self):
        epsilon = 1e-6
        for r in (0.0, 0.5, 1.0):
            value = noise(2.0, epsilon, r)
            self.assertLess(abs(value - 2.0), 1e-5)
        self.assertLess(noise(1.0, epsilon, 0.0), noise(1.0, epsilon, 1.0))

    def tied_tree(self, seed: int, final_selection: str = "ucb") -> SearchTree:
        """Root with two expanded children holding identical statistics."""
        game = TreeGame({"root": {"x": "X", "y": "Y"}}, terminals=["X", "Y"])
        tree = SearchTree("root", 0, game, TableHeuristic({}),
                          iterations(2, seed=seed, final_selection=final_selection))
        root = tree.root
        for _ in range(2):
            child = root.expand(game, tree.rng)
            child.visits, child.total_reward = 3, 1.5
        root.visits = 6
        return tree

    def test_equal_scores_split_by_seeded_noise(self):
        """Exact ties are broken by the generator, not by slot order."""
        chosen = {}
        for seed in range(30):
            tree = self.tied_tree(seed)
            chosen[seed] = tree.root.select(tree.rng)

        self.assertEqual(set(chosen.values()), {"x", "y"})
        for seed, action in chosen.items():
            tree = self.tied_tree(seed)
            self.assertEqual(tree.root.select(tree.rng), action)

    def test_best_action_breaks_ties_with_seed(self):
        for final_selection in ("ucb", "visits"):
            with self.subTest(final_selection=final_selection):
                chosen = [best_action(self.tied_tree(seed, final_selection)) for seed in range(30)]
                self.assertEqual(set(chosen), {"x", "y"})
                self.assertEqual(chosen, [best_action(self.tied_tree(seed, final_selection))
                                          for seed in range(30)])


class TestIterationEngine(unittest.TestCase):
    """Test the search loop, budgets as seen by the loop, and action selection."""

    def setUp(self):
        self.two_way = TreeGame({"root": {"A": "high", "B": "low"}}, terminals=["high", "low"])
        self.two_way_values = TableHeuristic({"high": 1.0, "low": 0.0})
        self.nim = NimForwardModel()
        self.nim_heuristic = NimSumHeuristic(self.nim)

    def test_root_visits_equal_iterations(self):
        tree = SearchTree(initial_state([2, 3, 4]), 0, self.nim, self.nim_heuristic, iterations(57))
        action, stats = run_search(tree)

        self.assertEqual(stats["iterations"], 57)
        self.assertEqual(tree.root.visits, 57)
        self.assertEqual(sum(c.visits for c in tree.root.children), 57)
        self.assertEqual(count_nodes(tree.root), len(tree))
        self.assertIn(action, self.nim.legal_actions(tree.root.state))

    def test_single_action_is_chosen(self):
        game = TreeGame({"root": {"only": "end"}}, terminals=["end"])
        for budget in (1, 2, 25):
            action, stats = mcts_search("root", 0, game, TableHeuristic({"end": -1.0}), iterations(budget))
            self.assertEqual(action, "only")
            self.assertEqual(stats["iterations"], budget)

    def test_clear_winner_gets_most_visits(self):
        tree = SearchTree("root", 0, self.two_way, self.two_way_values,
                          iterations(200, rollout_length=1, discount_factor=1.0, seed=42))
        action, stats = run_search(tree)

        self.assertEqual(action, "A")
        visits_a = tree.root.get_child("A").visits
        visits_b = tree.root.get_child("B").visits
        self.assertGreater(visits_a, 5 * visits_b)
        self.assertEqual(stats["action_visits"], {"A": visits_a, "B": visits_b})

    def test_final_selection_by_visits(self):
        action, _ = mcts_search("root", 0, self.two_way, self.two_way_values,
                                iterations(200, final_selection="visits"))
        self.assertEqual(action, "A")

    def test_opponent_choice_is_minimised(self):
        """At an opponent node, selection favours the child that is worst for the searcher."""
        game = TreeGame(
            {"root": {"go": "opp"}, "opp": {"good": "G", "bad": "B"}},
            terminals=["G", "B"],
            players={"root": 0, "opp": 1},
        )
        tree = SearchTree("root", 0, game, TableHeuristic({"G": 1.0, "B": -1.0}), iterations(100))
        run_search(tree)

        opp = tree.root.get_child("go")
        self.assertGreater(opp.get_child("bad").visits, opp.get_child("good").visits)

    def test_selection_respects_depth_limit(self):
        chain = TreeGame({"a": {"go": "b"}, "b": {"go": "c"}, "c": {"go": "d"}}, terminals=["d"])
        tree = SearchTree("a", 0, chain, TableHeuristic({}), iterations(20, max_tree_depth=1))
        run_search(tree)

        self.assertLessEqual(tree.max_depth(), 2)
        self.assertEqual(select_node(tree).depth, 1)

    def test_reproducible_with_same_seed(self):
        config = iterations(300, seed=11)
        first = mcts_search(initial_state([3, 4, 5]), 0, self.nim, self.nim_heuristic, config)
        second = mcts_search(initial_state([3, 4, 5]), 0, self.nim, self.nim_heuristic, config)

        self.assertEqual(first[0], second[0])
        self.assertEqual(first[1]["action_visits"], second[1]["action_visits"])
        self.assertEqual(first[1]["node_count"], second[1]["node_count"])
        self.assertEqual(first[1]["fm_calls"], second[1]["fm_calls"])

    def test_explicit_generator_is_used(self):
        config = iterations(100)
        first = mcts_search(initial_state([3, 4, 5]), 0, self.nim, self.nim_heuristic, config,
                            rng=np.random.default_rng(5))
        second = mcts_search(initial_state([3, 4, 5]), 0, self.nim, self.nim_heuristic, config,
                             rng=np.random.default_rng(5))
        self.assertEqual(first[1]["action_visits"], second[1]["action_visits"])

    def test_search_does_not_modify_state(self):
        state = initial_state([2, 2])
        mcts_search(state, 0, self.nim, self.nim_heuristic, iterations(50))
        self.assertEqual(state.heaps, (2, 2))
        self.assertEqual(state.current_player, 0)

    def test_nan_heuristic_is_fatal(self):
        class NaNHeuristic(StateHeuristic):
            def evaluate_state(self, state, player_id):
                return float("nan")

        with self.assertRaises(NonFiniteHeuristicError):
            mcts_search("root", 0, self.two_way, NaNHeuristic(), iterations(10))

    def test_best_action_without_children_is_fatal(self):
        tree = SearchTree("root", 0, self.two_way, self.two_way_values, iterations(10))
        with self.assertRaises(NoExpandedChildError):
            best_action(tree)

    def test_terminal_root_cannot_choose(self):
        with self.assertRaises(NoExpandedChildError):
            mcts_search("high", 0, self.two_way, self.two_way_values, iterations(5))

    def test_statistics_helpers(self):
        tree = SearchTree(initial_state([1, 2]), 0, self.nim, self.nim_heuristic, iterations(200))
        run_search(tree)

        variation = get_principal_variation(tree.root)
        self.assertGreaterEqual(len(variation), 1)
        self.assertLessEqual(len(variation), 3)

        stats = get_action_statistics(tree.root)
        self.assertEqual(len(stats), 3)
        self.assertEqual(sum(s["visits"] for s in stats.values()), 200)

    def test_finds_immediate_win_in_nim(self):
        """From a single heap of three, taking all three wins at once."""
        action, _ = mcts_search(initial_state([0, 3]), 0, self.nim, self.nim_heuristic,
                                iterations(300, final_selection="visits"))
        self.assertEqual((action.heap, action.count), (1, 3))


if __name__ == "__main__":
    unittest.main()
