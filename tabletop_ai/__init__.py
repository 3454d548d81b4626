"""
Tabletop AI - A Monte Carlo Tree Search framework for turn-based tabletop games.

This package provides a game-agnostic MCTS decision engine together with a
small set of example games and baseline agents. Any game can be searched by
implementing the ForwardModel interface and a StateHeuristic.
"""

__version__ = "0.1.0"
__author__ = "Tabletop AI Team"

# Make key components available at package level
from tabletop_ai.core.interfaces import ForwardModel, StateHeuristic
from tabletop_ai.mcts.config import MCTSConfig, BudgetType
from tabletop_ai.mcts.search import mcts_search
from tabletop_ai.mcts.agent import MCTSAgent

# Version info as a tuple for programmatic access
VERSION_INFO = tuple(map(int, __version__.split('.')))
