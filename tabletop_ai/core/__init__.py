"""
Tabletop AI Core Package

This package contains everything the search core needs from the outside
world, and the pieces used to play complete games:
- ForwardModel and StateHeuristic interfaces
- Generic heuristics
- Exception taxonomy
- Game runner and baseline agents
"""

# Interfaces
from tabletop_ai.core.interfaces import ForwardModel, StateHeuristic

# Heuristics
from tabletop_ai.core.heuristics import (
    RelativeScoreHeuristic, WinLossHeuristic, evaluate_checked
)

# Exceptions
from tabletop_ai.core.exceptions import (
    TabletopAIError, ContractViolationError, NonFiniteHeuristicError,
    EmptyActionSetError, NoExpandedChildError
)

# Game flow
from tabletop_ai.core.game import Game
from tabletop_ai.core.agents import RandomAgent

__all__ = [
    # Interfaces
    'ForwardModel', 'StateHeuristic',

    # Heuristics
    'RelativeScoreHeuristic', 'WinLossHeuristic', 'evaluate_checked',

    # Exceptions
    'TabletopAIError', 'ContractViolationError', 'NonFiniteHeuristicError',
    'EmptyActionSetError', 'NoExpandedChildError',

    # Game flow
    'Game', 'RandomAgent',
]
