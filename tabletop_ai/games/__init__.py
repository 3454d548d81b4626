"""
Example games.

Small, fully specified games used to exercise the search: two-player Nim
and an N-player card draft.
"""

from tabletop_ai.games.nim import NimAction, NimState, NimForwardModel, NimSumHeuristic
from tabletop_ai.games.draft import DraftState, DraftForwardModel

__all__ = [
    'NimAction', 'NimState', 'NimForwardModel', 'NimSumHeuristic',
    'DraftState', 'DraftForwardModel',
]
