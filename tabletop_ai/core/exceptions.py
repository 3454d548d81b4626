"""
Exceptions raised by the tabletop AI search core.

Contract violations indicate a bug in an external collaborator (the forward
model or the state heuristic). They abort the current decision and are never
retried.
"""
from __future__ import annotations
from typing import Any


class TabletopAIError(Exception):
    """Base exception for all tabletop AI errors."""


class ContractViolationError(TabletopAIError):
    """Raised when a collaborator breaks the contract the search relies on."""


class NonFiniteHeuristicError(ContractViolationError):
    """Raised when a state heuristic returns NaN or an infinite value."""

    def __init__(self, value: float, player_id: int) -> None:
        self.value = value
        self.player_id = player_id
        super().__init__(
            f"Heuristic returned non-finite value {value!r} for player {player_id}"
        )


class EmptyActionSetError(ContractViolationError):
    """Raised when a non-terminal state offers no legal actions to a tree node."""

    def __init__(self, state: Any) -> None:
        self.state = state
        super().__init__(f"Non-terminal state has no legal actions: {state}")


class NoExpandedChildError(ContractViolationError):
    """Raised when the final action is requested from a root with no children."""

    def __init__(self) -> None:
        super().__init__("Cannot select an action: the root has no expanded child")


__all__ = [
    "TabletopAIError",
    "ContractViolationError",
    "NonFiniteHeuristicError",
    "EmptyActionSetError",
    "NoExpandedChildError",
]
