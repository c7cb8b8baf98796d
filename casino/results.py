"""Outcomes returned by the reducer boundary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .actions import Action
from .state import GameState

TARGET_NOT_FOUND = "target_not_found"
RULE_VIOLATION = "rule_violation"
MALFORMED = "malformed"
NOT_YOUR_TURN = "not_your_turn"
GAME_OVER = "game_over"
INTERNAL_ERROR = "internal_error"


class CasinoError(RuntimeError):
    """Base class for engine errors raised inside action handlers."""

    code = RULE_VIOLATION


class IllegalAction(CasinoError):
    """Raised when an action breaks a game rule."""

    def __init__(self, reason: str, code: str = RULE_VIOLATION) -> None:
        super().__init__(reason)
        self.code = code


class TargetNotFound(CasinoError):
    """Raised when a referenced card or entity is missing."""

    code = TARGET_NOT_FOUND

    def __init__(self, detail: str = "") -> None:
        super().__init__("Card or target not found.")
        self.detail = detail


@dataclass(frozen=True)
class Accepted:
    state: GameState
    notice: Optional[str] = None


@dataclass(frozen=True)
class Rejected:
    reason: str
    code: str = RULE_VIOLATION


@dataclass(frozen=True)
class NeedsDisambiguation:
    """Finalizing a stack allowed several outcomes; the caller must pick one."""

    state: GameState
    options: Tuple[Action, ...]


ActionResult = Union[Accepted, Rejected, NeedsDisambiguation]
