"""Common bot strategy interfaces."""

from __future__ import annotations

from typing import Sequence

from casino.actions import Action
from casino.state import GameState


class BotStrategy:
    """Base class for bot policies."""

    name: str = "BaseBot"

    def on_game_start(self, state: GameState, player: int) -> None:
        """Optional hook invoked when a new game is dealt."""
        return None

    def choose_action(self, state: GameState, player: int, legal: Sequence[Action]) -> Action:
        """Return one of the legal actions."""
        if not legal:
            raise RuntimeError("No legal actions available for bot.")
        return legal[0]

    def choose_option(self, state: GameState, player: int, options: Sequence[Action]) -> Action:
        """Pick one outcome when finalizing a staging stack is ambiguous."""
        return options[0]
