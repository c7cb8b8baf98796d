"""Random baseline bot."""

from __future__ import annotations

import random
from typing import Optional, Sequence

from casino.actions import Action, ActionType
from casino.state import GameState

from .base import BotStrategy


class RandomBot(BotStrategy):
    name = "Random"

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    def choose_action(self, state: GameState, player: int, legal: Sequence[Action]) -> Action:
        if not legal:
            raise RuntimeError("No legal actions available for bot.")
        # Cancelling keeps the turn, so only fall back to it when nothing else is legal.
        candidates = [action for action in legal if action.action_type is not ActionType.CANCEL_STAGING_STACK]
        return self._rng.choice(candidates or list(legal))

    def choose_option(self, state: GameState, player: int, options: Sequence[Action]) -> Action:
        return self._rng.choice(list(options))
