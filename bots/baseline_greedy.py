"""Baseline greedy bot."""

from __future__ import annotations

from typing import Iterable, Sequence

from casino.actions import Action, ActionType
from casino.cards import Card, Rank, Suit
from casino.reducer import apply_action
from casino.results import Accepted, NeedsDisambiguation
from casino.scoring import BIG_CASINO, LITTLE_CASINO
from casino.state import GameState

from .base import BotStrategy


def card_weight(card: Card) -> float:
    """Rough worth of owning a card at the end of the game."""
    weight = 1.0
    if card.suit is Suit.SPADES:
        weight += 0.5
    if card.rank is Rank.ACE:
        weight += 1.0
    if card == BIG_CASINO:
        weight += 2.0
    elif card == LITTLE_CASINO:
        weight += 1.0
    return weight


def _gained(before: GameState, after: GameState, player: int) -> Iterable[Card]:
    return after.flat_captures(player)[len(before.flat_captures(player)):]


class GreedyBot(BotStrategy):
    name = "Greedy"

    def evaluate(self, state: GameState, player: int, action: Action) -> float:
        result = apply_action(state, action)
        if isinstance(result, NeedsDisambiguation):
            return max(self.evaluate(result.state, player, option) for option in result.options)
        if not isinstance(result, Accepted):
            return float("-inf")
        after = result.state
        score = sum(card_weight(card) for card in _gained(state, after, player))
        if action.action_type is ActionType.TRAIL and action.card is not None:
            score -= card_weight(action.card) / 2
        elif action.action_type in (ActionType.BUILD, ActionType.BASE_BUILD, ActionType.ADD_TO_OPPONENT_BUILD):
            score += 0.5
        elif action.action_type is ActionType.DISBAND_STAGING_STACK:
            score -= 1.0
        elif action.action_type is ActionType.CANCEL_STAGING_STACK:
            score -= 2.0
        return score

    def choose_action(self, state: GameState, player: int, legal: Sequence[Action]) -> Action:
        if not legal:
            raise RuntimeError("No legal actions available for bot.")
        return max(legal, key=lambda action: self.evaluate(state, player, action))

    def choose_option(self, state: GameState, player: int, options: Sequence[Action]) -> Action:
        return max(options, key=lambda action: self.evaluate(state, player, action))
