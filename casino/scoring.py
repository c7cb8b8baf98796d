"""End-of-game scoring helpers for Casino."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .cards import Card, Rank, Suit
from .rules_schema import DEFAULT_RULES, ScoringConfig

BIG_CASINO = Card(Rank.TEN, Suit.DIAMONDS)
LITTLE_CASINO = Card(Rank.TWO, Suit.SPADES)


class ScoringError(ValueError):
    """Raised when scoring input is malformed."""


@dataclass(frozen=True)
class PlayerScore:
    card_count: int
    spade_count: int
    most_cards: int
    most_spades: int
    aces: int
    big_casino: int
    little_casino: int

    @property
    def total(self) -> int:
        return self.most_cards + self.most_spades + self.aces + self.big_casino + self.little_casino


@dataclass(frozen=True)
class ScoreBreakdown:
    players: Tuple[PlayerScore, PlayerScore]

    @property
    def totals(self) -> Tuple[int, int]:
        return self.players[0].total, self.players[1].total

    @property
    def winner(self) -> Optional[int]:
        first, second = self.totals
        if first > second:
            return 0
        if second > first:
            return 1
        return None


def _majority(counts: Tuple[int, int], points: int, tie_points: int) -> Tuple[int, int]:
    if counts[0] > counts[1]:
        return points, 0
    if counts[1] > counts[0]:
        return 0, points
    if counts[0] > 0:
        return tie_points, tie_points
    return 0, 0


def score_captures(
    captured: Sequence[Sequence[Card]],
    config: ScoringConfig = DEFAULT_RULES.scoring,
) -> ScoreBreakdown:
    """Score each player's flattened capture pile."""
    if len(captured) != 2:
        raise ScoringError("Exactly two players are supported.")

    card_counts = (len(captured[0]), len(captured[1]))
    spade_counts = (
        sum(1 for card in captured[0] if card.suit is Suit.SPADES),
        sum(1 for card in captured[1] if card.suit is Suit.SPADES),
    )
    most_cards = _majority(card_counts, config.most_cards, config.tie_split)
    most_spades = _majority(spade_counts, config.most_spades, config.tie_split)

    players = []
    for index, cards in enumerate(captured):
        players.append(
            PlayerScore(
                card_count=card_counts[index],
                spade_count=spade_counts[index],
                most_cards=most_cards[index],
                most_spades=most_spades[index],
                aces=config.ace * sum(1 for card in cards if card.rank is Rank.ACE),
                big_casino=config.big_casino if BIG_CASINO in cards else 0,
                little_casino=config.little_casino if LITTLE_CASINO in cards else 0,
            )
        )
    return ScoreBreakdown(players=(players[0], players[1]))
