"""Deck creation utilities for Casino."""

from __future__ import annotations

from random import Random
from typing import List, Optional, Sequence, Tuple

from .cards import FACE_RANKS, NUMERIC_RANKS, Card, Suit


def build_deck(*, include_face_cards: bool = False) -> List[Card]:
    """Return the ordered deck: 40 cards, or 52 with face cards."""
    ranks = list(NUMERIC_RANKS)
    if include_face_cards:
        ranks.extend(FACE_RANKS)
    return [Card(rank, suit) for suit in Suit for rank in ranks]


def shuffled_deck(*, rng: Optional[Random] = None, include_face_cards: bool = False) -> List[Card]:
    cards = build_deck(include_face_cards=include_face_cards)
    if rng is None:
        rng = Random()
    rng.shuffle(cards)
    return cards


def deal_alternately(
    deck: Sequence[Card],
    hand_size: int,
) -> Tuple[Tuple[Tuple[Card, ...], Tuple[Card, ...]], Tuple[Card, ...]]:
    """Deal ``hand_size`` cards to each player, one at a time from the top.

    Returns the two hands and the remaining deck.
    """
    if len(deck) < 2 * hand_size:
        raise ValueError(f"Deck holds {len(deck)} cards; {2 * hand_size} are needed for a deal.")
    dealt = list(deck[: 2 * hand_size])
    hand0 = tuple(dealt[0::2])
    hand1 = tuple(dealt[1::2])
    return (hand0, hand1), tuple(deck[2 * hand_size :])
