"""Card-related data structures and helpers for Casino."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple


class Suit(Enum):
    SPADES = "spades"
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"

    def __str__(self) -> str:
        return self.value


class Rank(Enum):
    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    def __str__(self) -> str:
        return self.value


# Build/capture values. Face cards carry no value.
RANK_VALUES: dict[Rank, Optional[int]] = {
    Rank.ACE: 1,
    Rank.TWO: 2,
    Rank.THREE: 3,
    Rank.FOUR: 4,
    Rank.FIVE: 5,
    Rank.SIX: 6,
    Rank.SEVEN: 7,
    Rank.EIGHT: 8,
    Rank.NINE: 9,
    Rank.TEN: 10,
    Rank.JACK: None,
    Rank.QUEEN: None,
    Rank.KING: None,
}

NUMERIC_RANKS: list[Rank] = [rank for rank, value in RANK_VALUES.items() if value is not None]
FACE_RANKS: list[Rank] = [Rank.JACK, Rank.QUEEN, Rank.KING]

SUIT_SYMBOLS: dict[Suit, str] = {
    Suit.SPADES: "♠",
    Suit.HEARTS: "♥",
    Suit.DIAMONDS: "♦",
    Suit.CLUBS: "♣",
}


@dataclass(frozen=True)
class Card:
    """Immutable representation of a playing card."""

    rank: Rank
    suit: Suit

    @property
    def value(self) -> Optional[int]:
        return RANK_VALUES[self.rank]

    @property
    def is_face(self) -> bool:
        return RANK_VALUES[self.rank] is None

    def __str__(self) -> str:
        return f"{self.rank.value}{SUIT_SYMBOLS[self.suit]}"


def card_sum(cards: Iterable[Card]) -> int:
    """Sum the values of numeric cards. Face cards count as zero."""
    return sum(card.value or 0 for card in cards)


def has_face_card(cards: Iterable[Card]) -> bool:
    return any(card.is_face for card in cards)


def sort_by_value(cards: Iterable[Card], *, descending: bool = True) -> List[Card]:
    """Order cards by value, bigger cards first by default."""
    return sorted(cards, key=lambda card: card.value or 0, reverse=descending)


def remove_card(cards: Sequence[Card], card: Card) -> Tuple[Card, ...]:
    """Return a copy of ``cards`` without one occurrence of ``card``.

    Raises:
        ValueError: the card is not present.
    """
    remaining = list(cards)
    remaining.remove(card)
    return tuple(remaining)


def holds_value(hand: Iterable[Card], value: int, *, excluding: Optional[Card] = None) -> bool:
    """Return True if the hand has a card of ``value`` other than ``excluding``."""
    return any(card.value == value and card != excluding for card in hand)


def serialize_card(card: Card) -> dict[str, str]:
    return {"rank": card.rank.value, "suit": card.suit.value}


def deserialize_card(payload: Mapping[str, str]) -> Card:
    rank_name = str(payload["rank"]).upper()
    suit_name = str(payload["suit"]).lower()
    return Card(Rank(rank_name), Suit(suit_name))


def card_label(card: Card) -> str:
    return f"{card.rank.name.title()} of {card.suit.name.title()}"
