"""Game state management for Casino."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from random import Random
from typing import List, Optional, Sequence, Tuple

from .cards import Card
from .deck import deal_alternately, shuffled_deck
from .rules_schema import DEFAULT_RULES, RuleSet
from .scoring import ScoreBreakdown
from .table import Build, TableEntity, TemporaryStack, entity_cards, stack_owned_by, table_cards

logger = logging.getLogger(__name__)

Hand = Tuple[Card, ...]
CaptureGroup = Tuple[Card, ...]
CaptureSet = Tuple[CaptureGroup, ...]


@dataclass(frozen=True)
class GameState:
    hands: Tuple[Hand, Hand]
    table: Tuple[TableEntity, ...] = ()
    captures: Tuple[CaptureSet, CaptureSet] = ((), ())
    deck: Tuple[Card, ...] = ()
    current_player: int = 0
    round: int = 1
    last_capturer: Optional[int] = None
    game_over: bool = False
    score: Optional[ScoreBreakdown] = None
    rules: RuleSet = field(default=DEFAULT_RULES, compare=False)
    next_id: int = 1

    def __post_init__(self) -> None:
        if len(self.hands) != 2 or len(self.captures) != 2:
            raise ValueError("GameState supports exactly two players.")

    @staticmethod
    def opponent(player: int) -> int:
        return 1 - player

    @property
    def winner(self) -> Optional[int]:
        return self.score.winner if self.score is not None else None

    def hand(self, player: int) -> Hand:
        return self.hands[player]

    def flat_captures(self, player: int) -> Tuple[Card, ...]:
        return tuple(card for group in self.captures[player] for card in group)

    def staging_stack(self, player: int) -> Optional[TemporaryStack]:
        return stack_owned_by(self.table, player)

    def has_staging_stack(self) -> bool:
        return any(isinstance(entity, TemporaryStack) for entity in self.table)

    def hands_empty(self) -> bool:
        return all(len(hand) == 0 for hand in self.hands)

    # Functional updates ------------------------------------------------

    def with_hand(self, player: int, hand: Sequence[Card]) -> "GameState":
        hands = list(self.hands)
        hands[player] = tuple(hand)
        return replace(self, hands=(hands[0], hands[1]))

    def with_captures(self, player: int, groups: Sequence[CaptureGroup]) -> "GameState":
        captures = list(self.captures)
        captures[player] = tuple(tuple(group) for group in groups if group)
        return replace(self, captures=(captures[0], captures[1]))

    def with_table(self, table: Sequence[TableEntity]) -> "GameState":
        return replace(self, table=tuple(table))

    def issue_id(self, prefix: str) -> Tuple[str, "GameState"]:
        """Return a fresh entity id and the state with the counter advanced."""
        return f"{prefix}-{self.next_id}", replace(self, next_id=self.next_id + 1)

    def end_turn(self) -> "GameState":
        return replace(self, current_player=self.opponent(self.current_player))

    # Card accounting ----------------------------------------------------

    def all_cards(self) -> List[Card]:
        cards: List[Card] = []
        for hand in self.hands:
            cards.extend(hand)
        cards.extend(table_cards(self.table))
        for player in (0, 1):
            cards.extend(self.flat_captures(player))
        cards.extend(self.deck)
        return cards


def new_game(
    *,
    rules: RuleSet = DEFAULT_RULES,
    rng: Optional[Random] = None,
    deck: Optional[Sequence[Card]] = None,
    starting_player: int = 0,
) -> GameState:
    """Shuffle (unless a deck is given) and deal round 1."""
    if deck is None:
        cards = shuffled_deck(rng=rng, include_face_cards=rules.include_face_cards)
    else:
        cards = list(deck)
    if len(set(cards)) != len(cards):
        raise ValueError("Deck contains duplicate cards.")
    hands, remaining = deal_alternately(cards, rules.hand_size)
    return GameState(hands=hands, deck=remaining, current_player=starting_player, rules=rules)


def take_top_capture(captures: CaptureSet) -> Tuple[Optional[Card], CaptureSet]:
    """Remove the top card of the last capture group, dropping an emptied group."""
    if not captures:
        return None, captures
    last = captures[-1]
    if not last:
        return None, captures
    card = last[-1]
    remaining = last[:-1]
    groups = captures[:-1] + ((remaining,) if remaining else ())
    return card, groups


def restore_to_captures(captures: CaptureSet, cards: Sequence[Card]) -> CaptureSet:
    """Put staged opponent cards back on the last capture group (new group if none)."""
    if not cards:
        return captures
    if not captures:
        return (tuple(cards),)
    return captures[:-1] + (captures[-1] + tuple(cards),)


def find_integrity_issues(state: GameState, expected: Optional[Sequence[Card]] = None) -> List[str]:
    """Describe invariant violations; an empty list means the state is sound."""
    issues: List[str] = []
    cards = state.all_cards()
    duplicates = [card for card, count in Counter(cards).items() if count > 1]
    if duplicates:
        issues.append(f"Duplicated cards: {', '.join(str(card) for card in duplicates)}")
    if expected is not None and Counter(cards) != Counter(expected):
        issues.append("Card multiset differs from the expected deck.")
    if state.current_player not in (0, 1):
        issues.append(f"Invalid current player index {state.current_player}")
    if state.round not in (1, 2):
        issues.append(f"Invalid round {state.round}")
    owners_seen = set()
    for entity in state.table:
        if isinstance(entity, (Build, TemporaryStack)):
            if entity.owner not in (0, 1):
                issues.append(f"Entity {entity_cards(entity)} has out-of-range owner {entity.owner}")
            if isinstance(entity, TemporaryStack):
                if entity.owner in owners_seen:
                    issues.append(f"Player {entity.owner} owns more than one staging stack")
                owners_seen.add(entity.owner)
    return issues


def normalize_state(state: GameState) -> GameState:
    """Best-effort repair of corrupted owner indices.

    These indicate upstream bugs; they are logged rather than raised so a
    session in progress keeps running.
    """
    repaired: List[TableEntity] = []
    changed = False
    for entity in state.table:
        if isinstance(entity, (Build, TemporaryStack)) and entity.owner not in (0, 1):
            owner = min(max(entity.owner, 0), 1)
            logger.error("Normalizing out-of-range owner %s to %s on %r", entity.owner, owner, entity)
            entity = replace(entity, owner=owner)
            changed = True
        repaired.append(entity)
    if state.current_player not in (0, 1):
        logger.error("Normalizing out-of-range current player %s", state.current_player)
        state = replace(state, current_player=min(max(state.current_player, 0), 1))
    return state.with_table(repaired) if changed else state
