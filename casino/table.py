"""Table entities: loose cards, builds and temporary staging stacks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple, Union

from .cards import Card, card_sum


class Origin(Enum):
    """Zone a staged card came from, so cancelling can put it back."""

    HAND = "hand"
    TABLE = "table"
    OPPONENT_CAPTURE = "opponent_capture"


@dataclass(frozen=True)
class StackCard:
    card: Card
    origin: Origin


@dataclass(frozen=True)
class LooseCard:
    card: Card

    @property
    def cards(self) -> Tuple[Card, ...]:
        return (self.card,)


@dataclass(frozen=True)
class Build:
    build_id: str
    cards: Tuple[Card, ...]
    value: int
    owner: int
    extendable: bool = True


@dataclass(frozen=True)
class TemporaryStack:
    stack_id: str
    entries: Tuple[StackCard, ...]
    owner: int

    @property
    def cards(self) -> Tuple[Card, ...]:
        return tuple(entry.card for entry in self.entries)

    @property
    def total(self) -> int:
        return card_sum(self.cards)

    def cards_from(self, origin: Origin) -> Tuple[Card, ...]:
        return tuple(entry.card for entry in self.entries if entry.origin is origin)

    def non_hand_cards(self) -> Tuple[Card, ...]:
        return tuple(entry.card for entry in self.entries if entry.origin is not Origin.HAND)

    def with_entry(self, entry: StackCard, *, at_bottom: bool = False) -> "TemporaryStack":
        entries = (entry,) + self.entries if at_bottom else self.entries + (entry,)
        return TemporaryStack(stack_id=self.stack_id, entries=entries, owner=self.owner)


TableEntity = Union[LooseCard, Build, TemporaryStack]


class UnknownEntity(TypeError):
    """Raised when a table entity variant is not handled."""


def entity_cards(entity: TableEntity) -> Tuple[Card, ...]:
    """Every card physically held by a table entity."""
    if isinstance(entity, (LooseCard, Build, TemporaryStack)):
        return entity.cards
    raise UnknownEntity(f"Unknown table entity: {entity!r}")


def table_cards(table: Iterable[TableEntity]) -> Tuple[Card, ...]:
    return tuple(card for entity in table for card in entity_cards(entity))


def loose_cards(table: Iterable[TableEntity]) -> Tuple[Card, ...]:
    return tuple(entity.card for entity in table if isinstance(entity, LooseCard))


def builds(table: Iterable[TableEntity]) -> Tuple[Build, ...]:
    return tuple(entity for entity in table if isinstance(entity, Build))


def stacks(table: Iterable[TableEntity]) -> Tuple[TemporaryStack, ...]:
    return tuple(entity for entity in table if isinstance(entity, TemporaryStack))


def find_loose(table: Iterable[TableEntity], card: Card) -> Optional[LooseCard]:
    for entity in table:
        if isinstance(entity, LooseCard) and entity.card == card:
            return entity
    return None


def find_build(table: Iterable[TableEntity], build_id: str) -> Optional[Build]:
    for entity in table:
        if isinstance(entity, Build) and entity.build_id == build_id:
            return entity
    return None


def find_stack(table: Iterable[TableEntity], stack_id: str) -> Optional[TemporaryStack]:
    for entity in table:
        if isinstance(entity, TemporaryStack) and entity.stack_id == stack_id:
            return entity
    return None


def build_owned_by(table: Iterable[TableEntity], player: int) -> Optional[Build]:
    for entity in table:
        if isinstance(entity, Build) and entity.owner == player:
            return entity
    return None


def stack_owned_by(table: Iterable[TableEntity], player: int) -> Optional[TemporaryStack]:
    for entity in table:
        if isinstance(entity, TemporaryStack) and entity.owner == player:
            return entity
    return None


def same_entity(left: TableEntity, right: TableEntity) -> bool:
    """Identity on the table: builds and stacks by id, loose cards by card."""
    if isinstance(left, LooseCard) and isinstance(right, LooseCard):
        return left.card == right.card
    if isinstance(left, Build) and isinstance(right, Build):
        return left.build_id == right.build_id
    if isinstance(left, TemporaryStack) and isinstance(right, TemporaryStack):
        return left.stack_id == right.stack_id
    return False


def without(table: Sequence[TableEntity], *removed: TableEntity) -> Tuple[TableEntity, ...]:
    """Return the table minus the given entities."""
    return tuple(entity for entity in table if not any(same_entity(entity, gone) for gone in removed))


def replace_entity(table: Sequence[TableEntity], old: TableEntity, new: TableEntity) -> Tuple[TableEntity, ...]:
    """Swap ``old`` for ``new`` keeping its position on the table."""
    return tuple(new if same_entity(entity, old) else entity for entity in table)
