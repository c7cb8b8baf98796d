"""Rule predicates for Casino actions.

Every validator is pure: it inspects the state and the proposed move and
returns a :class:`Verdict`. Handlers in :mod:`casino.reducer` turn a denied
verdict into an ``IllegalAction``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .cards import Card, card_sum, has_face_card, holds_value
from .partition import can_partition_into_sums, candidate_build_values
from .state import GameState
from .table import Build, LooseCard, Origin, TableEntity, TemporaryStack, builds, stack_owned_by


@dataclass(frozen=True)
class Verdict:
    allowed: bool
    reason: str = ""
    value: Optional[int] = None
    reinforce: bool = False

    @classmethod
    def allow(cls, value: Optional[int] = None, *, reinforce: bool = False) -> "Verdict":
        return cls(True, value=value, reinforce=reinforce)

    @classmethod
    def deny(cls, reason: str) -> "Verdict":
        return cls(False, reason=reason)

    def __bool__(self) -> bool:
        return self.allowed


ONE_BUILD = "You can only have one active build at a time. Use temp builds for card manipulation."
ONE_STACK = "You can only have one staging stack at a time."
PENDING_STACK = "Finish, cancel or disband your staging stack first."
ONE_HAND_CARD = "A final move must be made with exactly one card from your hand."
NOTHING_TO_CAPTURE = "Select at least one card to capture."


def has_active_build(table: Iterable[TableEntity], player: int, *, ignoring: Optional[str] = None) -> bool:
    """True if the player owns a permanent build (staging stacks do not count)."""
    return any(entity.owner == player and entity.build_id != ignoring for entity in builds(table))


def opponent_has_build_value(table: Iterable[TableEntity], player: int, value: int) -> bool:
    return any(build.owner != player and build.value == value for build in builds(table))


def validate_no_pending_stack(state: GameState, player: int) -> Verdict:
    if stack_owned_by(state.table, player) is not None:
        return Verdict.deny(PENDING_STACK)
    return Verdict.allow()


def validate_new_build(
    state: GameState,
    player: int,
    played_card: Card,
    value: int,
    remaining_hand: Sequence[Card],
) -> Verdict:
    """Checks shared by every path that creates a new permanent build."""
    if has_active_build(state.table, player):
        return Verdict.deny(ONE_BUILD)
    if value > state.rules.max_build_value:
        return Verdict.deny(f"Cannot build. The total value ({value}) would be over {state.rules.max_build_value}.")
    if not holds_value(remaining_hand, value, excluding=played_card):
        return Verdict.deny(f"Cannot build {value}. You do not have a card of this value to capture it later.")
    if opponent_has_build_value(state.table, player, value):
        return Verdict.deny(f"You cannot create a build of {value} because your opponent already has one.")
    return Verdict.allow(value)


def validate_build(state: GameState, player: int, card: Card, loose: Sequence[Card], value: int) -> Verdict:
    """Simple and sum builds: a hand card combined with loose table cards."""
    if not loose:
        return Verdict.deny("A build needs at least one card from the table.")
    members = list(loose) + [card]
    if has_face_card(members):
        return Verdict.deny("Face cards cannot be built.")
    verdict = validate_new_build(state, player, card, value, state.hand(player))
    if not verdict:
        return verdict
    if not can_partition_into_sums(members, value):
        return Verdict.deny(f"These cards cannot be grouped into a build of {value}.")
    return Verdict.allow(value)


def validate_base_build(state: GameState, player: int, card: Card, base: Card, others: Sequence[Card]) -> Verdict:
    if has_face_card([card, base, *others]):
        return Verdict.deny("Face cards cannot be built.")
    value = card.value
    assert value is not None
    if base.value == value:
        return Verdict.deny("A base build needs a base card smaller than the card played.")
    verdict = validate_new_build(state, player, card, value, state.hand(player))
    if not verdict:
        return verdict
    if not can_partition_into_sums([base, *others], value):
        return Verdict.deny(f"The table cards cannot be grouped to match {value}.")
    return Verdict.allow(value)


def validate_trail(state: GameState, player: int, card: Card) -> Verdict:
    if state.round == 1 and has_active_build(state.table, player):
        return Verdict.deny("Cannot trail while you own an active build. Capture, build, or use temp builds instead.")
    return Verdict.allow()


def validate_capture(state: GameState, player: int, card: Card, captured: Sequence[TableEntity]) -> Verdict:
    """Capture equivalence: a matching sum, or groups each equal to the card's value."""
    if not captured:
        return Verdict.deny(NOTHING_TO_CAPTURE)
    for entity in captured:
        if isinstance(entity, TemporaryStack) and entity.owner != player:
            return Verdict.deny("You cannot capture another player's temporary stack.")

    if card.is_face:
        if all(isinstance(entity, LooseCard) and entity.card.rank is card.rank for entity in captured):
            return Verdict.allow()
        return Verdict.deny(f"A {card.rank.value} can only capture loose cards of the same rank.")

    value = card.value
    assert value is not None
    loose_values: List[Card] = []
    build_count = 0
    for entity in captured:
        if isinstance(entity, Build):
            if entity.value != value:
                return Verdict.deny(f"Capture value ({value}) does not match the build of {entity.value}.")
            build_count += 1
        elif isinstance(entity, TemporaryStack):
            # Only the capturing card may come from the hand.
            if any(staged != card for staged in entity.cards_from(Origin.HAND)):
                return Verdict.deny(ONE_HAND_CARD)
            loose_values.extend(entity.non_hand_cards())
        else:
            loose_values.append(entity.card)

    if not loose_values:
        if build_count:
            return Verdict.allow(value)
        return Verdict.deny(NOTHING_TO_CAPTURE)
    if has_face_card(loose_values):
        return Verdict.deny("Face cards can only be captured by the same rank.")
    total = card_sum(loose_values)
    if total == value or can_partition_into_sums(loose_values, value):
        return Verdict.allow(value)
    return Verdict.deny(f"Capture value ({value}) does not match selected cards total ({total}).")


def validate_add_to_opponent_build(state: GameState, player: int, build: Build, card: Card) -> Verdict:
    if build.owner == player:
        return Verdict.deny("You cannot use this action on your own build.")
    if has_active_build(state.table, player):
        return Verdict.deny("You cannot take over an opponent's build while you have your own active build. Use temp builds instead.")
    if card.is_face:
        return Verdict.deny("Face cards cannot be built.")
    assert card.value is not None
    remaining = state.hand(player)

    if card.value == build.value:
        if not holds_value(remaining, build.value, excluding=card):
            return Verdict.deny(f"You must have another {build.value} in your hand to reinforce this build.")
        return Verdict.allow(build.value, reinforce=True)

    if not build.extendable or len(build.cards) >= state.rules.max_build_cards:
        return Verdict.deny("This build cannot be extended.")
    new_value = build.value + card.value
    if new_value > state.rules.max_build_value:
        return Verdict.deny(f"Cannot extend build. New value ({new_value}) would be over {state.rules.max_build_value}.")
    if not holds_value(remaining, new_value, excluding=card):
        return Verdict.deny(f"You must have a {new_value} in your hand to make this build.")
    if any(other.build_id != build.build_id and other.value == new_value for other in builds(state.table)):
        return Verdict.deny(f"A build of {new_value} already exists on the table.")
    return Verdict.allow(new_value)


def validate_add_to_own_build(state: GameState, player: int, build: Build, card: Card) -> Verdict:
    if build.owner != player:
        return Verdict.deny("That build belongs to your opponent.")
    if card.value is not None and card.value == build.value:
        if not holds_value(state.hand(player), build.value, excluding=card):
            return Verdict.deny(f"You must have another {build.value} in your hand to reinforce this build.")
        return Verdict.allow(build.value, reinforce=True)
    return Verdict.deny("You cannot extend your own build. Only your opponent can extend it and gain ownership.")


def validate_stack_build(state: GameState, player: int, stack: TemporaryStack, card: Card) -> Verdict:
    """Dropping a hand card on one's own stack to turn it into a permanent build."""
    if stack.owner != player:
        return Verdict.deny("You can only interact with your own temporary stacks.")
    if card.is_face or has_face_card(stack.cards):
        return Verdict.deny("Face cards cannot be built.")
    assert card.value is not None
    stack_value = stack.total
    if stack_value == card.value:
        value, reinforce = stack_value, True
    else:
        value, reinforce = stack_value + card.value, False
    verdict = validate_new_build(state, player, card, value, state.hand(player))
    if not verdict:
        return verdict
    return Verdict.allow(value, reinforce=reinforce)


def validate_reinforce_build_with_stack(state: GameState, player: int, stack: TemporaryStack, build: Build) -> Verdict:
    if len(stack.cards_from(Origin.HAND)) != 1:
        return Verdict.deny("You must use exactly one card from your hand to add to a build.")
    if build.owner != player and has_active_build(state.table, player):
        return Verdict.deny(ONE_BUILD)
    if not can_partition_into_sums(stack.cards, build.value):
        return Verdict.deny(f"The cards in your stack cannot be grouped to match the build value of {build.value}.")
    return Verdict.allow(build.value, reinforce=True)


def validate_merge_into_own_build(state: GameState, player: int, stack: TemporaryStack, build: Build) -> Verdict:
    if build.owner != player:
        return Verdict.deny("You can only merge table cards into your own build.")
    if stack.cards_from(Origin.HAND):
        return Verdict.deny("This action is for merging table cards only.")
    if not can_partition_into_sums(stack.cards, build.value):
        return Verdict.deny(f"The cards in your stack cannot be grouped to match the build value of {build.value}.")
    return Verdict.allow(build.value)


def validate_extend_to_merge(state: GameState, player: int, own_build: Build, opponent_build: Build, card: Card) -> Verdict:
    if own_build.owner != player or opponent_build.owner == player:
        return Verdict.deny("Extend-to-merge needs your build and an opponent's build.")
    if not opponent_build.extendable or len(opponent_build.cards) >= state.rules.max_build_cards:
        return Verdict.deny("This build cannot be extended.")
    if card.value is None:
        return Verdict.deny("Face cards cannot be built.")
    new_value = opponent_build.value + card.value
    if new_value != own_build.value:
        return Verdict.deny(f"Cannot merge. The combined value ({new_value}) does not match your build of {own_build.value}.")
    return Verdict.allow(new_value)


def validate_reinforce_opponent_build_with_stack(
    state: GameState, player: int, stack: TemporaryStack, build: Build
) -> Verdict:
    if build.owner == player:
        return Verdict.deny("This action is for reinforcing an opponent's build.")
    if stack.cards_from(Origin.HAND):
        return Verdict.deny("You cannot use a hand card for this type of reinforcement.")
    if not build.extendable:
        return Verdict.deny("This build cannot be extended.")
    if not can_partition_into_sums(stack.cards, build.value):
        return Verdict.deny(f"The cards in your stack cannot be grouped to match the build value of {build.value}.")
    return Verdict.allow(build.value, reinforce=True)


def validate_new_stack(state: GameState, player: int, cards: Sequence[Card]) -> Verdict:
    if stack_owned_by(state.table, player) is not None:
        return Verdict.deny(ONE_STACK)
    if has_face_card(cards):
        return Verdict.deny("Face cards cannot be staged.")
    return Verdict.allow()


def possible_builds_from_stack(state: GameState, player: int, stack: TemporaryStack) -> List[int]:
    """Every build value the stack could be finalized into."""
    if has_active_build(state.table, player):
        return []
    if len(stack.cards_from(Origin.HAND)) != 1:
        return []
    remaining = state.hand(player)
    if not remaining:
        return []
    return [
        value
        for value in candidate_build_values(stack.cards, remaining)
        if value <= state.rules.max_build_value and not opponent_has_build_value(state.table, player, value)
    ]


def stack_capture_value(stack: TemporaryStack) -> Optional[int]:
    """Value the stack's single hand card would capture the rest with, if valid."""
    hand_cards = stack.cards_from(Origin.HAND)
    if len(hand_cards) != 1 or hand_cards[0].value is None:
        return None
    others = stack.non_hand_cards()
    value = hand_cards[0].value
    if others and (card_sum(others) == value or can_partition_into_sums(others, value)):
        return value
    return None
