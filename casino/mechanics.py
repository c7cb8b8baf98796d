"""Legal action enumeration for Casino.

The generator proposes plausible moves and keeps the ones the reducer
accepts, so the result can never disagree with ``apply_action``.
"""

from __future__ import annotations

from itertools import combinations
from typing import Iterable, List, Sequence

from .actions import Action, ActionType, EntityRef
from .cards import Card, card_sum
from .partition import can_partition_into_sums
from .reducer import apply_action
from .results import Rejected
from .state import GameState
from .table import builds, loose_cards

# Loose-card combinations larger than this are not proposed.
MAX_COMBO = 3


def _loose_combos(loose: Sequence[Card], max_size: int = MAX_COMBO) -> Iterable[tuple]:
    for size in range(1, min(max_size, len(loose)) + 1):
        yield from combinations(loose, size)


def _capture_candidates(state: GameState, player: int, card: Card) -> List[Action]:
    table = state.table
    loose = loose_cards(table)
    if card.is_face:
        same_rank = [other for other in loose if other.rank is card.rank]
        if not same_rank:
            return []
        return [Action(ActionType.CAPTURE, player, card=card, targets=tuple(EntityRef.loose(c) for c in same_rank))]

    value = card.value
    candidates: List[Action] = []
    matching_builds = [EntityRef.build(b.build_id) for b in builds(table) if b.value == value]
    numeric = [c for c in loose if not c.is_face]
    for combo in _loose_combos(numeric):
        if card_sum(combo) == value:
            refs = tuple(EntityRef.loose(c) for c in combo)
            candidates.append(Action(ActionType.CAPTURE, player, card=card, targets=refs))
    for ref in matching_builds:
        candidates.append(Action(ActionType.CAPTURE, player, card=card, targets=(ref,)))
    # Take everything that groups into the value.
    if numeric and can_partition_into_sums(numeric, value):
        refs = tuple(EntityRef.loose(c) for c in numeric) + tuple(matching_builds)
        candidates.append(Action(ActionType.CAPTURE, player, card=card, targets=refs))
    return candidates


def _build_candidates(state: GameState, player: int, card: Card) -> List[Action]:
    if card.is_face:
        return []
    numeric = [c for c in loose_cards(state.table) if not c.is_face]
    candidates: List[Action] = []
    for combo in _loose_combos(numeric, 2):
        total = card_sum(combo) + (card.value or 0)
        candidates.append(Action(ActionType.BUILD, player, card=card, cards=tuple(combo), value=total))
        if all(other.value == card.value for other in combo):
            candidates.append(Action(ActionType.BUILD, player, card=card, cards=tuple(combo), value=card.value))
    for base in numeric:
        if (base.value or 0) >= (card.value or 0):
            continue
        for other in numeric:
            if other != base and card_sum((base, other)) == card.value:
                candidates.append(
                    Action(ActionType.BASE_BUILD, player, card=card, target=EntityRef.loose(base), cards=(other,))
                )
    return candidates


def _build_interactions(state: GameState, player: int, card: Card) -> List[Action]:
    candidates: List[Action] = []
    for build in builds(state.table):
        if build.owner == player:
            candidates.append(Action(ActionType.ADD_TO_OWN_BUILD, player, card=card, build_id=build.build_id))
        else:
            candidates.append(Action(ActionType.ADD_TO_OPPONENT_BUILD, player, card=card, build_id=build.build_id))
            candidates.append(Action(ActionType.EXTEND_TO_MERGE, player, card=card, build_id=build.build_id))
    return candidates


def _stack_candidates(state: GameState, player: int) -> List[Action]:
    stack = state.staging_stack(player)
    assert stack is not None
    candidates = [
        Action(ActionType.FINALIZE_STAGING_STACK, player, stack_id=stack.stack_id),
        Action(ActionType.CANCEL_STAGING_STACK, player, stack_id=stack.stack_id),
        Action(ActionType.DISBAND_STAGING_STACK, player, stack_id=stack.stack_id),
    ]
    for card in state.hand(player):
        candidates.append(Action(ActionType.CREATE_BUILD_FROM_STACK, player, card=card, stack_id=stack.stack_id))
    for build in builds(state.table):
        kind = ActionType.MERGE_INTO_OWN_BUILD if build.owner == player else ActionType.REINFORCE_OPPONENT_BUILD
        candidates.append(Action(kind, player, stack_id=stack.stack_id, build_id=build.build_id))
    return candidates


def candidate_actions(state: GameState, player: int) -> List[Action]:
    """Moves worth checking for ``player``, legal or not."""
    if state.staging_stack(player) is not None:
        return _stack_candidates(state, player)
    candidates: List[Action] = []
    for card in state.hand(player):
        candidates.extend(_capture_candidates(state, player, card))
        candidates.extend(_build_candidates(state, player, card))
        candidates.extend(_build_interactions(state, player, card))
        candidates.append(Action(ActionType.TRAIL, player, card=card))
    return candidates


def legal_actions(state: GameState, player: int) -> List[Action]:
    """Return the candidate actions the reducer would accept, without duplicates."""
    if state.game_over or player != state.current_player:
        return []
    legal: List[Action] = []
    seen = set()
    for action in candidate_actions(state, player):
        if action in seen:
            continue
        seen.add(action)
        if not isinstance(apply_action(state, action), Rejected):
            legal.append(action)
    return legal

