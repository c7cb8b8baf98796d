"""Apply Casino actions to an immutable game state.

``apply_action`` is the only entry point that produces a new state. Handlers
raise ``IllegalAction`` or ``TargetNotFound``; the boundary converts those
into ``Rejected`` results so callers never see exceptions for bad moves.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .actions import Action, ActionType, EntityRef
from .cards import Card, card_sum, remove_card, sort_by_value
from .lifecycle import advance_lifecycle, finish_game, return_stack_cards
from .results import (
    GAME_OVER,
    INTERNAL_ERROR,
    MALFORMED,
    NOT_YOUR_TURN,
    Accepted,
    ActionResult,
    CasinoError,
    IllegalAction,
    NeedsDisambiguation,
    Rejected,
    TargetNotFound,
)
from .state import GameState, take_top_capture
from .table import (
    Build,
    LooseCard,
    Origin,
    StackCard,
    TableEntity,
    TemporaryStack,
    build_owned_by,
    builds,
    find_build,
    find_loose,
    find_stack,
    replace_entity,
    same_entity,
    without,
)
from .validators import (
    ONE_HAND_CARD,
    ONE_STACK,
    PENDING_STACK,
    Verdict,
    possible_builds_from_stack,
    stack_capture_value,
    validate_add_to_opponent_build,
    validate_add_to_own_build,
    validate_base_build,
    validate_build,
    validate_capture,
    validate_extend_to_merge,
    validate_merge_into_own_build,
    validate_new_stack,
    validate_no_pending_stack,
    validate_reinforce_build_with_stack,
    validate_reinforce_opponent_build_with_stack,
    validate_stack_build,
    validate_trail,
)

logger = logging.getLogger(__name__)

Handler = Callable[[GameState, Action], ActionResult]

INVALID_COMBINATION = "This combination is not a valid capture or build."


def apply_action(state: GameState, action: Action) -> ActionResult:
    """Validate and apply ``action``, then advance rounds or end the game."""
    if state.game_over:
        return Rejected("The game is over.", GAME_OVER)
    if action.action_type is not ActionType.END_GAME and action.player != state.current_player:
        return Rejected("It's not your turn.", NOT_YOUR_TURN)

    try:
        result = _dispatch(state, action)
    except TargetNotFound as exc:
        logger.info("Player %d %s: target missing (%s)", action.player, action.action_type.value, exc.detail)
        return Rejected(str(exc), exc.code)
    except CasinoError as exc:
        logger.info("Player %d %s rejected: %s", action.player, action.action_type.value, exc)
        return Rejected(str(exc), exc.code)
    except Exception:
        logger.exception("Unexpected failure applying %s", action.action_type.value)
        return Rejected("Internal engine error.", INTERNAL_ERROR)

    if isinstance(result, Accepted):
        result = replace(result, state=advance_lifecycle(result.state))
        logger.debug(
            "Player %d %s accepted; next player %d, round %d",
            action.player,
            action.action_type.value,
            result.state.current_player,
            result.state.round,
        )
    return result


def _dispatch(state: GameState, action: Action) -> ActionResult:
    handler = _HANDLERS.get(action.action_type)
    if handler is None:
        raise IllegalAction(f"Unsupported action type: {action.action_type.value}", MALFORMED)
    return handler(state, action)


# Lookup helpers -------------------------------------------------------------


def _require(verdict: Verdict) -> Verdict:
    if not verdict:
        raise IllegalAction(verdict.reason)
    return verdict


def _require_card(action: Action) -> Card:
    if action.card is None:
        raise IllegalAction("This action needs a card.", MALFORMED)
    return action.card


def _hand_card(state: GameState, player: int, action: Action) -> Card:
    card = _require_card(action)
    if card not in state.hand(player):
        raise TargetNotFound(f"{card} is not in player {player}'s hand")
    return card


def _play_from_hand(state: GameState, player: int, card: Card) -> GameState:
    return state.with_hand(player, remove_card(state.hand(player), card))


def _resolve(state: GameState, ref: EntityRef) -> TableEntity:
    entity: Optional[TableEntity] = None
    if ref.kind == "loose" and ref.card is not None:
        entity = find_loose(state.table, ref.card)
    elif ref.kind == "build" and ref.entity_id:
        entity = find_build(state.table, ref.entity_id)
    elif ref.kind == "stack" and ref.entity_id:
        entity = find_stack(state.table, ref.entity_id)
    if entity is None:
        raise TargetNotFound(f"No {ref.kind} matching {ref.card or ref.entity_id}")
    return entity


def _build(state: GameState, build_id: Optional[str]) -> Build:
    if not build_id:
        raise IllegalAction("This action needs a build id.", MALFORMED)
    build = find_build(state.table, build_id)
    if build is None:
        raise TargetNotFound(f"No build {build_id}")
    return build


def _own_stack(state: GameState, player: int, stack_id: Optional[str]) -> TemporaryStack:
    stack = find_stack(state.table, stack_id) if stack_id else state.staging_stack(player)
    if stack is None:
        raise TargetNotFound(f"No staging stack {stack_id or ''}".strip())
    if stack.owner != player:
        raise IllegalAction("You can only interact with your own temporary stacks.")
    return stack


def _loose_targets(state: GameState, action: Action) -> List[Card]:
    cards = list(action.cards)
    for ref in action.targets:
        if ref.kind != "loose" or ref.card is None:
            raise IllegalAction("Builds can only be made from loose table cards.")
        cards.append(ref.card)
    for card in cards:
        if find_loose(state.table, card) is None:
            raise TargetNotFound(f"{card} is not loose on the table")
    if len(set(cards)) != len(cards):
        raise IllegalAction("The same table card was selected twice.", MALFORMED)
    return cards


def _take_source_card(
    state: GameState, player: int, card: Optional[Card], source: Origin
) -> Tuple[GameState, StackCard]:
    """Remove a card from the zone it is dragged out of."""
    if source is Origin.OPPONENT_CAPTURE:
        opponent = state.opponent(player)
        top, remaining = take_top_capture(state.captures[opponent])
        if top is None:
            raise TargetNotFound("Opponent has no captured cards")
        if card is not None and card != top:
            raise IllegalAction("Only the top card of your opponent's last capture can be used.")
        return state.with_captures(opponent, remaining), StackCard(top, Origin.OPPONENT_CAPTURE)
    if card is None:
        raise IllegalAction("This action needs a card.", MALFORMED)
    if source is Origin.TABLE:
        loose = find_loose(state.table, card)
        if loose is None:
            raise TargetNotFound(f"{card} is not loose on the table")
        return state.with_table(without(state.table, loose)), StackCard(card, Origin.TABLE)
    if card not in state.hand(player):
        raise TargetNotFound(f"{card} is not in player {player}'s hand")
    return _play_from_hand(state, player, card), StackCard(card, Origin.HAND)


def _new_build(state: GameState, cards: Sequence[Card], value: int, owner: int, extendable: bool) -> Tuple[Build, GameState]:
    build_id, state = state.issue_id("build")
    return Build(build_id=build_id, cards=tuple(cards), value=value, owner=owner, extendable=extendable), state


def _extendable(cards: Sequence[Card], value: int, state: GameState) -> bool:
    return card_sum(cards) == value and len(cards) < state.rules.max_build_cards


def _disband(state: GameState, stack: TemporaryStack, notice: Optional[str] = None) -> Accepted:
    return Accepted(return_stack_cards(state, stack).end_turn(), notice=notice)


# Handlers -------------------------------------------------------------------


def _trail(state: GameState, action: Action) -> ActionResult:
    player = action.player
    card = _hand_card(state, player, action)
    if state.round == 2:
        # Round 2 trails are staged so they can be taken back or reused.
        if state.staging_stack(player) is not None:
            raise IllegalAction(ONE_STACK)
        stack_id, state = state.issue_id("stack")
        stack = TemporaryStack(stack_id=stack_id, entries=(StackCard(card, Origin.HAND),), owner=player)
        state = _play_from_hand(state, player, card)
        return Accepted(state.with_table(state.table + (stack,)), notice="Trail staged. Finalize to confirm it.")
    _require(validate_no_pending_stack(state, player))
    _require(validate_trail(state, player, card))
    state = _play_from_hand(state, player, card)
    return Accepted(state.with_table(state.table + (LooseCard(card),)).end_turn())


def _capture(state: GameState, action: Action) -> ActionResult:
    player = action.player
    card = _require_card(action)
    refs = action.targets or ((action.target,) if action.target is not None else ())
    if not refs:
        raise IllegalAction("Select at least one card to capture.")
    entities: List[TableEntity] = []
    for ref in refs:
        entity = _resolve(state, ref)
        if any(same_entity(entity, seen) for seen in entities):
            raise IllegalAction("The same target was selected twice.", MALFORMED)
        entities.append(entity)

    in_hand = card in state.hand(player)
    if not in_hand and not any(
        isinstance(entity, TemporaryStack) and entity.owner == player and card in entity.cards_from(Origin.HAND)
        for entity in entities
    ):
        raise TargetNotFound(f"{card} is not in player {player}'s hand")
    pending = state.staging_stack(player)
    if pending is not None and not any(same_entity(entity, pending) for entity in entities):
        raise IllegalAction(PENDING_STACK)
    _require(validate_capture(state, player, card, entities))

    captured: List[Card] = []
    for entity in entities:
        captured.extend(c for c in entity.cards if c != card)
    if in_hand:
        state = _play_from_hand(state, player, card)
    group = tuple(captured) + (card,)
    state = state.with_table(without(state.table, *entities))
    state = state.with_captures(player, state.captures[player] + (group,))
    logger.debug("Player %d captured %d cards with %s", player, len(group), card)
    return Accepted(replace(state, last_capturer=player).end_turn())


def _default_build_value(card: Card, loose: Sequence[Card]) -> int:
    if all(other.value == card.value for other in loose):
        return card.value or 0
    return card_sum(loose) + (card.value or 0)


def _build_action(state: GameState, action: Action) -> ActionResult:
    player = action.player
    card = _hand_card(state, player, action)
    _require(validate_no_pending_stack(state, player))
    loose = _loose_targets(state, action)
    value = action.value if action.value is not None else _default_build_value(card, loose)
    _require(validate_build(state, player, card, loose, value))

    members = loose + [card]
    if card_sum(members) == value:
        ordered = sort_by_value(members)
    else:
        ordered = list(loose) + [card]
    build, state = _new_build(state, ordered, value, player, _extendable(members, value, state))
    state = _play_from_hand(state, player, card)
    table = without(state.table, *(LooseCard(c) for c in loose)) + (build,)
    return Accepted(state.with_table(table).end_turn())


def _base_build(state: GameState, action: Action) -> ActionResult:
    player = action.player
    card = _hand_card(state, player, action)
    _require(validate_no_pending_stack(state, player))
    if action.target is None or action.target.kind != "loose" or action.target.card is None:
        raise IllegalAction("A base build needs a loose base card.", MALFORMED)
    base = action.target.card
    if find_loose(state.table, base) is None:
        raise TargetNotFound(f"{base} is not loose on the table")
    others = [other for other in _loose_targets(state, replace(action, targets=())) if other != base]
    verdict = _require(validate_base_build(state, player, card, base, others))

    ordered = [base] + sort_by_value(others) + [card]
    build, state = _new_build(state, ordered, verdict.value or 0, player, extendable=False)
    state = _play_from_hand(state, player, card)
    table = without(state.table, *(LooseCard(c) for c in [base, *others])) + (build,)
    return Accepted(state.with_table(table).end_turn())


def _add_to_opponent_build(state: GameState, action: Action) -> ActionResult:
    player = action.player
    card = _hand_card(state, player, action)
    build = _build(state, action.build_id)
    _require(validate_no_pending_stack(state, player))
    verdict = _require(validate_add_to_opponent_build(state, player, build, card))

    if verdict.reinforce:
        updated = replace(build, cards=build.cards + (card,), owner=player, extendable=False)
    else:
        cards = tuple(sort_by_value(build.cards + (card,)))
        updated = replace(
            build,
            cards=cards,
            value=verdict.value,
            owner=player,
            extendable=len(cards) < state.rules.max_build_cards,
        )
    logger.debug("Player %d took over build %s at %d", player, build.build_id, updated.value)
    state = _play_from_hand(state, player, card)
    return Accepted(state.with_table(replace_entity(state.table, build, updated)).end_turn())


def _add_to_own_build(state: GameState, action: Action) -> ActionResult:
    player = action.player
    card = _hand_card(state, player, action)
    build = _build(state, action.build_id)
    _require(validate_no_pending_stack(state, player))
    _require(validate_add_to_own_build(state, player, build, card))
    updated = replace(build, cards=build.cards + (card,), extendable=False)
    state = _play_from_hand(state, player, card)
    return Accepted(state.with_table(replace_entity(state.table, build, updated)).end_turn())


def _extend_to_merge(state: GameState, action: Action) -> ActionResult:
    player = action.player
    card = _hand_card(state, player, action)
    opponent_build = _build(state, action.build_id)
    if action.own_build_id:
        own = _build(state, action.own_build_id)
    else:
        own = build_owned_by(state.table, player)
        if own is None:
            raise IllegalAction("You need a build of your own to merge into.")
    _require(validate_extend_to_merge(state, player, own, opponent_build, card))

    merged = replace(
        own,
        cards=tuple(sort_by_value(own.cards + opponent_build.cards + (card,))),
        extendable=False,
    )
    state = _play_from_hand(state, player, card)
    table = replace_entity(without(state.table, opponent_build), own, merged)
    return Accepted(state.with_table(table), notice=f"Merged into your build of {own.value}.")


def _reinforce_opponent_build(state: GameState, action: Action) -> ActionResult:
    player = action.player
    stack = _own_stack(state, player, action.stack_id)
    build = _build(state, action.build_id)
    _require(validate_reinforce_opponent_build_with_stack(state, player, stack, build))
    updated = replace(build, cards=build.cards + stack.cards, extendable=False)
    table = without(replace_entity(state.table, build, updated), stack)
    return Accepted(state.with_table(table), notice=f"Reinforced opponent's build of {build.value}.")


def _reinforce_build_with_stack(state: GameState, action: Action) -> ActionResult:
    player = action.player
    stack = _own_stack(state, player, action.stack_id)
    build = _build(state, action.build_id)
    verdict = validate_reinforce_build_with_stack(state, player, stack, build)
    if not verdict:
        logger.info("Player %d stack %s disbanded: %s", player, stack.stack_id, verdict.reason)
        return _disband(state, stack, notice=verdict.reason)
    updated = replace(build, cards=build.cards + stack.cards, owner=player, extendable=False)
    table = without(replace_entity(state.table, build, updated), stack)
    return Accepted(state.with_table(table).end_turn())


def _merge_into_own_build(state: GameState, action: Action) -> ActionResult:
    player = action.player
    stack = _own_stack(state, player, action.stack_id)
    build = _build(state, action.build_id)
    _require(validate_merge_into_own_build(state, player, stack, build))
    updated = replace(build, cards=build.cards + stack.cards, extendable=False)
    table = without(replace_entity(state.table, build, updated), stack)
    return Accepted(state.with_table(table))


def _create_build_from_stack(state: GameState, action: Action) -> ActionResult:
    player = action.player
    card = _hand_card(state, player, action)
    stack = _own_stack(state, player, action.stack_id)
    verdict = _require(validate_stack_build(state, player, stack, card))
    cards = stack.cards + (card,)
    value = verdict.value or 0
    extendable = not verdict.reinforce and _extendable(cards, value, state)
    build, state = _new_build(state, cards, value, player, extendable)
    state = _play_from_hand(state, player, card)
    return Accepted(state.with_table(replace_entity(state.table, stack, build)).end_turn())


def _create_build_with_value(state: GameState, action: Action) -> ActionResult:
    player = action.player
    stack = _own_stack(state, player, action.stack_id)
    if action.value is None:
        raise IllegalAction("Choose a value for the build.", MALFORMED)
    if action.value not in possible_builds_from_stack(state, player, stack):
        raise IllegalAction(f"You cannot build {action.value} from this stack.")
    build, state = _new_build(state, stack.cards, action.value, player, _extendable(stack.cards, action.value, state))
    return Accepted(state.with_table(replace_entity(state.table, stack, build)).end_turn())


def _create_staging_stack(state: GameState, action: Action) -> ActionResult:
    player = action.player
    if action.target is None or action.target.kind != "loose" or action.target.card is None:
        raise IllegalAction("A staging stack starts on a loose table card.", MALFORMED)
    target = find_loose(state.table, action.target.card)
    if target is None:
        raise TargetNotFound(f"{action.target.card} is not loose on the table")
    if action.source is Origin.TABLE and action.card == target.card:
        raise IllegalAction("A card cannot be stacked on itself.", MALFORMED)
    _require(validate_new_stack(state, player, [card for card in (action.card, target.card) if card is not None]))

    state, dragged = _take_source_card(state, player, action.card, action.source)
    if dragged.card.is_face:
        raise IllegalAction("Face cards cannot be staged.")
    base = StackCard(target.card, Origin.TABLE)
    # The bigger card sits at the bottom.
    if (dragged.card.value or 0) > (target.card.value or 0):
        entries = (dragged, base)
    else:
        entries = (base, dragged)
    stack_id, state = state.issue_id("stack")
    stack = TemporaryStack(stack_id=stack_id, entries=entries, owner=player)
    return Accepted(state.with_table(replace_entity(state.table, target, stack)))


def _add_to_staging_stack(state: GameState, action: Action) -> ActionResult:
    player = action.player
    stack = _own_stack(state, player, action.stack_id)
    state, entry = _take_source_card(state, player, action.card, action.source)
    if entry.card.is_face:
        raise IllegalAction("Face cards cannot be staged.")
    updated = stack.with_entry(entry, at_bottom=entry.origin is Origin.TABLE)
    return Accepted(state.with_table(replace_entity(state.table, stack, updated)))


def _stage_opponent_card(state: GameState, action: Action) -> ActionResult:
    player = action.player
    if state.staging_stack(player) is not None:
        raise IllegalAction(ONE_STACK)
    state, entry = _take_source_card(state, player, action.card, Origin.OPPONENT_CAPTURE)
    if entry.card.is_face:
        raise IllegalAction("Face cards cannot be staged.")
    stack_id, state = state.issue_id("stack")
    stack = TemporaryStack(stack_id=stack_id, entries=(entry,), owner=player)
    return Accepted(state.with_table(state.table + (stack,)))


def _cancel_staging_stack(state: GameState, action: Action) -> ActionResult:
    stack = _own_stack(state, action.player, action.stack_id)
    return Accepted(return_stack_cards(state, stack))


def _disband_staging_stack(state: GameState, action: Action) -> ActionResult:
    stack = _own_stack(state, action.player, action.stack_id)
    return _disband(state, stack)


def finalize_options(state: GameState, player: int, stack: TemporaryStack) -> List[Action]:
    """Every move a staging stack with one hand card could resolve into."""
    options: List[Action] = []
    hand_cards = stack.cards_from(Origin.HAND)
    if len(hand_cards) != 1:
        return options
    hand_card = hand_cards[0]

    if stack_capture_value(stack) is not None:
        options.append(
            Action(
                ActionType.CAPTURE,
                player,
                card=hand_card,
                targets=(EntityRef.stack(stack.stack_id),),
                label=f"Capture {len(stack.non_hand_cards())} cards with {hand_card}",
            )
        )
    for value in possible_builds_from_stack(state, player, stack):
        options.append(
            Action(
                ActionType.CREATE_BUILD_WITH_VALUE,
                player,
                stack_id=stack.stack_id,
                value=value,
                label=f"Build {value}",
            )
        )
    for build in builds(state.table):
        if validate_reinforce_build_with_stack(state, player, stack, build):
            options.append(
                Action(
                    ActionType.REINFORCE_BUILD_WITH_STACK,
                    player,
                    stack_id=stack.stack_id,
                    build_id=build.build_id,
                    label=f"Add to build of {build.value}",
                )
            )
    return options


def _finalize_staging_stack(state: GameState, action: Action) -> ActionResult:
    player = action.player
    stack = _own_stack(state, player, action.stack_id)

    if len(stack.entries) == 1 and stack.entries[0].origin is Origin.HAND:
        card = stack.entries[0].card
        _require(validate_trail(state, player, card))
        return Accepted(state.with_table(replace_entity(state.table, stack, LooseCard(card))).end_turn())

    if len(stack.cards_from(Origin.HAND)) != 1:
        return _disband(state, stack, notice=ONE_HAND_CARD)

    options = finalize_options(state, player, stack)
    if not options:
        return _disband(state, stack, notice=INVALID_COMBINATION)
    if len(options) == 1:
        return _dispatch(state, options[0])
    logger.debug("Stack %s has %d finalize options", stack.stack_id, len(options))
    return NeedsDisambiguation(state=state, options=tuple(options))


def _end_game(state: GameState, action: Action) -> ActionResult:
    logger.info("Player %d ended the game", action.player)
    return Accepted(finish_game(state))


_HANDLERS: Dict[ActionType, Handler] = {
    ActionType.TRAIL: _trail,
    ActionType.CAPTURE: _capture,
    ActionType.BUILD: _build_action,
    ActionType.ADD_TO_OPPONENT_BUILD: _add_to_opponent_build,
    ActionType.ADD_TO_OWN_BUILD: _add_to_own_build,
    ActionType.BASE_BUILD: _base_build,
    ActionType.CREATE_BUILD_FROM_STACK: _create_build_from_stack,
    ActionType.EXTEND_TO_MERGE: _extend_to_merge,
    ActionType.REINFORCE_OPPONENT_BUILD: _reinforce_opponent_build,
    ActionType.REINFORCE_BUILD_WITH_STACK: _reinforce_build_with_stack,
    ActionType.MERGE_INTO_OWN_BUILD: _merge_into_own_build,
    ActionType.CREATE_BUILD_WITH_VALUE: _create_build_with_value,
    ActionType.CREATE_STAGING_STACK: _create_staging_stack,
    ActionType.ADD_TO_STAGING_STACK: _add_to_staging_stack,
    ActionType.FINALIZE_STAGING_STACK: _finalize_staging_stack,
    ActionType.CANCEL_STAGING_STACK: _cancel_staging_stack,
    ActionType.DISBAND_STAGING_STACK: _disband_staging_stack,
    ActionType.STAGE_OPPONENT_CARD: _stage_opponent_card,
    ActionType.END_GAME: _end_game,
}
