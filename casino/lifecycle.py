"""Round transitions, end-of-game sweep and final scoring."""

from __future__ import annotations

import logging
from dataclasses import replace

from .deck import deal_alternately
from .scoring import score_captures
from .state import GameState, restore_to_captures
from .table import LooseCard, Origin, TemporaryStack, stacks, table_cards, without

logger = logging.getLogger(__name__)


def advance_lifecycle(state: GameState) -> GameState:
    """Deal round 2 or finish the game once both hands are exhausted.

    Nothing happens while a staging stack is still on the table: the stack
    holds cards that must be resolved first. A player left without cards
    while the opponent still holds some passes the turn.
    """
    if state.game_over:
        return state
    if not state.hands_empty():
        current = state.current_player
        if not state.hand(current) and state.staging_stack(current) is None:
            logger.debug("Player %d has no cards left; passing the turn", current)
            return state.end_turn()
        return state
    if state.has_staging_stack():
        return state
    if state.round == 1 and len(state.deck) >= state.rules.round_two_min_deck:
        return start_round_two(state)
    return finish_game(state)


def start_round_two(state: GameState) -> GameState:
    hands, remaining = deal_alternately(state.deck, state.rules.hand_size)
    logger.info("Dealing round 2: %d cards each, %d left in deck", len(hands[0]), len(remaining))
    return replace(state, hands=hands, deck=remaining, round=2)


def dissolve_stacks(state: GameState) -> GameState:
    """Return every staged card to the zone it came from."""
    for stack in stacks(state.table):
        state = return_stack_cards(state, stack)
    return state


def return_stack_cards(state: GameState, stack: TemporaryStack) -> GameState:
    owner = stack.owner
    opponent = state.opponent(owner)
    table = list(without(state.table, stack))
    table.extend(LooseCard(card) for card in stack.cards_from(Origin.TABLE))
    state = state.with_table(table)
    state = state.with_hand(owner, state.hand(owner) + stack.cards_from(Origin.HAND))
    returned = stack.cards_from(Origin.OPPONENT_CAPTURE)
    if returned:
        state = state.with_captures(opponent, restore_to_captures(state.captures[opponent], returned))
    return state


def sweep_table(state: GameState) -> GameState:
    """Award the remaining table to the last capturer; with none, the cards stay unscored."""
    remaining = table_cards(state.table)
    if not remaining:
        return state
    if state.last_capturer is None:
        logger.info("No capture was made; %d table cards are forfeited", len(remaining))
        return state
    player = state.last_capturer
    logger.info("Sweeping %d table cards to player %d", len(remaining), player)
    state = state.with_captures(player, state.captures[player] + (remaining,))
    return state.with_table(())


def finish_game(state: GameState) -> GameState:
    """Sweep, score and mark the game over. Idempotent."""
    if state.game_over:
        return state
    state = sweep_table(dissolve_stacks(state))
    score = score_captures(
        [state.flat_captures(0), state.flat_captures(1)],
        state.rules.scoring,
    )
    logger.info("Game over: totals %s, winner %s", score.totals, score.winner)
    return replace(state, game_over=True, score=score)
