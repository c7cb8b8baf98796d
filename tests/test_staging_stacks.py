from casino.actions import Action, ActionType, EntityRef
from casino.cards import Card, Rank, Suit
from casino.reducer import INVALID_COMBINATION, ONE_HAND_CARD, apply_action
from casino.results import Accepted, NeedsDisambiguation, Rejected
from casino.state import GameState
from casino.table import Build, LooseCard, Origin, StackCard, TemporaryStack
from casino.validators import ONE_STACK, PENDING_STACK

ACE_D = Card(Rank.ACE, Suit.DIAMONDS)
TWO_C = Card(Rank.TWO, Suit.CLUBS)
TWO_H = Card(Rank.TWO, Suit.HEARTS)
THREE_C = Card(Rank.THREE, Suit.CLUBS)
THREE_S = Card(Rank.THREE, Suit.SPADES)
FOUR_H = Card(Rank.FOUR, Suit.HEARTS)
FOUR_S = Card(Rank.FOUR, Suit.SPADES)
FIVE_C = Card(Rank.FIVE, Suit.CLUBS)
FIVE_H = Card(Rank.FIVE, Suit.HEARTS)
SIX_C = Card(Rank.SIX, Suit.CLUBS)
SIX_S = Card(Rank.SIX, Suit.SPADES)
SEVEN_C = Card(Rank.SEVEN, Suit.CLUBS)
SEVEN_H = Card(Rank.SEVEN, Suit.HEARTS)
EIGHT_C = Card(Rank.EIGHT, Suit.CLUBS)
EIGHT_D = Card(Rank.EIGHT, Suit.DIAMONDS)
NINE_C = Card(Rank.NINE, Suit.CLUBS)
NINE_D = Card(Rank.NINE, Suit.DIAMONDS)
NINE_H = Card(Rank.NINE, Suit.HEARTS)


def starting_state(hand0=(FOUR_H, EIGHT_D, FIVE_C), table=(LooseCard(FOUR_S), LooseCard(ACE_D)), **kwargs):
    return GameState(hands=(tuple(hand0), (NINE_C, SIX_C)), table=tuple(table), **kwargs)


def accepted(state, action):
    result = apply_action(state, action)
    assert isinstance(result, Accepted), result
    return result


def stage(state, card=FOUR_H, target=FOUR_S):
    return accepted(state, Action(ActionType.CREATE_STAGING_STACK, 0, card=card, target=EntityRef.loose(target))).state


def test_create_staging_stack_keeps_turn():
    state = stage(starting_state())

    stack = state.table[0]
    assert stack == TemporaryStack(
        "stack-1",
        (StackCard(FOUR_S, Origin.TABLE), StackCard(FOUR_H, Origin.HAND)),
        owner=0,
    )
    assert state.hand(0) == (EIGHT_D, FIVE_C)
    assert state.current_player == 0


def test_bigger_card_sits_at_the_bottom():
    state = stage(starting_state(), target=ACE_D)
    stack = state.table[1]
    assert stack.entries == (StackCard(FOUR_H, Origin.HAND), StackCard(ACE_D, Origin.TABLE))


def test_cancel_restores_origins_and_keeps_turn():
    state = stage(starting_state())

    after = accepted(state, Action(ActionType.CANCEL_STAGING_STACK, 0)).state

    assert after.hand(0) == (EIGHT_D, FIVE_C, FOUR_H)
    assert after.table == (LooseCard(ACE_D), LooseCard(FOUR_S))
    assert after.current_player == 0


def test_disband_restores_origins_and_ends_turn():
    state = stage(starting_state())

    after = accepted(state, Action(ActionType.DISBAND_STAGING_STACK, 0, stack_id="stack-1")).state

    assert set(after.hand(0)) == {FOUR_H, EIGHT_D, FIVE_C}
    assert set(after.table) == {LooseCard(ACE_D), LooseCard(FOUR_S)}
    assert after.current_player == 1


def test_finalize_with_several_outcomes_needs_a_choice():
    state = stage(starting_state())

    result = apply_action(state, Action(ActionType.FINALIZE_STAGING_STACK, 0))

    assert isinstance(result, NeedsDisambiguation)
    assert result.state == state
    kinds = [option.action_type for option in result.options]
    assert kinds == [ActionType.CAPTURE, ActionType.CREATE_BUILD_WITH_VALUE]
    assert result.options[1].value == 8

    captured = accepted(result.state, result.options[0]).state
    assert captured.captures[0] == ((FOUR_S, FOUR_H),)
    assert captured.table == (LooseCard(ACE_D),)
    assert captured.current_player == 1
    assert captured.last_capturer == 0

    built = accepted(result.state, result.options[1]).state
    build = built.table[0]
    assert isinstance(build, Build)
    assert build.value == 8
    assert build.cards == (FOUR_S, FOUR_H)
    assert build.extendable
    assert built.current_player == 1


def test_finalize_with_one_outcome_applies_it():
    state = stage(starting_state(), target=ACE_D)

    after = accepted(state, Action(ActionType.FINALIZE_STAGING_STACK, 0)).state

    build = after.table[1]
    assert isinstance(build, Build)
    assert build.value == 5
    assert build.owner == 0
    assert after.current_player == 1


def test_finalize_without_outcome_disbands():
    state = stage(starting_state(hand0=(FOUR_H, NINE_H)), target=ACE_D)

    result = accepted(state, Action(ActionType.FINALIZE_STAGING_STACK, 0))

    assert result.notice == INVALID_COMBINATION
    assert result.state.hand(0) == (NINE_H, FOUR_H)
    assert result.state.table == (LooseCard(FOUR_S), LooseCard(ACE_D))
    assert result.state.current_player == 1


def test_finalize_with_two_hand_cards_disbands():
    state = stage(starting_state())
    state = accepted(state, Action(ActionType.ADD_TO_STAGING_STACK, 0, card=FIVE_C)).state

    result = accepted(state, Action(ActionType.FINALIZE_STAGING_STACK, 0))

    assert result.notice == ONE_HAND_CARD
    assert set(result.state.hand(0)) == {FOUR_H, EIGHT_D, FIVE_C}
    assert result.state.current_player == 1


def test_finalize_offers_reinforcing_own_build():
    own = Build("build-1", (FIVE_H, THREE_S), 8, owner=0)
    state = starting_state(hand0=(FOUR_H, EIGHT_D), table=(own, LooseCard(FOUR_S)), next_id=2)
    state = stage(state)

    result = apply_action(state, Action(ActionType.FINALIZE_STAGING_STACK, 0))

    assert isinstance(result, NeedsDisambiguation)
    kinds = [option.action_type for option in result.options]
    assert kinds == [ActionType.CAPTURE, ActionType.REINFORCE_BUILD_WITH_STACK]


def test_one_stack_per_player():
    state = stage(starting_state())

    result = apply_action(
        state, Action(ActionType.CREATE_STAGING_STACK, 0, card=EIGHT_D, target=EntityRef.loose(ACE_D))
    )

    assert isinstance(result, Rejected)
    assert result.reason == ONE_STACK


def test_pending_stack_blocks_turn_ending_actions():
    state = stage(starting_state())

    result = apply_action(state, Action(ActionType.TRAIL, 0, card=EIGHT_D))

    assert isinstance(result, Rejected)
    assert result.reason == PENDING_STACK


def test_add_table_card_goes_to_the_bottom():
    state = stage(starting_state())

    after = accepted(
        state, Action(ActionType.ADD_TO_STAGING_STACK, 0, card=ACE_D, source=Origin.TABLE)
    ).state

    (stack,) = after.table
    assert stack.entries == (
        StackCard(ACE_D, Origin.TABLE),
        StackCard(FOUR_S, Origin.TABLE),
        StackCard(FOUR_H, Origin.HAND),
    )


def test_stage_and_restore_opponent_card():
    state = GameState(
        hands=((FOUR_H, EIGHT_D), (NINE_C,)),
        table=(LooseCard(ACE_D),),
        captures=((), ((SEVEN_C, SEVEN_H),)),
    )

    staged = accepted(state, Action(ActionType.STAGE_OPPONENT_CARD, 0)).state
    assert staged.captures[1] == ((SEVEN_C,),)
    assert staged.table[-1].entries == (StackCard(SEVEN_H, Origin.OPPONENT_CAPTURE),)
    assert staged.current_player == 0

    restored = accepted(staged, Action(ActionType.CANCEL_STAGING_STACK, 0)).state
    assert restored.captures[1] == ((SEVEN_C, SEVEN_H),)


def test_restore_creates_group_when_none_is_left():
    state = GameState(hands=((FOUR_H,), (NINE_C,)), captures=((), ((THREE_C,),)))

    staged = accepted(state, Action(ActionType.STAGE_OPPONENT_CARD, 0)).state
    assert staged.captures[1] == ()

    restored = accepted(staged, Action(ActionType.CANCEL_STAGING_STACK, 0)).state
    assert restored.captures[1] == ((THREE_C,),)


def test_stage_opponent_card_requires_captures():
    state = GameState(hands=((FOUR_H,), (NINE_C,)))

    result = apply_action(state, Action(ActionType.STAGE_OPPONENT_CARD, 0))

    assert isinstance(result, Rejected)
    assert result.code == "target_not_found"


def test_round_two_trail_is_staged_until_finalized():
    state = GameState(hands=((FOUR_H, EIGHT_D), (NINE_C,)), round=2)

    staged = accepted(state, Action(ActionType.TRAIL, 0, card=FOUR_H)).state
    assert staged.table[0].entries == (StackCard(FOUR_H, Origin.HAND),)
    assert staged.current_player == 0

    trailed = accepted(staged, Action(ActionType.FINALIZE_STAGING_STACK, 0)).state
    assert trailed.table == (LooseCard(FOUR_H),)
    assert trailed.current_player == 1


def test_staged_trail_cannot_capture_itself():
    state = GameState(hands=((FOUR_H, EIGHT_D), (NINE_C,)), round=2)
    staged = accepted(state, Action(ActionType.TRAIL, 0, card=FOUR_H)).state
    stack_id = staged.table[0].stack_id

    result = apply_action(
        staged, Action(ActionType.CAPTURE, 0, card=FOUR_H, targets=(EntityRef.stack(stack_id),))
    )

    assert isinstance(result, Rejected)
    assert staged.captures == ((), ())
    assert staged.last_capturer is None


def test_capture_cannot_spend_a_second_hand_card():
    staged = stage(starting_state(hand0=(FOUR_H, EIGHT_D)))
    stack_id = staged.table[0].stack_id

    result = apply_action(
        staged, Action(ActionType.CAPTURE, 0, card=EIGHT_D, targets=(EntityRef.stack(stack_id),))
    )

    assert isinstance(result, Rejected)
    assert result.reason == ONE_HAND_CARD
    assert staged.hand(0) == (EIGHT_D,)


def test_create_build_from_stack():
    state = starting_state(hand0=(FOUR_H, THREE_C, EIGHT_D), table=(LooseCard(ACE_D),))
    state = stage(state, target=ACE_D)

    after = accepted(
        state, Action(ActionType.CREATE_BUILD_FROM_STACK, 0, card=THREE_C, stack_id="stack-1")
    ).state

    (build,) = after.table
    assert build.value == 8
    assert build.cards == (FOUR_H, ACE_D, THREE_C)
    assert build.extendable
    assert after.hand(0) == (EIGHT_D,)
    assert after.current_player == 1


def table_stack_state(owner):
    build = Build("build-1", (FIVE_H, THREE_S), 8, owner=owner)
    state = GameState(
        hands=((EIGHT_C, TWO_H), (NINE_D,)),
        table=(build, LooseCard(SIX_S), LooseCard(TWO_C)),
        next_id=2,
    )
    return accepted(
        state,
        Action(ActionType.CREATE_STAGING_STACK, 0, card=TWO_C, source=Origin.TABLE, target=EntityRef.loose(SIX_S)),
    ).state


def test_merge_table_cards_into_own_build():
    state = table_stack_state(owner=0)
    assert state.table[1].entries == (StackCard(SIX_S, Origin.TABLE), StackCard(TWO_C, Origin.TABLE))

    after = accepted(state, Action(ActionType.MERGE_INTO_OWN_BUILD, 0, build_id="build-1")).state

    (build,) = after.table
    assert build.cards == (FIVE_H, THREE_S, SIX_S, TWO_C)
    assert not build.extendable
    assert after.current_player == 0


def test_reinforce_opponent_build_keeps_owner():
    state = table_stack_state(owner=1)

    after = accepted(state, Action(ActionType.REINFORCE_OPPONENT_BUILD, 0, build_id="build-1")).state

    (build,) = after.table
    assert build.owner == 1
    assert build.cards == (FIVE_H, THREE_S, SIX_S, TWO_C)
    assert not build.extendable
    assert after.current_player == 0


def test_reinforce_build_with_stack_takes_ownership():
    theirs = Build("build-1", (FIVE_H, THREE_S), 8, owner=1)
    state = starting_state(hand0=(FOUR_H, NINE_H), table=(theirs, LooseCard(FOUR_S)), next_id=2)
    state = stage(state)

    after = accepted(state, Action(ActionType.REINFORCE_BUILD_WITH_STACK, 0, build_id="build-1")).state

    (build,) = after.table
    assert build.owner == 0
    assert build.cards == (FIVE_H, THREE_S, FOUR_S, FOUR_H)
    assert not build.extendable
    assert after.current_player == 1


def test_invalid_reinforce_with_stack_disbands():
    theirs = Build("build-1", (FIVE_H, THREE_S), 8, owner=1)
    state = starting_state(hand0=(FOUR_H, NINE_H), table=(theirs, LooseCard(ACE_D)), next_id=2)
    state = stage(state, target=ACE_D)

    result = accepted(state, Action(ActionType.REINFORCE_BUILD_WITH_STACK, 0, build_id="build-1"))

    assert result.notice
    assert FOUR_H in result.state.hand(0)
    assert result.state.table == (theirs, LooseCard(ACE_D))
    assert result.state.current_player == 1
