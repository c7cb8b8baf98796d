from collections import Counter
from random import Random

from bots.baseline_greedy import GreedyBot
from bots.bot_arena import run_match
from bots.random_bot import RandomBot
from casino.actions import Action, ActionType
from casino.deck import build_deck
from casino.mechanics import legal_actions
from casino.reducer import apply_action
from casino.results import Accepted, NeedsDisambiguation
from casino.state import find_integrity_issues, new_game
from casino.table import stacks


def test_run_match_executes():
    results = run_match(GreedyBot(), RandomBot(seed=1), n_games=2, seed=7)
    assert len(results["scores"]) == 2
    assert len(results["history"]) == 2
    assert sum(results["wins"]) + results["ties"] == 2


def test_cards_are_conserved_through_random_games():
    expected = Counter(build_deck())
    for seed in (1, 2):
        rng = Random(seed)
        bots = [RandomBot(seed=seed), RandomBot(seed=seed + 100)]
        state = new_game(rng=rng)
        steps = 0
        while not state.game_over:
            player = state.current_player
            legal = legal_actions(state, player)
            if legal and steps < 400:
                action = bots[player].choose_action(state, player, legal)
            else:
                action = Action(ActionType.END_GAME, player)
            result = apply_action(state, action)
            if isinstance(result, NeedsDisambiguation):
                result = apply_action(result.state, bots[player].choose_option(result.state, player, result.options))
            assert isinstance(result, Accepted)
            state = result.state
            assert Counter(state.all_cards()) == expected
            assert find_integrity_issues(state) == []
            owners = [stack.owner for stack in stacks(state.table)]
            assert len(owners) == len(set(owners))
            steps += 1
        assert state.game_over
