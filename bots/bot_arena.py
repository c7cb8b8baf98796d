"""Simple bot arena for Casino."""

from __future__ import annotations

import argparse
from random import Random
from typing import Dict, Iterable, Sequence

from casino.actions import Action, ActionType
from casino.mechanics import legal_actions
from casino.reducer import apply_action
from casino.results import NeedsDisambiguation, Rejected
from casino.rules_schema import DEFAULT_RULES, FACE_CARD_RULES, RuleSet
from casino.state import GameState, new_game

from .base import BotStrategy
from .baseline_greedy import GreedyBot
from .random_bot import RandomBot

BOT_REGISTRY: Dict[str, type[BotStrategy]] = {
    "greedy": GreedyBot,
    "random": RandomBot,
}

MAX_STEPS = 500


def _step(state: GameState, bots: Sequence[BotStrategy], action: Action) -> GameState:
    player = action.player
    result = apply_action(state, action)
    if isinstance(result, NeedsDisambiguation):
        choice = bots[player].choose_option(result.state, player, result.options)
        result = apply_action(result.state, choice)
    if isinstance(result, (Rejected, NeedsDisambiguation)):
        raise RuntimeError(f"{bots[player].name} chose an unusable action {action.action_type.value}: {result}")
    return result.state


def play_game(state: GameState, bots: Sequence[BotStrategy], *, max_steps: int = MAX_STEPS) -> GameState:
    """Drive a game to completion, ending it early if nobody can move."""
    for player, bot in enumerate(bots):
        bot.on_game_start(state, player)
    steps = 0
    while not state.game_over:
        player = state.current_player
        legal = legal_actions(state, player)
        if not legal or steps >= max_steps:
            return _step(state, bots, Action(ActionType.END_GAME, player))
        action = bots[player].choose_action(state, player, legal)
        state = _step(state, bots, action)
        steps += 1
    return state


def run_match(
    bot_a: BotStrategy,
    bot_b: BotStrategy,
    *,
    n_games: int = 10,
    seed: int | None = None,
    rules: RuleSet = DEFAULT_RULES,
) -> dict:
    rng = Random(seed)
    bots = [bot_a, bot_b]
    scores = [0, 0]
    wins = [0, 0]
    ties = 0
    history = []
    for idx in range(n_games):
        state = new_game(rules=rules, rng=rng, starting_player=idx % 2)
        final = play_game(state, bots)
        assert final.score is not None
        totals = final.score.totals
        scores[0] += totals[0]
        scores[1] += totals[1]
        if final.winner is None:
            ties += 1
        else:
            wins[final.winner] += 1
        history.append(
            {
                "totals": list(totals),
                "winner": final.winner,
                "captured": [len(final.flat_captures(0)), len(final.flat_captures(1))],
            }
        )
    return {"scores": scores, "wins": wins, "ties": ties, "history": history}


def main(argv: Iterable[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run a bot match.")
    parser.add_argument("--bot-a", default="greedy", choices=BOT_REGISTRY.keys())
    parser.add_argument("--bot-b", default="random", choices=BOT_REGISTRY.keys())
    parser.add_argument("--n", type=int, default=10, help="Number of games to play.")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--face-cards", action="store_true", help="Play with the 52-card deck.")
    args = parser.parse_args(argv)

    bot_a = BOT_REGISTRY[args.bot_a]()
    bot_b = BOT_REGISTRY[args.bot_b]()
    rules = FACE_CARD_RULES if args.face_cards else DEFAULT_RULES
    results = run_match(bot_a, bot_b, n_games=args.n, seed=args.seed, rules=rules)

    print(f"Points after {args.n} games: {results['scores']}")
    print(f"Wins: {results['wins']} (ties: {results['ties']})")


if __name__ == "__main__":
    main()
