"""Convenience service layer for UI and agents."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from random import Random
from typing import Any, Dict, List, Mapping, Optional

from .actions import Action, MalformedAction, parse_action
from .cards import card_label, serialize_card
from .encode import encode_entity, encode_result, encode_score, encode_state
from .mechanics import legal_actions
from .reducer import apply_action
from .results import MALFORMED, Accepted, ActionResult, Rejected
from .rules_schema import DEFAULT_RULES, RuleSet
from .state import GameState, find_integrity_issues, new_game, normalize_state

logger = logging.getLogger(__name__)


@dataclass
class PlayerView:
    perspective: int
    current_player: int
    round: int
    hand: list[dict]
    hand_labels: list[str]
    opponent_hand_size: int
    table: list[dict]
    captured_counts: list[int]
    opponent_top_capture: Optional[dict]
    deck_size: int
    legal_actions: list[dict]
    legal_action_labels: list[str]
    game_over: bool
    score: Optional[dict]
    winner: Optional[int]


class MatchService:
    """Facade around one match's GameState.

    Submissions are serialized with a lock; every action is reduced against
    the most recently accepted state.
    """

    def __init__(
        self,
        state: Optional[GameState] = None,
        *,
        rules: RuleSet = DEFAULT_RULES,
        rng: Optional[Random] = None,
        starting_player: int = 0,
    ) -> None:
        self._lock = threading.Lock()
        self.state = state or new_game(rules=rules, rng=rng, starting_player=starting_player)
        self._expected_cards = self.state.all_cards()
        self.history: List[Action] = []

    # Actions -----------------------------------------------------------

    def submit(self, request: Mapping[str, Any]) -> ActionResult:
        """Parse a ``{type, player, payload}`` request and apply it."""
        try:
            action = parse_action(request)
        except MalformedAction as exc:
            logger.info("Malformed action request: %s", exc)
            return Rejected(str(exc), MALFORMED)
        return self.apply(action)

    def apply(self, action: Action) -> ActionResult:
        with self._lock:
            result = apply_action(self.state, action)
            if isinstance(result, Accepted):
                self.state = self._checked(result.state)
                self.history.append(action)
        return result

    def submit_encoded(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        return encode_result(self.submit(request))

    # Views -------------------------------------------------------------

    def current_state(self) -> GameState:
        """The latest accepted state, read under the submission lock."""
        with self._lock:
            return self.state

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return encode_state(self.state)

    def legal_actions(self, player: int) -> List[Action]:
        with self._lock:
            return legal_actions(self.state, player)

    def get_view(self, perspective: int = 0) -> PlayerView:
        with self._lock:
            state = self.state
        opponent = state.opponent(perspective)
        hand = state.hand(perspective)
        actions = legal_actions(state, perspective)
        top_group = state.captures[opponent][-1] if state.captures[opponent] else ()
        return PlayerView(
            perspective=perspective,
            current_player=state.current_player,
            round=state.round,
            hand=[serialize_card(card) for card in hand],
            hand_labels=[card_label(card) for card in hand],
            opponent_hand_size=len(state.hand(opponent)),
            table=[encode_entity(entity) for entity in state.table],
            captured_counts=[len(state.flat_captures(0)), len(state.flat_captures(1))],
            opponent_top_capture=serialize_card(top_group[-1]) if top_group else None,
            deck_size=len(state.deck),
            legal_actions=[action.to_payload() for action in actions],
            legal_action_labels=[action.to_payload()["label"] for action in actions],
            game_over=state.game_over,
            score=encode_score(state.score),
            winner=state.winner,
        )

    # Helpers -----------------------------------------------------------

    def _checked(self, state: GameState) -> GameState:
        issues = find_integrity_issues(state, self._expected_cards)
        if issues:
            for issue in issues:
                logger.warning("State integrity issue: %s", issue)
            state = normalize_state(state)
        return state
