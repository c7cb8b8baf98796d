"""Snapshot encoding helpers for transports and agents."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from .cards import Card, card_label, serialize_card
from .results import Accepted, ActionResult, NeedsDisambiguation, Rejected
from .scoring import ScoreBreakdown
from .state import GameState
from .table import Build, LooseCard, TableEntity, TemporaryStack, UnknownEntity


def encode_cards(cards: Iterable[Card]) -> List[Dict[str, str]]:
    return [serialize_card(card) for card in cards]


def encode_entity(entity: TableEntity) -> Dict[str, Any]:
    """Tag each table entity with its ``kind`` so clients can switch on it."""
    if isinstance(entity, LooseCard):
        return {"kind": "loose", "card": serialize_card(entity.card), "label": card_label(entity.card)}
    if isinstance(entity, Build):
        return {
            "kind": "build",
            "id": entity.build_id,
            "cards": encode_cards(entity.cards),
            "value": entity.value,
            "owner": entity.owner,
            "extendable": entity.extendable,
        }
    if isinstance(entity, TemporaryStack):
        return {
            "kind": "stack",
            "id": entity.stack_id,
            "owner": entity.owner,
            "total": entity.total,
            "cards": [
                {"card": serialize_card(entry.card), "origin": entry.origin.value}
                for entry in entity.entries
            ],
        }
    raise UnknownEntity(f"Unknown table entity: {entity!r}")


def encode_score(score: Optional[ScoreBreakdown]) -> Optional[Dict[str, Any]]:
    if score is None:
        return None
    return {
        "players": [
            {
                "cards": player.card_count,
                "spades": player.spade_count,
                "most_cards": player.most_cards,
                "most_spades": player.most_spades,
                "aces": player.aces,
                "big_casino": player.big_casino,
                "little_casino": player.little_casino,
                "total": player.total,
            }
            for player in score.players
        ],
        "totals": list(score.totals),
        "winner": score.winner,
    }


def encode_state(state: GameState) -> Dict[str, Any]:
    """Full snapshot of a game state. Both hands are included."""
    return {
        "current_player": state.current_player,
        "round": state.round,
        "hands": [encode_cards(hand) for hand in state.hands],
        "table": [encode_entity(entity) for entity in state.table],
        "captures": [[encode_cards(group) for group in groups] for groups in state.captures],
        "deck_size": len(state.deck),
        "last_capturer": state.last_capturer,
        "game_over": state.game_over,
        "score": encode_score(state.score),
        "winner": state.winner,
    }


def encode_result(result: ActionResult) -> Dict[str, Any]:
    if isinstance(result, Accepted):
        return {"status": "accepted", "notice": result.notice, "state": encode_state(result.state)}
    if isinstance(result, NeedsDisambiguation):
        return {
            "status": "needs_choice",
            "options": [option.to_payload() for option in result.options],
            "state": encode_state(result.state),
        }
    if isinstance(result, Rejected):
        return {"status": "rejected", "reason": result.reason, "code": result.code}
    raise TypeError(f"Unknown action result: {result!r}")
