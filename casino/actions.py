"""Action requests accepted by the Casino reducer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .cards import Card, deserialize_card, serialize_card
from .table import Origin


class ActionType(Enum):
    TRAIL = "trail"
    CAPTURE = "capture"
    BUILD = "build"
    ADD_TO_OPPONENT_BUILD = "addToOpponentBuild"
    ADD_TO_OWN_BUILD = "addToOwnBuild"
    BASE_BUILD = "baseBuild"
    CREATE_BUILD_FROM_STACK = "createBuildFromStack"
    EXTEND_TO_MERGE = "extendToMerge"
    REINFORCE_OPPONENT_BUILD = "reinforceOpponentBuild"
    REINFORCE_BUILD_WITH_STACK = "reinforceBuildWithStack"
    MERGE_INTO_OWN_BUILD = "mergeIntoOwnBuild"
    CREATE_BUILD_WITH_VALUE = "createBuildWithValue"
    CREATE_STAGING_STACK = "createStagingStack"
    ADD_TO_STAGING_STACK = "addToStagingStack"
    FINALIZE_STAGING_STACK = "finalizeStagingStack"
    CANCEL_STAGING_STACK = "cancelStagingStack"
    DISBAND_STAGING_STACK = "disbandStagingStack"
    STAGE_OPPONENT_CARD = "stageOpponentCard"
    END_GAME = "endGame"


class MalformedAction(ValueError):
    """Raised when an action payload cannot be parsed."""


@dataclass(frozen=True)
class EntityRef:
    """Reference to a table entity: a loose card, a build id or a stack id."""

    kind: str
    card: Optional[Card] = None
    entity_id: Optional[str] = None

    @classmethod
    def loose(cls, card: Card) -> "EntityRef":
        return cls("loose", card=card)

    @classmethod
    def build(cls, build_id: str) -> "EntityRef":
        return cls("build", entity_id=build_id)

    @classmethod
    def stack(cls, stack_id: str) -> "EntityRef":
        return cls("stack", entity_id=stack_id)

    def to_payload(self) -> Dict[str, Any]:
        if self.kind == "loose":
            assert self.card is not None
            return {"kind": "loose", "card": serialize_card(self.card)}
        return {"kind": self.kind, "id": self.entity_id}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "EntityRef":
        kind = payload.get("kind")
        if kind == "loose":
            if "card" not in payload:
                raise MalformedAction("Loose card reference requires 'card'.")
            return cls.loose(deserialize_card(payload["card"]))
        if kind in ("build", "stack"):
            if not payload.get("id"):
                raise MalformedAction(f"{kind.title()} reference requires 'id'.")
            return cls(kind, entity_id=str(payload["id"]))
        raise MalformedAction(f"Unknown entity kind: {kind!r}")


@dataclass(frozen=True)
class Action:
    action_type: ActionType
    player: int
    card: Optional[Card] = None
    source: Origin = Origin.HAND
    target: Optional[EntityRef] = None
    targets: Tuple[EntityRef, ...] = ()
    cards: Tuple[Card, ...] = ()
    build_id: Optional[str] = None
    own_build_id: Optional[str] = None
    stack_id: Optional[str] = None
    value: Optional[int] = None
    label: str = field(default="", compare=False)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.card is not None:
            payload["card"] = serialize_card(self.card)
        if self.source is not Origin.HAND:
            payload["source"] = self.source.value
        if self.target is not None:
            payload["target"] = self.target.to_payload()
        if self.targets:
            payload["targets"] = [ref.to_payload() for ref in self.targets]
        if self.cards:
            payload["cards"] = [serialize_card(card) for card in self.cards]
        for name in ("build_id", "own_build_id", "stack_id", "value"):
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        return {
            "type": self.action_type.value,
            "player": self.player,
            "label": self.label or describe_action(self),
            "payload": payload,
        }


def parse_action(request: Mapping[str, Any]) -> Action:
    """Build an Action from a transport-level ``{type, player, payload}`` mapping."""
    try:
        action_type = ActionType(request["type"])
    except (KeyError, ValueError) as exc:
        raise MalformedAction(f"Unknown action type: {request.get('type')!r}") from exc
    player = request.get("player")
    if player not in (0, 1):
        raise MalformedAction("Action requires a player index of 0 or 1.")

    payload = request.get("payload") or {}
    try:
        card = deserialize_card(payload["card"]) if payload.get("card") else None
        source = Origin(payload.get("source", Origin.HAND.value))
        target = EntityRef.from_payload(payload["target"]) if payload.get("target") else None
        targets = tuple(EntityRef.from_payload(ref) for ref in payload.get("targets", ()))
        cards = tuple(deserialize_card(item) for item in payload.get("cards", ()))
        value = int(payload["value"]) if payload.get("value") is not None else None
    except MalformedAction:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedAction(f"Malformed payload: {exc}") from exc

    return Action(
        action_type=action_type,
        player=player,
        card=card,
        source=source,
        target=target,
        targets=targets,
        cards=cards,
        build_id=payload.get("build_id"),
        own_build_id=payload.get("own_build_id"),
        stack_id=payload.get("stack_id"),
        value=value,
    )


def describe_action(action: Action) -> str:
    kind = action.action_type
    card = str(action.card) if action.card is not None else ""
    if kind is ActionType.TRAIL:
        return f"Trail {card}"
    if kind is ActionType.CAPTURE:
        return f"Capture with {card}" if card else "Capture"
    if kind in (ActionType.BUILD, ActionType.BASE_BUILD, ActionType.CREATE_BUILD_WITH_VALUE):
        return f"Build {action.value}" if action.value is not None else "Build"
    if kind is ActionType.ADD_TO_OPPONENT_BUILD:
        return f"Add {card} to opponent's build"
    if kind is ActionType.ADD_TO_OWN_BUILD:
        return f"Add {card} to your build"
    if kind is ActionType.EXTEND_TO_MERGE:
        return f"Merge into your build with {card}"
    if kind is ActionType.REINFORCE_OPPONENT_BUILD:
        return "Reinforce opponent's build"
    if kind is ActionType.REINFORCE_BUILD_WITH_STACK:
        return "Reinforce build with stack"
    if kind is ActionType.MERGE_INTO_OWN_BUILD:
        return "Merge stack into your build"
    return kind.value
