"""REST service to play Casino matches."""

from __future__ import annotations

import logging
import os
import threading
import uuid
from dataclasses import asdict
from pathlib import Path
from random import Random
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from bots.bot_arena import BOT_REGISTRY
from bots.base import BotStrategy
from casino.encode import encode_result
from casino.results import NeedsDisambiguation, Rejected
from casino.rules_schema import DEFAULT_RULES, RuleSet, load_rules
from casino.service import MatchService

logger = logging.getLogger(__name__)

RULES_ENV = "CASINO_RULES"


class StartRequest(BaseModel):
    seed: Optional[int] = None
    starting_player: int = Field(default=0, ge=0, le=1)
    opponent: Optional[str] = None


class ActionRequest(BaseModel):
    type: str
    player: int = Field(ge=0, le=1)
    payload: Dict[str, Any] = Field(default_factory=dict)


class MatchSession:
    def __init__(self, service: MatchService, opponent: Optional[BotStrategy]) -> None:
        self.service = service
        self.opponent = opponent


sessions: Dict[str, MatchSession] = {}
sessions_lock = threading.Lock()


app = FastAPI(title="Casino Play Service")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def configured_rules() -> RuleSet:
    path = os.environ.get(RULES_ENV)
    if not path:
        return DEFAULT_RULES
    rules_path = Path(path)
    if not rules_path.exists():
        raise HTTPException(status_code=500, detail=f"Rules file {rules_path} not found")
    return load_rules(rules_path)


def ensure_session(match_id: str) -> MatchSession:
    with sessions_lock:
        session = sessions.get(match_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Match not found")
    return session


def serialize_match(match_id: str, session: MatchSession, perspective: int = 0) -> Dict[str, object]:
    view = session.service.get_view(perspective)
    return {
        "match_id": match_id,
        "opponent": session.opponent.name if session.opponent else None,
        "view": asdict(view),
        "snapshot": session.service.snapshot(),
    }


def play_opponent_turns(session: MatchSession, human: int = 0) -> List[Dict[str, object]]:
    """Let the bot opponent act until it is the human's turn again."""
    played: List[Dict[str, object]] = []
    bot = session.opponent
    if bot is None:
        return played
    service = session.service
    bot_player = 1 - human
    while True:
        state = service.current_state()
        if state.game_over or state.current_player != bot_player:
            break
        legal = service.legal_actions(bot_player)
        if not legal:
            break
        action = bot.choose_action(state, bot_player, legal)
        result = service.apply(action)
        if isinstance(result, NeedsDisambiguation):
            action = bot.choose_option(result.state, bot_player, result.options)
            result = service.apply(action)
        if isinstance(result, (Rejected, NeedsDisambiguation)):
            logger.error("Opponent %s produced an unusable action: %s", bot.name, result)
            break
        played.append(action.to_payload())
    return played


@app.post("/match/start")
def start_match(request: StartRequest) -> Dict[str, object]:
    opponent: Optional[BotStrategy] = None
    if request.opponent is not None:
        bot_cls = BOT_REGISTRY.get(request.opponent)
        if bot_cls is None:
            raise HTTPException(status_code=400, detail=f"Unknown opponent {request.opponent}")
        opponent = bot_cls()
    rng = Random(request.seed) if request.seed is not None else None
    service = MatchService(rules=configured_rules(), rng=rng, starting_player=request.starting_player)
    session = MatchSession(service=service, opponent=opponent)
    match_id = uuid.uuid4().hex
    with sessions_lock:
        sessions[match_id] = session
    logger.info("Started match %s (opponent: %s)", match_id, request.opponent)
    opponent_actions = play_opponent_turns(session)
    payload = serialize_match(match_id, session)
    payload["opponent_actions"] = opponent_actions
    return payload


@app.get("/match/{match_id}")
def get_match(match_id: str, perspective: int = 0) -> Dict[str, object]:
    session = ensure_session(match_id)
    if perspective not in (0, 1):
        raise HTTPException(status_code=400, detail="Perspective must be 0 or 1")
    return serialize_match(match_id, session, perspective)


@app.post("/match/{match_id}/action")
def take_action(match_id: str, request: ActionRequest) -> Dict[str, object]:
    session = ensure_session(match_id)
    result = session.service.submit(request.model_dump())
    if isinstance(result, Rejected):
        raise HTTPException(status_code=400, detail={"reason": result.reason, "code": result.code})
    response = encode_result(result)
    if not isinstance(result, NeedsDisambiguation) and session.opponent is not None:
        response["opponent_actions"] = play_opponent_turns(session, human=request.player)
        response["state"] = session.service.snapshot()
    return response


@app.delete("/match/{match_id}")
def end_match(match_id: str) -> Dict[str, object]:
    with sessions_lock:
        session = sessions.pop(match_id, None)
    if session is None:
        raise HTTPException(status_code=404, detail="Match not found")
    return {"match_id": match_id, "closed": True}
