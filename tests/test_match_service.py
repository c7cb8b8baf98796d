import threading
from random import Random

from casino.cards import Card, Rank, Suit
from casino.encode import encode_state
from casino.results import Accepted, Rejected
from casino.service import MatchService
from casino.state import GameState
from casino.table import Build, LooseCard, Origin, StackCard, TemporaryStack

SEVEN_C = Card(Rank.SEVEN, Suit.CLUBS)
SEVEN_D = Card(Rank.SEVEN, Suit.DIAMONDS)
TWO_H = Card(Rank.TWO, Suit.HEARTS)
NINE_D = Card(Rank.NINE, Suit.DIAMONDS)
THREE_C = Card(Rank.THREE, Suit.CLUBS)

CAPTURE_REQUEST = {
    "type": "capture",
    "player": 0,
    "payload": {
        "card": {"rank": "7", "suit": "diamonds"},
        "targets": [{"kind": "loose", "card": {"rank": "7", "suit": "clubs"}}],
    },
}


def make_service():
    state = GameState(hands=((SEVEN_D, TWO_H), (NINE_D, THREE_C)), table=(LooseCard(SEVEN_C),))
    return MatchService(state=state)


def test_submit_applies_request():
    service = make_service()

    result = service.submit(CAPTURE_REQUEST)

    assert isinstance(result, Accepted)
    assert service.state.current_player == 1
    assert service.state.captures[0] == ((SEVEN_C, SEVEN_D),)
    assert len(service.history) == 1
    assert service.current_state() is service.state


def test_malformed_request_is_rejected():
    service = make_service()

    result = service.submit({"type": "shuffle", "player": 0})

    assert isinstance(result, Rejected)
    assert result.code == "malformed"
    assert service.state.current_player == 0


def test_rejection_leaves_state_untouched():
    service = make_service()
    before = service.state

    encoded = service.submit_encoded({"type": "trail", "player": 1, "payload": {"card": {"rank": "9", "suit": "diamonds"}}})

    assert encoded["status"] == "rejected"
    assert encoded["code"] == "not_your_turn"
    assert service.state is before


def test_concurrent_submissions_are_serialized():
    service = make_service()
    barrier = threading.Barrier(4)
    results = []
    request = {"type": "trail", "player": 0, "payload": {"card": {"rank": "2", "suit": "hearts"}}}

    def worker():
        barrier.wait()
        results.append(service.submit(request))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(isinstance(result, Accepted) for result in results) == 1
    assert service.state.table == (LooseCard(SEVEN_C), LooseCard(TWO_H))


def test_view_lists_legal_actions():
    service = make_service()

    view = service.get_view(0)

    assert view.hand_labels == ["Seven of Diamonds", "Two of Hearts"]
    assert view.opponent_hand_size == 2
    assert any(action["type"] == "capture" for action in view.legal_actions)
    assert "Trail 2♥" in view.legal_action_labels
    assert service.get_view(1).legal_actions == []


def test_new_match_is_dealt():
    service = MatchService(rng=Random(5))
    snapshot = service.snapshot()
    assert len(snapshot["hands"][0]) == 10
    assert snapshot["deck_size"] == 20
    assert snapshot["round"] == 1


def test_snapshot_tags_table_entities():
    stack = TemporaryStack("stack-2", (StackCard(THREE_C, Origin.TABLE),), owner=1)
    build = Build("build-1", (SEVEN_C, TWO_H), 9, owner=0)
    state = GameState(hands=((SEVEN_D,), (NINE_D,)), table=(LooseCard(Card(Rank.ACE, Suit.SPADES)), build, stack))

    snapshot = encode_state(state)

    assert [entity["kind"] for entity in snapshot["table"]] == ["loose", "build", "stack"]
    assert snapshot["table"][1]["value"] == 9
    assert snapshot["table"][2]["cards"][0]["origin"] == "table"
    assert snapshot["score"] is None
