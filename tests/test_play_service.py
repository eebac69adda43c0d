import random

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from binokel.errors import ErrorCode, GameError
from server.config import Settings
from server.game_service import GameService
from server.play_service import INVALID_SEAT_CLOSE_CODE, create_app, dispatch_command
from server.registry import SessionRegistry


@pytest.fixture
def app():
    settings = Settings(ai_delay_ms=0, ai_jitter_ms=0, trick_pause_ms=0)
    service = GameService(SessionRegistry(), rng=random.Random(3))
    service.create_session(2, session_id="table")
    service.join_session("table", "Anna", player_id="anna")
    service.add_ai_player("table")
    return create_app(settings=settings, service=service)


def event_types(message):
    assert message["type"] == "game:events", message
    return [event["type"] for event in message["events"]]


def test_health(app):
    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "ok"}


def test_game_flow_over_websocket(app):
    with TestClient(app) as client:
        with client.websocket_connect("/ws/table/0") as ws:
            assert ws.receive_json() == {"type": "game:state", "events": []}
            assert ws.receive_json() == {"type": "player:joined", "playerIndex": 0, "nickname": "Anna"}

            ws.send_json({"type": "start"})
            started = ws.receive_json()
            assert event_types(started) == [
                "PLAYER_JOINED",
                "PLAYER_JOINED",
                "GAME_STARTED",
                "CARDS_DEALT",
            ]
            dealt = started["events"][-1]["payload"]
            assert all("suit" in card for card in dealt["hands"]["0"])
            assert all(set(card) == {"id"} for card in dealt["hands"]["1"])
            assert all(set(card) == {"id"} for card in dealt["dabb"])

            # The bot opens the bidding on its own.
            assert event_types(ws.receive_json()) == ["BID_PLACED"]

            ws.send_json({"type": "bid", "amount": 155})
            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["code"] == "INVALID_BID_AMOUNT"

            ws.send_json({"type": "shout"})
            assert ws.receive_json()["code"] == "INVALID_COMMAND"

            ws.send_json({"type": "bid", "amount": "lots"})
            assert ws.receive_json()["code"] == "INVALID_COMMAND"

            ws.send_json({"type": "bid", "amount": 160})
            assert event_types(ws.receive_json()) == ["BID_PLACED"]
            reply = event_types(ws.receive_json())
            assert reply[0] in ("BID_PLACED", "PLAYER_PASSED")

            ws.send_json({"type": "sync", "lastEventSequence": 4})
            synced = ws.receive_json()
            assert synced["type"] == "game:events"
            assert synced["events"][0]["sequence"] == 5

            ws.send_json({"type": "exit", "reason": "done"})
            assert event_types(ws.receive_json()) == ["GAME_TERMINATED"]
            assert ws.receive_json() == {"type": "session:terminated", "terminatedBy": 0}

        assert "table" not in app.state.registry


def test_ai_seat_cannot_be_taken(app):
    with TestClient(app) as client:
        with client.websocket_connect("/ws/table/1") as ws:
            message = ws.receive_json()
            assert message["type"] == "error"
            assert message["code"] == "INVALID_COMMAND"
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_json()
            assert exc.value.code == INVALID_SEAT_CLOSE_CODE


def test_unknown_session(app):
    with TestClient(app) as client:
        with client.websocket_connect("/ws/missing/0") as ws:
            assert ws.receive_json()["code"] == "SESSION_NOT_FOUND"
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()


@pytest.mark.parametrize("message", [{"type": "bid", "amount": "lots"}, {"type": "bid", "amount": None}, {"type": "bid"}])
def test_malformed_bid_amount_is_invalid_command(message):
    service = GameService(SessionRegistry(), rng=random.Random(1))
    service.create_session(2, session_id="table")
    with pytest.raises(GameError) as exc:
        dispatch_command(service, "table", 0, message)
    assert exc.value.code is ErrorCode.INVALID_COMMAND
