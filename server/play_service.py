"""WebSocket service to play Binokel against people and bots."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from binokel.cards import Suit
from binokel.errors import ErrorCode, GameError
from binokel.events import EventType, GameEvent, deserialize_meld, event_to_dict
from binokel.rules_schema import RuleSet
from binokel.state import Phase
from binokel.views import filter_events_for_player

from .config import Settings, get_settings
from .game_service import GameService
from .registry import SessionRegistry
from .scheduler import TurnScheduler

logger = logging.getLogger(__name__)

# Close code sent when a socket names a seat it cannot take.
INVALID_SEAT_CLOSE_CODE = 4004


def serialize_events(events: List[GameEvent], player_index: int) -> List[dict]:
    return [event_to_dict(event) for event in filter_events_for_player(events, player_index)]


class ConnectionManager:
    """Sends each connected player their own filtered view of the events."""

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry

    async def send(self, websocket: WebSocket, message: Dict[str, Any]) -> None:
        await websocket.send_json(message)

    async def broadcast(self, session_id: str, message: Dict[str, Any]) -> None:
        for player_index, websocket in self.registry.connections_for(session_id):
            try:
                await websocket.send_json(message)
            except Exception:
                logger.warning("Dropping connection of player %d in session %s", player_index, session_id)
                self.registry.disconnect(session_id, player_index)

    async def broadcast_events(self, session_id: str, events: List[GameEvent]) -> None:
        if not events:
            return
        for player_index, websocket in self.registry.connections_for(session_id):
            try:
                await websocket.send_json(
                    {"type": "game:events", "events": serialize_events(events, player_index)}
                )
            except Exception:
                logger.warning("Dropping connection of player %d in session %s", player_index, session_id)
                self.registry.disconnect(session_id, player_index)


def _suit(message: Dict[str, Any]) -> Suit:
    try:
        return Suit(message["suit"])
    except (KeyError, ValueError) as exc:
        raise GameError(ErrorCode.INVALID_COMMAND, {"detail": f"bad suit {message.get('suit')!r}"}) from exc


def _required(message: Dict[str, Any], key: str) -> Any:
    if key not in message:
        raise GameError(ErrorCode.INVALID_COMMAND, {"detail": f"missing {key!r}"})
    return message[key]


def _amount(message: Dict[str, Any]) -> int:
    value = _required(message, "amount")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise GameError(ErrorCode.INVALID_COMMAND, {"detail": f"bad amount {value!r}"}) from exc


def dispatch_command(service: GameService, session_id: str, player_index: int, message: Dict[str, Any]) -> List[GameEvent]:
    """Map one inbound message onto the matching service call."""
    command = message.get("type")
    if command == "start":
        return service.start_game(session_id)
    if command == "bid":
        return service.place_bid(session_id, player_index, _amount(message))
    if command == "pass":
        return service.pass_bid(session_id, player_index)
    if command == "takeDabb":
        return service.take_dabb(session_id, player_index)
    if command == "discard":
        return service.discard_cards(session_id, player_index, list(_required(message, "cardIds")))
    if command == "goOut":
        return service.go_out(session_id, player_index, _suit(message))
    if command == "declareTrump":
        return service.declare_trump(session_id, player_index, _suit(message))
    if command == "declareMelds":
        try:
            melds = [deserialize_meld(item) for item in _required(message, "melds")]
        except (KeyError, TypeError, ValueError) as exc:
            raise GameError(ErrorCode.INVALID_MELDS) from exc
        return service.declare_melds(session_id, player_index, melds)
    if command == "playCard":
        return service.play_card(session_id, player_index, str(_required(message, "cardId")))
    raise GameError(ErrorCode.INVALID_COMMAND, {"detail": f"unknown command {command!r}"})


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[GameService] = None,
    scheduler: Optional[TurnScheduler] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level)

    registry = service.registry if service is not None else SessionRegistry()
    service = service or GameService(registry, rules=RuleSet(target_score=settings.target_score))
    manager = ConnectionManager(registry)
    if scheduler is None:
        scheduler = TurnScheduler(
            registry,
            service,
            manager.broadcast_events,
            delay=settings.ai_delay,
            jitter=settings.ai_jitter,
            trick_pause=settings.trick_pause,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await scheduler.close()

    app = FastAPI(title="Binokel Play Service", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.service = service
    app.state.scheduler = scheduler
    app.state.manager = manager

    async def publish(session_id: str, events: List[GameEvent]) -> None:
        await manager.broadcast_events(session_id, events)
        for event in events:
            if event.type is EventType.PLAYER_LEFT:
                await manager.broadcast(session_id, {"type": "player:left", "playerIndex": event.payload.player_index})
            elif event.type is EventType.PLAYER_RECONNECTED:
                await manager.broadcast(
                    session_id, {"type": "player:reconnected", "playerIndex": event.payload.player_index}
                )
        if events:
            scheduler.notify(session_id, any(event.type is EventType.TRICK_WON for event in events))

    async def terminate(session_id: str, player_index: int, events: List[GameEvent]) -> None:
        await manager.broadcast_events(session_id, events)
        await manager.broadcast(session_id, {"type": "session:terminated", "terminatedBy": player_index})
        scheduler.forget(session_id)
        registry.evict(session_id)

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.websocket("/ws/{session_id}/{player_index}")
    async def game_socket(websocket: WebSocket, session_id: str, player_index: int) -> None:
        await websocket.accept()
        try:
            info = registry.get(session_id)
        except GameError as exc:
            await manager.send(websocket, {"type": "error", **exc.to_dict()})
            await websocket.close(code=INVALID_SEAT_CLOSE_CODE)
            return
        seat = info.seats.get(player_index)
        if seat is None or seat.is_ai:
            error = GameError(ErrorCode.INVALID_COMMAND, {"detail": f"seat {player_index} is not available"})
            await manager.send(websocket, {"type": "error", **error.to_dict()})
            await websocket.close(code=INVALID_SEAT_CLOSE_CODE)
            return

        registry.connect(session_id, player_index, websocket)
        await manager.send(
            websocket,
            {"type": "game:state", "events": serialize_events(service.get_events(session_id), player_index)},
        )
        if service.get_state(session_id).phase is Phase.WAITING:
            await manager.broadcast(
                session_id, {"type": "player:joined", "playerIndex": player_index, "nickname": seat.nickname}
            )
        else:
            await publish(session_id, service.mark_connected(session_id, player_index, True))

        try:
            while True:
                message = await websocket.receive_json()
                command = message.get("type") if isinstance(message, dict) else None
                try:
                    if command == "sync":
                        after = int(message.get("lastEventSequence", 0))
                        await manager.send(
                            websocket,
                            {
                                "type": "game:events",
                                "events": serialize_events(service.get_events(session_id, after), player_index),
                            },
                        )
                        continue
                    if command == "exit":
                        events = service.terminate_game(session_id, player_index, message.get("reason"))
                        await terminate(session_id, player_index, events)
                        return
                    events = dispatch_command(service, session_id, player_index, message)
                except GameError as exc:
                    await manager.send(websocket, {"type": "error", **exc.to_dict()})
                    continue
                except Exception:
                    logger.exception("Command %r failed in session %s", command, session_id)
                    await manager.send(websocket, {"type": "error", **GameError(ErrorCode.UNKNOWN_ERROR).to_dict()})
                    continue
                await publish(session_id, events)
        except WebSocketDisconnect:
            logger.info("Player %d disconnected from session %s", player_index, session_id)
        finally:
            registry.disconnect(session_id, player_index)
            if session_id in registry:
                try:
                    await publish(session_id, service.mark_connected(session_id, player_index, False))
                except GameError:
                    logger.debug("Session %s gone before disconnect was recorded", session_id)

    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    uvicorn.run("server.play_service:app", host="0.0.0.0", port=8000, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
