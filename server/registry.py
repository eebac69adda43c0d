"""Process-local bookkeeping for running sessions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from binokel.commands import Seat
from binokel.errors import ErrorCode, GameError
from binokel.state import GameState, Phase
from bots.base import BotStrategy

logger = logging.getLogger(__name__)

PendingKey = Tuple[str, int, Phase]


@dataclass
class SessionInfo:
    session_id: str
    player_count: int
    target_score: int
    seats: Dict[int, Seat] = field(default_factory=dict)

    def free_seat(self) -> Optional[int]:
        for index in range(self.player_count):
            if index not in self.seats:
                return index
        return None

    def is_ai(self, player_index: int) -> bool:
        seat = self.seats.get(player_index)
        return seat is not None and seat.is_ai

    def seat_of(self, player_id: str) -> Optional[Seat]:
        return next((seat for seat in self.seats.values() if seat.player_id == player_id), None)


class SessionRegistry:
    """Owns every per-session structure the service and scheduler share.

    Nothing here is safe across processes: the state cache is rebuilt from
    the event log when missing but never shared.
    """

    def __init__(self) -> None:
        self.sessions: Dict[str, SessionInfo] = {}
        self.states: Dict[str, GameState] = {}
        self.ai_players: Dict[str, Dict[int, BotStrategy]] = {}
        self.pending: Set[PendingKey] = set()
        self.connections: Dict[str, Dict[int, Any]] = {}

    def add(self, info: SessionInfo) -> SessionInfo:
        self.sessions[info.session_id] = info
        return info

    def get(self, session_id: str) -> SessionInfo:
        info = self.sessions.get(session_id)
        if info is None:
            raise GameError(ErrorCode.SESSION_NOT_FOUND, {"session_id": session_id})
        return info

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.sessions

    # State cache

    def cached_state(self, session_id: str) -> Optional[GameState]:
        return self.states.get(session_id)

    def store_state(self, session_id: str, state: GameState) -> None:
        self.states[session_id] = state

    def invalidate(self, session_id: str) -> None:
        self.states.pop(session_id, None)

    # Automated players

    def register_ai(self, session_id: str, player_index: int, bot: BotStrategy) -> None:
        self.ai_players.setdefault(session_id, {})[player_index] = bot

    def get_ai(self, session_id: str, player_index: int) -> Optional[BotStrategy]:
        return self.ai_players.get(session_id, {}).get(player_index)

    # Connections

    def connect(self, session_id: str, player_index: int, connection: Any) -> None:
        self.connections.setdefault(session_id, {})[player_index] = connection

    def disconnect(self, session_id: str, player_index: int) -> None:
        self.connections.get(session_id, {}).pop(player_index, None)

    def connections_for(self, session_id: str) -> List[Tuple[int, Any]]:
        return sorted(self.connections.get(session_id, {}).items(), key=lambda item: item[0])

    def evict(self, session_id: str) -> None:
        logger.info("Evicting session %s", session_id)
        self.sessions.pop(session_id, None)
        self.states.pop(session_id, None)
        self.ai_players.pop(session_id, None)
        self.connections.pop(session_id, None)
        self.pending = {key for key in self.pending if key[0] != session_id}
