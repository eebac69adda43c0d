"""Session orchestration: validate commands, persist events, keep the state cache."""

from __future__ import annotations

import logging
import random
import uuid
from typing import Callable, List, Optional, Sequence

from binokel import commands
from binokel.cards import Suit
from binokel.commands import Seat
from binokel.errors import ErrorCode, GameError
from binokel.events import EventSequence, GameEvent
from binokel.melds import Meld
from binokel.reducer import apply_events
from binokel.rules_schema import DEFAULT_RULES, RuleSet
from binokel.state import GameState, Phase, create_initial_state
from bots.base import AIAction, BotStrategy, apply_action
from bots.binokel_bot import BinokelBot

from .event_store import EventStore, InMemoryEventStore
from .registry import SessionInfo, SessionRegistry

logger = logging.getLogger(__name__)

AI_NICKNAMES = ("Alice", "Bob", "Charlie", "Diana")


class GameService:
    """Single entry point for every command on a session.

    Commands run to completion without yielding, so within one event loop
    two commands for the same session never interleave.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        store: Optional[EventStore] = None,
        rules: RuleSet = DEFAULT_RULES,
        rng: Optional[random.Random] = None,
        bot_factory: Callable[[], BotStrategy] = BinokelBot,
    ) -> None:
        self.registry = registry
        self.store = store if store is not None else InMemoryEventStore()
        self.rules = rules
        self.rng = rng or random.Random()
        self.bot_factory = bot_factory

    # Sessions ----------------------------------------------------------

    def create_session(
        self,
        player_count: int = 4,
        target_score: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> SessionInfo:
        if player_count not in (2, 3, 4):
            raise GameError(ErrorCode.INVALID_COMMAND, {"detail": f"player count {player_count}"})
        info = SessionInfo(
            session_id=session_id or uuid.uuid4().hex,
            player_count=player_count,
            target_score=target_score or self.rules.target_score,
        )
        logger.info("Created session %s for %d players", info.session_id, player_count)
        return self.registry.add(info)

    def join_session(self, session_id: str, nickname: str, player_id: Optional[str] = None) -> Seat:
        info = self.registry.get(session_id)
        if player_id is not None:
            existing = info.seat_of(player_id)
            if existing is not None:
                return existing
        if self.get_state(session_id).phase is not Phase.WAITING:
            raise GameError(ErrorCode.GAME_ALREADY_STARTED)
        index = info.free_seat()
        if index is None:
            raise GameError(ErrorCode.SESSION_FULL)
        seat = Seat(player_id or uuid.uuid4().hex, nickname, index)
        info.seats[index] = seat
        logger.info("%s joined session %s as player %d", nickname, session_id, index)
        return seat

    def add_ai_player(self, session_id: str, nickname: Optional[str] = None) -> Seat:
        info = self.registry.get(session_id)
        if self.get_state(session_id).phase is not Phase.WAITING:
            raise GameError(ErrorCode.GAME_ALREADY_STARTED)
        index = info.free_seat()
        if index is None:
            raise GameError(ErrorCode.SESSION_FULL)
        seat = Seat(f"ai-{index}", nickname or AI_NICKNAMES[index], index, is_ai=True)
        info.seats[index] = seat
        self.registry.register_ai(session_id, index, self.bot_factory())
        return seat

    def session_rules(self, session_id: str) -> RuleSet:
        info = self.registry.get(session_id)
        if info.target_score == self.rules.target_score:
            return self.rules
        return self.rules.model_copy(update={"target_score": info.target_score})

    # State -------------------------------------------------------------

    def get_state(self, session_id: str) -> GameState:
        """Return the cached state, replaying the event log on a cache miss."""
        info = self.registry.get(session_id)
        state = self.registry.cached_state(session_id)
        if state is None:
            events = self.store.read(session_id)
            state = apply_events(events, create_initial_state(info.player_count, info.target_score))
            self.registry.store_state(session_id, state)
            if events:
                logger.debug("Rebuilt session %s from %d events", session_id, len(events))
        return state

    def get_events(self, session_id: str, after_sequence: int = 0) -> List[GameEvent]:
        self.registry.get(session_id)
        return self.store.read(session_id, after_sequence)

    def invalidate(self, session_id: str) -> None:
        self.registry.invalidate(session_id)

    def _execute(self, session_id: str, command: str, handler: Callable[..., List[GameEvent]], *args) -> List[GameEvent]:
        state = self.get_state(session_id)
        next_ctx = EventSequence(session_id, self.store.last_sequence(session_id))
        try:
            events = handler(state, next_ctx, *args)
        except GameError as exc:
            logger.debug("Rejected %s in session %s: %s", command, session_id, exc)
            raise
        try:
            for event in events:
                self.store.append(event)
        except Exception:
            # Part of the batch may be stored; rebuild from the log next time.
            self.registry.invalidate(session_id)
            raise
        self.registry.store_state(session_id, apply_events(events, state))
        logger.info("Accepted %s in session %s (%d events)", command, session_id, len(events))
        return events

    # Commands ----------------------------------------------------------

    def start_game(self, session_id: str) -> List[GameEvent]:
        info = self.registry.get(session_id)
        seats = [info.seats[index] for index in sorted(info.seats)]
        return self._execute(
            session_id, "start", commands.start_game, seats, info.player_count, info.target_score, self.rng
        )

    def place_bid(self, session_id: str, player_index: int, amount: int) -> List[GameEvent]:
        return self._execute(session_id, "bid", commands.place_bid, player_index, amount, self.session_rules(session_id))

    def pass_bid(self, session_id: str, player_index: int) -> List[GameEvent]:
        return self._execute(session_id, "pass", commands.pass_bid, player_index, self.session_rules(session_id))

    def take_dabb(self, session_id: str, player_index: int) -> List[GameEvent]:
        return self._execute(session_id, "takeDabb", commands.take_dabb, player_index)

    def discard_cards(self, session_id: str, player_index: int, card_ids: Sequence[str]) -> List[GameEvent]:
        return self._execute(session_id, "discard", commands.discard_cards, player_index, list(card_ids))

    def go_out(self, session_id: str, player_index: int, suit: Suit) -> List[GameEvent]:
        return self._execute(session_id, "goOut", commands.go_out, player_index, suit)

    def declare_trump(self, session_id: str, player_index: int, suit: Suit) -> List[GameEvent]:
        return self._execute(session_id, "declareTrump", commands.declare_trump, player_index, suit)

    def declare_melds(self, session_id: str, player_index: int, melds: Sequence[Meld]) -> List[GameEvent]:
        return self._execute(
            session_id,
            "declareMelds",
            commands.declare_melds,
            player_index,
            list(melds),
            self.session_rules(session_id),
            self.rng,
        )

    def play_card(self, session_id: str, player_index: int, card_id: str) -> List[GameEvent]:
        return self._execute(
            session_id, "playCard", commands.play_card, player_index, card_id, self.session_rules(session_id), self.rng
        )

    def terminate_game(self, session_id: str, player_index: int, reason: Optional[str] = None) -> List[GameEvent]:
        return self._execute(session_id, "exit", commands.terminate_game, player_index, reason)

    def mark_connected(self, session_id: str, player_index: int, connected: bool) -> List[GameEvent]:
        return self._execute(session_id, "connection", commands.set_connected, player_index, connected)

    def execute_action(self, session_id: str, player_index: int, action: AIAction) -> List[GameEvent]:
        rules = self.session_rules(session_id)
        return self._execute(
            session_id,
            str(action.type),
            lambda state, next_ctx: apply_action(state, next_ctx, player_index, action, rules, self.rng),
        )
