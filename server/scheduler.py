"""Drive automated seats: find the next actor, pause, decide, execute."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Dict, List, Optional

from binokel.events import EventType, GameEvent
from binokel.state import next_actor
from bots.base import DecisionContext

from .game_service import GameService
from .registry import SessionRegistry

logger = logging.getLogger(__name__)

Broadcast = Callable[[str, List[GameEvent]], Awaitable[None]]
Sleep = Callable[[float], Awaitable[None]]

__all__ = ["TurnScheduler", "next_actor"]


class TurnScheduler:
    """Per-session mailbox of "check the next actor" requests.

    ``notify`` enqueues a request and makes sure a worker task is draining the
    session's queue.  The worker handles one request at a time; each executed
    automated move enqueues the follow-up check, so chains of bot turns run as
    a loop rather than as nested calls.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        service: GameService,
        broadcast: Broadcast,
        delay: float = 0.5,
        jitter: float = 0.5,
        trick_pause: float = 3.0,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.registry = registry
        self.service = service
        self.broadcast = broadcast
        self.delay = delay
        self.jitter = jitter
        self.trick_pause = trick_pause
        self.sleep = sleep
        self.rng = rng or random.Random()
        self._mailboxes: Dict[str, asyncio.Queue] = {}
        self._workers: Dict[str, asyncio.Task] = {}

    def notify(self, session_id: str, after_trick_won: bool = False) -> None:
        queue = self._mailboxes.setdefault(session_id, asyncio.Queue())
        queue.put_nowait(after_trick_won)
        worker = self._workers.get(session_id)
        if worker is None or worker.done():
            self._workers[session_id] = asyncio.get_running_loop().create_task(self._work(session_id))

    async def wait_idle(self, session_id: str) -> None:
        """Wait until the session's mailbox is drained."""
        while True:
            worker = self._workers.get(session_id)
            if worker is None or worker.done():
                return
            await worker

    async def close(self) -> None:
        workers = list(self._workers.values())
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        self._workers.clear()
        self._mailboxes.clear()

    def forget(self, session_id: str) -> None:
        worker = self._workers.pop(session_id, None)
        if worker is not None and worker is not asyncio.current_task():
            worker.cancel()
        self._mailboxes.pop(session_id, None)

    def pause_for(self, after_trick_won: bool) -> float:
        pause = self.delay + self.rng.uniform(0, self.jitter)
        if after_trick_won:
            pause += self.trick_pause
        return pause

    async def _work(self, session_id: str) -> None:
        queue = self._mailboxes.get(session_id)
        while queue is not None and not queue.empty():
            after_trick_won = queue.get_nowait()
            # Coalesce requests that piled up while the previous one ran.
            while not queue.empty():
                after_trick_won = queue.get_nowait() or after_trick_won
            follow_up = await self._check(session_id, after_trick_won)
            if follow_up is not None:
                queue.put_nowait(follow_up)

    async def _check(self, session_id: str, after_trick_won: bool) -> Optional[bool]:
        """Run one automated move if an AI is due; return the follow-up trick flag."""
        if session_id not in self.registry:
            return None
        state = self.service.get_state(session_id)
        player = next_actor(state)
        if player is None:
            return None
        bot = self.registry.get_ai(session_id, player)
        if bot is None:
            return None
        key = (session_id, player, state.phase)
        if key in self.registry.pending:
            return None

        self.registry.pending.add(key)
        try:
            await self.sleep(self.pause_for(after_trick_won))
            if session_id not in self.registry:
                return None
            current = self.service.get_state(session_id)
            if next_actor(current) != player or current.phase is not state.phase:
                return None
            rules = self.service.session_rules(session_id)
            action = bot.decide(DecisionContext(current, player, rules))
            events = self.service.execute_action(session_id, player, action)
        except Exception:
            logger.exception("Automated move for player %d in session %s failed", player, session_id)
            return None
        finally:
            self.registry.pending.discard(key)

        try:
            await self.broadcast(session_id, events)
        except Exception:
            logger.exception("Broadcast for session %s failed", session_id)
        return any(event.type is EventType.TRICK_WON for event in events)
