import asyncio
import random

from binokel.events import EventType
from binokel.state import Phase, next_actor
from bots.base import ActionType, AIAction, BotStrategy
from server.game_service import GameService
from server.registry import SessionRegistry
from server.scheduler import TurnScheduler


class Recorder:
    def __init__(self):
        self.batches = []
        self.pauses = []

    async def broadcast(self, session_id, events):
        self.batches.append((session_id, events))

    async def sleep(self, seconds):
        self.pauses.append(seconds)

    @property
    def events(self):
        return [event for _, batch in self.batches for event in batch]


def setup(humans=0, player_count=3, target_score=500, **scheduler_kwargs):
    registry = SessionRegistry()
    service = GameService(registry, rng=random.Random(23))
    service.create_session(player_count, target_score=target_score, session_id="table")
    for index in range(player_count):
        if index < humans:
            service.join_session("table", f"Human {index}")
        else:
            service.add_ai_player("table")
    service.start_game("table")
    recorder = Recorder()
    options = {"delay": 0, "jitter": 0, "trick_pause": 3.0}
    options.update(scheduler_kwargs)
    scheduler = TurnScheduler(
        registry, service, recorder.broadcast, sleep=recorder.sleep, rng=random.Random(1), **options
    )
    return service, scheduler, recorder


def run(scheduler, *sessions):
    async def drive():
        for session_id in sessions:
            scheduler.notify(session_id)
        for session_id in sessions:
            await scheduler.wait_idle(session_id)
        await scheduler.close()

    asyncio.run(drive())


def test_all_ai_game_plays_to_the_end():
    service, scheduler, recorder = setup()
    run(scheduler, "table")

    state = service.get_state("table")
    assert state.phase is Phase.FINISHED
    assert recorder.events[-1].type is EventType.GAME_FINISHED
    stored = service.get_events("table")
    assert [event.sequence for event in stored] == list(range(1, len(stored) + 1))


def test_trick_pause_follows_completed_tricks():
    service, scheduler, recorder = setup()
    run(scheduler, "table")
    assert 3.0 in recorder.pauses
    assert 0 in recorder.pauses
    tricks_won = sum(1 for event in recorder.events if event.type is EventType.TRICK_WON)
    # The final trick of the game is followed by nobody.
    assert recorder.pauses.count(3.0) >= tricks_won - 1


def test_stops_at_human_turn():
    service, scheduler, recorder = setup(humans=1)
    run(scheduler, "table")

    state = service.get_state("table")
    assert state.phase is Phase.BIDDING
    assert next_actor(state) == 0
    assert recorder.events
    assert all(event.type in (EventType.BID_PLACED, EventType.PLAYER_PASSED) for event in recorder.events)


def test_pending_turn_is_not_scheduled_twice():
    service, scheduler, recorder = setup()
    state = service.get_state("table")
    key = ("table", next_actor(state), state.phase)
    service.registry.pending.add(key)

    run(scheduler, "table")
    assert recorder.batches == []
    assert service.get_state("table") is state


def test_rejected_bot_move_stops_the_chain():
    class StubbornBot(BotStrategy):
        def decide(self, context):
            return AIAction(ActionType.BID, amount=155)

    service, scheduler, recorder = setup()
    service.registry.register_ai("table", 1, StubbornBot())
    run(scheduler, "table")

    assert recorder.batches == []
    assert service.get_state("table").current_bid == 0
    assert service.registry.pending == set()


def test_evicted_session_is_ignored():
    service, scheduler, recorder = setup()
    service.registry.evict("table")
    run(scheduler, "table")
    assert recorder.batches == []


def test_pause_includes_jitter_and_trick_pause():
    registry = SessionRegistry()
    scheduler = TurnScheduler(
        registry, GameService(registry), None, delay=0.5, jitter=0.5, trick_pause=3.0, rng=random.Random(4)
    )
    for _ in range(20):
        assert 0.5 <= scheduler.pause_for(False) <= 1.0
        assert 3.5 <= scheduler.pause_for(True) <= 4.0
