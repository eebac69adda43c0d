import pytest
from pydantic import ValidationError

from binokel.events import EventSequence, EventType, create_cards_discarded_event
from binokel.export import format_event_log
from binokel.views import HIDDEN_ID
from bots.simulation import SimulationEngine, SimulationOptions
from server.config import Settings


def test_settings_from_environment():
    settings = Settings.from_env(
        {
            "BINOKEL_AI_DELAY_MS": "250",
            "BINOKEL_TRICK_PAUSE_MS": "0",
            "BINOKEL_LOG_LEVEL": "debug",
            "BINOKEL_CORS_ORIGINS": "http://a.example, http://b.example",
            "UNRELATED": "x",
        }
    )
    assert settings.ai_delay == 0.25
    assert settings.ai_jitter == 0.5
    assert settings.trick_pause == 0
    assert settings.log_level == "DEBUG"
    assert settings.cors_origins == ["http://a.example", "http://b.example"]


def test_settings_validation():
    with pytest.raises(ValidationError):
        Settings(log_level="chatty")
    with pytest.raises(ValidationError):
        Settings(ai_delay_ms=-1)


def test_event_log_lists_rounds_and_events():
    result = SimulationEngine(SimulationOptions(session_id="log", player_count=2, target_score=500, seed=6)).run()
    text = format_event_log(result.events, session_id="log")
    lines = text.splitlines()

    assert lines[1] == "BINOKEL EVENT LOG"
    assert "Session: log" in lines
    assert f"Events: {len(result.events)}" in lines
    assert "--- Round 1 ---" in lines
    assert "[001]" in text
    assert "Alice [0] bid 150" in text or "Bob [1] bid 150" in text
    rounds = sum(1 for event in result.events if event.type is EventType.NEW_ROUND_STARTED)
    assert sum(1 for line in lines if line.startswith("--- Round")) == rounds + 1


def test_terminated_log_is_marked():
    assert "Status: TERMINATED" in format_event_log([], terminated=True)


def test_hidden_discards_render_as_unknown_cards():
    seq = EventSequence("log")
    event = create_cards_discarded_event(seq(), 1, ["herz-ober-0", HIDDEN_ID])
    assert "Player 1 discarded: Herz Ober, ?" in format_event_log([event])
