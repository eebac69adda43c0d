"""Session orchestration and real-time service for Binokel."""

__all__ = [
    "config",
    "event_store",
    "registry",
    "game_service",
    "scheduler",
    "play_service",
]
