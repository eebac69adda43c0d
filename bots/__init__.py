"""Bot strategies for Binokel."""

from .base import ActionType, AIAction, BotStrategy, DecisionContext
from .binokel_bot import BinokelBot
from .random_bot import RandomBot

__all__ = ["ActionType", "AIAction", "BotStrategy", "DecisionContext", "BinokelBot", "RandomBot"]
