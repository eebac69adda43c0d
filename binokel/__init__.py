"""Core rules engine package for Binokel."""

__all__ = [
    "cards",
    "deck",
    "bidding",
    "trick",
    "mechanics",
    "melds",
    "scoring",
    "state",
    "events",
    "reducer",
    "views",
    "commands",
    "errors",
    "export",
    "rules_schema",
]
