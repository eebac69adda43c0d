"""Validation schema for Binokel rules configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

MELD_NAMES = (
    "paar",
    "familie",
    "binokel",
    "doppel-binokel",
    "vier-ass",
    "vier-koenig",
    "vier-ober",
    "vier-unter",
    "acht-ass",
    "acht-koenig",
    "acht-ober",
    "acht-unter",
)

DEFAULT_MELD_POINTS: dict[str, int] = {
    "paar": 20,
    "familie": 100,
    "binokel": 40,
    "doppel-binokel": 300,
    "vier-ass": 100,
    "vier-koenig": 80,
    "vier-ober": 60,
    "vier-unter": 40,
    "acht-ass": 1000,
    "acht-koenig": 600,
    "acht-ober": 400,
    "acht-unter": 200,
}

# Paar 20 -> 40 and Familie 100 -> 150 in the trump suit.
DEFAULT_TRUMP_BONUS: dict[str, int] = {
    "paar": 20,
    "familie": 50,
}


def _validate_meld_name(value: str) -> str:
    normalized = value.lower()
    if normalized not in MELD_NAMES:
        raise ValueError(f"Unknown meld: {value!r}")
    return normalized


class RuleSet(BaseModel):
    target_score: int = Field(1000, gt=0, description="Cumulative score that ends the game.")
    min_bid: int = Field(150, gt=0, description="Mandatory opening bid.")
    bid_step: int = Field(10, gt=0, description="Every raise is a multiple of this.")
    going_out_bonus: int = Field(40, ge=0, description="Bonus for each opponent when the bid winner goes out.")
    meld_points: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_MELD_POINTS))
    trump_bonus: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_TRUMP_BONUS))

    @field_validator("meld_points")
    @classmethod
    def validate_meld_points(cls, value: dict[str, int]) -> dict[str, int]:
        normalized = {_validate_meld_name(name): points for name, points in value.items()}
        missing = set(MELD_NAMES) - set(normalized)
        if missing:
            raise ValueError(f"Meld points missing for: {sorted(missing)}")
        for name, points in normalized.items():
            if points <= 0:
                raise ValueError(f"Meld points for {name} must be positive.")
        return normalized

    @field_validator("trump_bonus")
    @classmethod
    def validate_trump_bonus(cls, value: dict[str, int]) -> dict[str, int]:
        normalized = {_validate_meld_name(name): points for name, points in value.items()}
        for name, points in normalized.items():
            if points < 0:
                raise ValueError(f"Trump bonus for {name} has negative points.")
        return normalized


DEFAULT_RULES = RuleSet()
