"""Trick representation and resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

from .cards import Card, Suit, beats


class TrickError(RuntimeError):
    """Raised when a trick cannot be resolved."""


@dataclass(frozen=True)
class PlayedCard:
    player_index: int
    card: Card

    @property
    def card_id(self) -> str:
        return self.card.id


@dataclass(frozen=True)
class Trick:
    plays: Tuple[PlayedCard, ...] = field(default_factory=tuple)

    def is_empty(self) -> bool:
        return not self.plays

    @property
    def lead_suit(self) -> Optional[Suit]:
        return self.plays[0].card.suit if self.plays else None

    def with_play(self, player_index: int, card: Card) -> "Trick":
        return Trick(self.plays + (PlayedCard(player_index, card),))

    def cards(self) -> list[Card]:
        return [play.card for play in self.plays]

    def winning_play(self, trump: Optional[Suit]) -> PlayedCard:
        return self.plays[determine_trick_winner(self, trump)]


@dataclass(frozen=True)
class CompletedTrick:
    cards: Tuple[Card, ...]
    winner_index: int
    points: int


def determine_trick_winner(trick: Trick, trump: Optional[Suit]) -> int:
    """Return the position within the trick of the winning card.

    The highest trump wins; without trumps the highest card of the lead suit.
    """
    if trick.is_empty():
        raise TrickError("Cannot determine winner of empty trick.")
    led = trick.lead_suit
    assert led is not None
    winning_position = 0
    winning_card = trick.plays[0].card
    for position, play in enumerate(trick.plays[1:], start=1):
        if beats(play.card, winning_card, led, trump):
            winning_position, winning_card = position, play.card
    return winning_position


def calculate_trick_points(cards: Iterable[Card]) -> int:
    return sum(card.point_value() for card in cards)
