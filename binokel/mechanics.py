"""Legal move generation for Binokel."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .cards import Card, Suit, beats
from .trick import Trick


def get_valid_plays(hand: Iterable[Card], trick: Trick, trump: Optional[Suit]) -> List[Card]:
    """Return the subset of cards that are legal to play given the current trick.

    Follow suit and beat the winning card if possible; when void in the lead
    suit, play trump and overtrump if possible; otherwise anything goes.
    """
    cards = list(hand)
    if trick.is_empty():
        return cards

    led = trick.lead_suit
    assert led is not None
    winning_card = trick.winning_play(trump).card

    in_led = [card for card in cards if card.suit is led]
    if in_led:
        winning_led = [card for card in in_led if beats(card, winning_card, led, trump)]
        return winning_led if winning_led else in_led

    if trump is not None:
        trump_cards = [card for card in cards if card.suit is trump]
        if trump_cards:
            if winning_card.suit is trump:
                winning_trump = [card for card in trump_cards if beats(card, winning_card, led, trump)]
                return winning_trump if winning_trump else trump_cards
            return trump_cards

    return cards


def is_valid_play(card: Card, hand: Iterable[Card], trick: Trick, trump: Optional[Suit]) -> bool:
    return any(candidate.id == card.id for candidate in get_valid_plays(hand, trick, trump))
