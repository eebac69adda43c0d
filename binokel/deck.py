"""Deck creation and dealing utilities for Binokel."""

from __future__ import annotations

from random import Random
from typing import Dict, List, Optional, Sequence, Tuple

from .cards import Card, Suit, RANK_ORDER

DECK_SIZE = 40
DABB_SIZE = 4

# Cards per player based on player count (40-card deck, four cards in the dabb).
CARDS_PER_PLAYER: dict[int, int] = {
    2: 18,
    3: 12,
    4: 9,
}


def create_deck() -> List[Card]:
    """Return the ordered 40-card deck (two copies of every suit/rank)."""
    return [Card(suit, rank, copy) for suit in Suit for rank in RANK_ORDER for copy in (0, 1)]


def shuffle_deck(deck: Sequence[Card], rng: Optional[Random] = None) -> List[Card]:
    """Return a shuffled copy of the deck."""
    if rng is None:
        rng = Random()
    cards = list(deck)
    rng.shuffle(cards)
    return cards


def deal_cards(deck: Sequence[Card], player_count: int) -> Tuple[Dict[int, List[Card]], List[Card]]:
    """Deal the hands and the dabb for the given player count."""
    if player_count not in CARDS_PER_PLAYER:
        raise ValueError(f"Binokel is played by 2, 3 or 4 players, not {player_count}.")
    cards = list(deck)
    if len(cards) != DECK_SIZE:
        raise ValueError(f"Deck must contain exactly {DECK_SIZE} cards.")

    hand_size = CARDS_PER_PLAYER[player_count]
    hands = {
        player: cards[player * hand_size : (player + 1) * hand_size]
        for player in range(player_count)
    }
    start = player_count * hand_size
    dabb = cards[start : start + DABB_SIZE]
    return hands, dabb
