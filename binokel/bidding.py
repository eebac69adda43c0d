"""Bidding rules for Binokel."""

from __future__ import annotations

from typing import AbstractSet, Optional

MIN_BID = 150
BID_STEP = 10


def get_first_bidder(dealer: int, player_count: int) -> int:
    """The player after the dealer opens the bidding (and leads the first trick)."""
    return (dealer + 1) % player_count


def get_next_bidder(current_bidder: int, player_count: int, passed: AbstractSet[int]) -> Optional[int]:
    """Return the next active player clockwise, or None if everyone passed."""
    for offset in range(1, player_count + 1):
        candidate = (current_bidder + offset) % player_count
        if candidate not in passed:
            return candidate
    return None


def get_min_bid(current_bid: int, min_bid: int = MIN_BID, step: int = BID_STEP) -> int:
    if current_bid == 0:
        return min_bid
    return current_bid + step


def is_valid_bid(amount: int, current_bid: int, min_bid: int = MIN_BID, step: int = BID_STEP) -> bool:
    """The opening bid is exactly the minimum; every later bid raises in steps."""
    if current_bid == 0:
        return amount == min_bid
    return amount > current_bid and (amount - current_bid) % step == 0


def can_pass(current_bid: int) -> bool:
    """The opening bidder has to bid, everyone else may pass."""
    return current_bid > 0


def is_bidding_complete(player_count: int, passed: AbstractSet[int]) -> bool:
    return player_count - len(passed) <= 1


def get_bidding_winner(player_count: int, passed: AbstractSet[int]) -> Optional[int]:
    for player in range(player_count):
        if player not in passed:
            return player
    return None
