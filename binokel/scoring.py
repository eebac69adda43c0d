"""Round scoring helpers for Binokel."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from .melds import calculate_meld_points
from .rules_schema import DEFAULT_RULES, RuleSet
from .state import GameState, RoundScore
from .trick import calculate_trick_points


class ScoringError(ValueError):
    """Raised when a round cannot be scored from the given state."""


def round_to_ten(value: int) -> int:
    """Round to the nearest multiple of ten; a remainder of five rounds up."""
    remainder = value % 10
    if remainder >= 5:
        return value - remainder + 10
    return value - remainder


def player_meld_points(state: GameState, player_index: int) -> int:
    return calculate_meld_points(state.declared_melds.get(player_index, ()))


def player_trick_points(state: GameState, player_index: int) -> int:
    """Raw card points of every trick the player took, before rounding."""
    return sum(calculate_trick_points(cards) for cards in state.tricks_taken.get(player_index, ()))


def _winning_bid(state: GameState, rules: RuleSet) -> int:
    if state.bid_winner is None:
        raise ScoringError("Cannot score a round without a bid winner.")
    return state.current_bid or rules.min_bid


def _bid_winner_key(state: GameState) -> int:
    assert state.bid_winner is not None
    if state.uses_teams:
        team = state.team_of(state.bid_winner)
        if team is None:
            raise ScoringError(f"Player {state.bid_winner} has no team.")
        return team
    return state.bid_winner


def _members(state: GameState, key: int) -> list[int]:
    return state.team_members(key) if state.uses_teams else [key]


def score_round(state: GameState, rules: RuleSet = DEFAULT_RULES) -> Dict[int, RoundScore]:
    """Score a round that was played out to the last trick.

    Trick points are rounded per player and then summed per team; the bid
    winner's side drops to ``-2 * bid`` when melds plus tricks fall short.
    """
    bid = _winning_bid(state, rules)
    bidder = _bid_winner_key(state)
    scores: Dict[int, RoundScore] = {}
    for key in state.score_keys():
        members = _members(state, key)
        melds = sum(player_meld_points(state, player) for player in members)
        tricks = sum(round_to_ten(player_trick_points(state, player)) for player in members)
        raw_total = melds + tricks
        bid_met = key != bidder or raw_total >= bid
        total = raw_total if bid_met else -2 * bid
        scores[key] = RoundScore(melds=melds, tricks=tricks, total=total, bid_met=bid_met)
    return scores


def score_going_out(
    state: GameState,
    meld_scores: Mapping[int, int],
    rules: RuleSet = DEFAULT_RULES,
) -> Dict[int, RoundScore]:
    """Score a round the bid winner abandoned: they lose the bid, the others keep melds plus a bonus."""
    bid = _winning_bid(state, rules)
    bidder = _bid_winner_key(state)
    scores: Dict[int, RoundScore] = {}
    for key in state.score_keys():
        if key == bidder:
            scores[key] = RoundScore(melds=0, tricks=0, total=-bid, bid_met=False)
            continue
        melds = sum(meld_scores.get(player, 0) for player in _members(state, key))
        scores[key] = RoundScore(melds=melds, tricks=0, total=melds + rules.going_out_bonus, bid_met=True)
    return scores


def accumulate_totals(state: GameState, scores: Mapping[int, RoundScore]) -> Dict[int, int]:
    return {key: state.total_scores.get(key, 0) + scores[key].total for key in state.score_keys()}


def find_game_winner(total_scores: Mapping[int, int], target_score: int) -> Optional[int]:
    """Highest total among those that reached the target, or None."""
    winner: Optional[int] = None
    best = 0
    for key in sorted(total_scores):
        score = total_scores[key]
        if score >= target_score and score > best:
            winner, best = key, score
    return winner
