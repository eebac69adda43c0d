"""Heuristic Binokel bot used for automated seats and simulations."""

from __future__ import annotations

import random
from collections import Counter
from typing import Dict, List, Optional, Sequence

from binokel.bidding import can_pass, get_min_bid
from binokel.cards import Card, Rank, Suit, beats, card_strength
from binokel.melds import Meld, calculate_meld_points, detect_melds
from binokel.rules_schema import DEFAULT_RULES, RuleSet

from .base import ActionType, AIAction, BotStrategy, DecisionContext

# Flat estimate for the trick points a bid winner usually collects.
EXPECTED_TRICK_POINTS = 50

ALWAYS_BID_MARGIN = 70
ALWAYS_PASS_MARGIN = -60
MAX_PASS_PROBABILITY = 0.9

# Hold more than this many trumps to lead with trump.
TRUMP_LEAD_THRESHOLD = 3


def pass_probability(margin: int) -> float:
    """Chance of passing given expected points minus the bid to make."""
    if margin >= ALWAYS_BID_MARGIN:
        return 0.0
    if margin <= ALWAYS_PASS_MARGIN:
        return 1.0
    spread = ALWAYS_BID_MARGIN - ALWAYS_PASS_MARGIN
    return min(MAX_PASS_PROBABILITY, ((ALWAYS_BID_MARGIN - margin) / spread) ** 2 * MAX_PASS_PROBABILITY)


def meld_points_by_suit(hand: Sequence[Card], rules: RuleSet = DEFAULT_RULES) -> Dict[Suit, int]:
    return {suit: calculate_meld_points(detect_melds(hand, suit, rules)) for suit in Suit}


class BinokelBot(BotStrategy):
    name = "Binokel"

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random(seed)
        self._planned_trump: Optional[Suit] = None

    # Bidding -----------------------------------------------------------

    def offer_bid(self, context: DecisionContext) -> AIAction:
        state = context.state
        min_bid = get_min_bid(state.current_bid, context.rules.min_bid, context.rules.bid_step)
        if not can_pass(state.current_bid):
            return AIAction(ActionType.BID, amount=min_bid)

        best = max(meld_points_by_suit(context.hand(), context.rules).values())
        margin = best + EXPECTED_TRICK_POINTS - min_bid
        if self._rng.random() < pass_probability(margin):
            return AIAction(ActionType.PASS)
        return AIAction(ActionType.BID, amount=min_bid)

    # Dabb and trump ----------------------------------------------------

    def best_trump(self, hand: Sequence[Card], rules: RuleSet = DEFAULT_RULES) -> Suit:
        points = meld_points_by_suit(hand, rules)
        top = max(points.values())
        return self._rng.choice([suit for suit in Suit if points[suit] == top])

    def handle_dabb(self, context: DecisionContext) -> AIAction:
        if context.state.dabb:
            self._planned_trump = None
            return AIAction(ActionType.TAKE_DABB)

        hand = context.hand()
        trump = self.best_trump(hand, context.rules)
        self._planned_trump = trump
        in_melds = {card_id for meld in detect_melds(hand, trump, context.rules) for card_id in meld.cards}
        ranked = sorted(
            hand,
            key=lambda card: (card.id in in_melds, card.suit is trump, card.point_value(), card_strength(card)),
        )
        discard = ranked[: context.discard_count()]
        return AIAction(ActionType.DISCARD, card_ids=tuple(card.id for card in discard))

    def choose_trump(self, context: DecisionContext) -> Suit:
        if self._planned_trump is not None:
            return self._planned_trump
        return self.best_trump(context.hand(), context.rules)

    def choose_melds(self, context: DecisionContext) -> Sequence[Meld]:
        return detect_melds(context.hand(), context.state.trump, context.rules)

    # Tricks ------------------------------------------------------------

    def play_card(self, context: DecisionContext) -> Card:
        legal = context.valid_plays()
        if len(legal) == 1:
            return legal[0]
        if context.state.current_trick.is_empty():
            return self._lead(context.hand(), legal, context.state.trump)
        return self._follow(context, legal)

    def _lead(self, hand: Sequence[Card], legal: List[Card], trump: Optional[Suit]) -> Card:
        suit_counts = Counter(card.suit for card in hand)
        aces = [card for card in legal if card.rank is Rank.ASS]
        lonely = [
            ace
            for ace in aces
            if all(card.rank is Rank.ASS for card in hand if card.suit is ace.suit)
        ]
        if lonely:
            lonely.sort(key=lambda card: card.suit is not trump)
            return lonely[0]

        trumps = [card for card in legal if card.suit is trump]
        if len(trumps) > TRUMP_LEAD_THRESHOLD:
            candidates = trumps
        else:
            candidates = [card for card in legal if card.suit is not trump] or legal

        ace_counts = Counter(card.suit for card in hand if card.rank is Rank.ASS)
        kept = [
            card
            for card in candidates
            if not (card.rank is Rank.ASS and ace_counts[card.suit] == 2 and suit_counts[card.suit] > 2)
        ]
        candidates = kept or candidates
        return max(candidates, key=lambda card: (card.point_value(), card_strength(card)))

    def _follow(self, context: DecisionContext, legal: List[Card]) -> Card:
        state = context.state
        trick = state.current_trick
        trump = state.trump
        led = trick.lead_suit
        winning_card = trick.winning_play(trump).card

        winners = [card for card in legal if beats(card, winning_card, led, trump)]
        if winners:
            return min(winners, key=lambda card: (card.suit is trump, card_strength(card), card.point_value()))

        pool = [card for card in legal if card.suit is not trump] or legal
        suit_counts = Counter(card.suit for card in context.hand())
        longest = max(pool, key=lambda card: suit_counts[card.suit]).suit
        return min(
            (card for card in pool if card.suit is longest),
            key=lambda card: (card.point_value(), card_strength(card)),
        )
