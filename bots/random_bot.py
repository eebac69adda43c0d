"""Random baseline bot for simulations."""

from __future__ import annotations

import random
from typing import Optional, Sequence

from binokel.bidding import can_pass, get_min_bid
from binokel.cards import Card, Suit
from binokel.melds import Meld, detect_melds

from .base import ActionType, AIAction, BotStrategy, DecisionContext


class RandomBot(BotStrategy):
    name = "Random"

    def __init__(self, seed: Optional[int] = None, bid_probability: float = 0.3) -> None:
        self._rng = random.Random(seed)
        self.bid_probability = bid_probability

    def offer_bid(self, context: DecisionContext) -> AIAction:
        state = context.state
        amount = get_min_bid(state.current_bid, context.rules.min_bid, context.rules.bid_step)
        if not can_pass(state.current_bid) or self._rng.random() < self.bid_probability:
            return AIAction(ActionType.BID, amount=amount)
        return AIAction(ActionType.PASS)

    def handle_dabb(self, context: DecisionContext) -> AIAction:
        if context.state.dabb:
            return AIAction(ActionType.TAKE_DABB)
        cards = context.hand()
        self._rng.shuffle(cards)
        return AIAction(ActionType.DISCARD, card_ids=tuple(card.id for card in cards[: context.discard_count()]))

    def choose_trump(self, context: DecisionContext) -> Suit:
        return self._rng.choice(list(Suit))

    def choose_melds(self, context: DecisionContext) -> Sequence[Meld]:
        return detect_melds(context.hand(), context.state.trump, context.rules)

    def play_card(self, context: DecisionContext) -> Card:
        legal = context.valid_plays()
        if not legal:
            raise RuntimeError("No legal plays available for bot.")
        return self._rng.choice(legal)
