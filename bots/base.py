"""Common bot strategy interfaces."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from random import Random
from typing import List, Optional, Sequence, Tuple

from binokel import commands
from binokel.bidding import can_pass, get_min_bid
from binokel.cards import Card, Suit
from binokel.deck import CARDS_PER_PLAYER
from binokel.events import GameEvent
from binokel.mechanics import get_valid_plays
from binokel.melds import Meld
from binokel.rules_schema import DEFAULT_RULES, RuleSet
from binokel.state import GameState, Phase

logger = logging.getLogger(__name__)


class ActionType(Enum):
    BID = "bid"
    PASS = "pass"
    TAKE_DABB = "takeDabb"
    DISCARD = "discard"
    GO_OUT = "goOut"
    DECLARE_TRUMP = "declareTrump"
    DECLARE_MELDS = "declareMelds"
    PLAY_CARD = "playCard"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class AIAction:
    type: ActionType
    amount: Optional[int] = None
    card_ids: Tuple[str, ...] = ()
    suit: Optional[Suit] = None
    melds: Tuple[Meld, ...] = ()
    card_id: Optional[str] = None


@dataclass(frozen=True)
class DecisionContext:
    state: GameState
    player_index: int
    rules: RuleSet = field(default_factory=lambda: DEFAULT_RULES)

    def hand(self) -> List[Card]:
        return [card for card in self.state.hand(self.player_index) if not card.hidden]

    def valid_plays(self) -> List[Card]:
        return get_valid_plays(self.hand(), self.state.current_trick, self.state.trump)

    def discard_count(self) -> int:
        return len(self.hand()) - CARDS_PER_PLAYER[self.state.player_count]


class BotStrategy:
    """Base class for bot policies.

    ``decide`` dispatches on the phase; subclasses override the per-phase
    hooks.  Any exception inside a hook is logged and replaced by the
    fallback action so that a faulty heuristic never stalls a game.
    """

    name: str = "BaseBot"

    def decide(self, context: DecisionContext) -> AIAction:
        try:
            return self._dispatch(context)
        except Exception:
            logger.exception("%s failed in phase %s, using fallback", self.name, context.state.phase)
            return self.fallback(context)

    def _dispatch(self, context: DecisionContext) -> AIAction:
        phase = context.state.phase
        if phase is Phase.BIDDING:
            return self.offer_bid(context)
        if phase is Phase.DABB:
            return self.handle_dabb(context)
        if phase is Phase.TRUMP:
            return AIAction(ActionType.DECLARE_TRUMP, suit=self.choose_trump(context))
        if phase is Phase.MELDING:
            return AIAction(ActionType.DECLARE_MELDS, melds=tuple(self.choose_melds(context)))
        if phase is Phase.TRICKS:
            return AIAction(ActionType.PLAY_CARD, card_id=self.play_card(context).id)
        raise RuntimeError(f"No decision to make in phase {phase}.")

    def offer_bid(self, context: DecisionContext) -> AIAction:
        return self.fallback(context)

    def handle_dabb(self, context: DecisionContext) -> AIAction:
        return self.fallback(context)

    def choose_trump(self, context: DecisionContext) -> Suit:
        return Suit.HERZ

    def choose_melds(self, context: DecisionContext) -> Sequence[Meld]:
        return []

    def play_card(self, context: DecisionContext) -> Card:
        legal = context.valid_plays()
        if not legal:
            raise RuntimeError("No legal plays available for bot.")
        return legal[0]

    def fallback(self, context: DecisionContext) -> AIAction:
        state = context.state
        phase = state.phase
        if phase is Phase.BIDDING:
            if can_pass(state.current_bid):
                return AIAction(ActionType.PASS)
            amount = get_min_bid(state.current_bid, context.rules.min_bid, context.rules.bid_step)
            return AIAction(ActionType.BID, amount=amount)
        if phase is Phase.DABB:
            if state.dabb:
                return AIAction(ActionType.TAKE_DABB)
            hand = context.hand()
            count = context.discard_count()
            return AIAction(ActionType.DISCARD, card_ids=tuple(card.id for card in hand[len(hand) - count :]))
        if phase is Phase.TRUMP:
            return AIAction(ActionType.DECLARE_TRUMP, suit=Suit.HERZ)
        if phase is Phase.MELDING:
            return AIAction(ActionType.DECLARE_MELDS)
        if phase is Phase.TRICKS:
            return AIAction(ActionType.PLAY_CARD, card_id=context.valid_plays()[0].id)
        raise RuntimeError(f"No fallback action in phase {phase}.")


def apply_action(
    state: GameState,
    next_ctx: commands.NextContext,
    player_index: int,
    action: AIAction,
    rules: RuleSet = DEFAULT_RULES,
    rng: Optional[Random] = None,
) -> List[GameEvent]:
    """Run an action through command validation and return the resulting events."""
    if action.type is ActionType.BID:
        assert action.amount is not None
        return commands.place_bid(state, next_ctx, player_index, action.amount, rules)
    if action.type is ActionType.PASS:
        return commands.pass_bid(state, next_ctx, player_index, rules)
    if action.type is ActionType.TAKE_DABB:
        return commands.take_dabb(state, next_ctx, player_index)
    if action.type is ActionType.DISCARD:
        return commands.discard_cards(state, next_ctx, player_index, action.card_ids)
    if action.type is ActionType.GO_OUT:
        assert action.suit is not None
        return commands.go_out(state, next_ctx, player_index, action.suit)
    if action.type is ActionType.DECLARE_TRUMP:
        assert action.suit is not None
        return commands.declare_trump(state, next_ctx, player_index, action.suit)
    if action.type is ActionType.DECLARE_MELDS:
        return commands.declare_melds(state, next_ctx, player_index, action.melds, rules, rng)
    if action.type is ActionType.PLAY_CARD:
        assert action.card_id is not None
        return commands.play_card(state, next_ctx, player_index, action.card_id, rules, rng)
    raise ValueError(f"Unknown action type: {action.type}")
