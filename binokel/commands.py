"""Command validation and event generation.

Every function here checks a player command against the current state and
returns the events it produces, or raises ``GameError`` before generating
anything.  Follow-up events (trick completion, round scoring, the next deal)
are produced in the same batch, in the order they happen.
"""

from __future__ import annotations

from dataclasses import dataclass
from random import Random
from typing import Callable, Iterable, List, Optional, Sequence

from .bidding import can_pass, get_min_bid, is_bidding_complete, is_valid_bid
from .cards import AnyCard, Card, Suit
from .deck import DABB_SIZE, create_deck, deal_cards, shuffle_deck
from .errors import ErrorCode, GameError
from .events import (
    EventContext,
    GameEvent,
    create_bid_placed_event,
    create_bidding_won_event,
    create_card_played_event,
    create_cards_dealt_event,
    create_cards_discarded_event,
    create_dabb_taken_event,
    create_game_finished_event,
    create_game_started_event,
    create_game_terminated_event,
    create_going_out_event,
    create_melding_complete_event,
    create_melds_declared_event,
    create_new_round_started_event,
    create_player_joined_event,
    create_player_left_event,
    create_player_passed_event,
    create_player_reconnected_event,
    create_round_scored_event,
    create_trick_won_event,
    create_trump_declared_event,
)
from .mechanics import is_valid_play
from .melds import Meld, calculate_meld_points, melds_are_declarable
from .reducer import apply_event
from .rules_schema import DEFAULT_RULES, RuleSet
from .scoring import accumulate_totals, find_game_winner, score_going_out, score_round
from .state import ACTIVE_PHASES, GameState, Phase
from .trick import calculate_trick_points, determine_trick_winner

NextContext = Callable[[], EventContext]


@dataclass(frozen=True)
class Seat:
    player_id: str
    nickname: str
    player_index: int
    is_ai: bool = False


class _Batch:
    """Events generated by one command, folded into a working state as they are emitted."""

    def __init__(self, state: GameState, next_ctx: NextContext) -> None:
        self.state = state
        self.next_ctx = next_ctx
        self.events: List[GameEvent] = []

    def emit(self, factory: Callable[..., GameEvent], *args) -> GameEvent:
        event = factory(self.next_ctx(), *args)
        self.events.append(event)
        self.state = apply_event(self.state, event)
        return event


def _require_phase(state: GameState, phase: Phase, code: ErrorCode) -> None:
    if state.phase is not phase:
        raise GameError(code, {"phase": state.phase.value})


def _require_bid_winner(state: GameState, player_index: int, code: ErrorCode) -> None:
    if state.bid_winner != player_index:
        raise GameError(code)


def _find_card(hand: Iterable[AnyCard], card_id: str) -> Card:
    for card in hand:
        if card.id == card_id and not card.hidden:
            return card
    raise GameError(ErrorCode.CARD_NOT_IN_HAND, {"card_id": card_id})


def _deal(batch: _Batch, rng: Optional[Random]) -> None:
    deck = shuffle_deck(create_deck(), rng)
    hands, dabb = deal_cards(deck, batch.state.player_count)
    batch.emit(create_cards_dealt_event, hands, dabb)


def _finish_round(batch: _Batch, scores, rng: Optional[Random]) -> None:
    state = batch.state
    totals = accumulate_totals(state, scores)
    batch.emit(create_round_scored_event, scores, totals)
    winner = find_game_winner(totals, state.target_score)
    if winner is not None:
        batch.emit(create_game_finished_event, winner, totals)
        return
    batch.emit(create_new_round_started_event, state.round + 1, (state.dealer + 1) % state.player_count)
    _deal(batch, rng)


def start_game(
    state: GameState,
    next_ctx: NextContext,
    seats: Sequence[Seat],
    player_count: int,
    target_score: int,
    rng: Optional[Random] = None,
) -> List[GameEvent]:
    if state.phase is not Phase.WAITING:
        raise GameError(ErrorCode.GAME_ALREADY_STARTED)
    if len(seats) != player_count:
        raise GameError(ErrorCode.NOT_ENOUGH_PLAYERS, {"required": player_count, "present": len(seats)})

    rng = rng or Random()
    teams = {}
    if player_count == 4:
        order = [seat.player_index for seat in seats]
        rng.shuffle(order)
        teams = {player_index: (0 if position < 2 else 1) for position, player_index in enumerate(order)}

    batch = _Batch(state, next_ctx)
    for seat in sorted(seats, key=lambda s: s.player_index):
        batch.emit(
            create_player_joined_event,
            seat.player_id,
            seat.player_index,
            seat.nickname,
            teams.get(seat.player_index),
        )
    batch.emit(create_game_started_event, player_count, target_score, 0)
    _deal(batch, rng)
    return batch.events


def place_bid(
    state: GameState,
    next_ctx: NextContext,
    player_index: int,
    amount: int,
    rules: RuleSet = DEFAULT_RULES,
) -> List[GameEvent]:
    _require_phase(state, Phase.BIDDING, ErrorCode.NOT_IN_BIDDING_PHASE)
    if state.current_bidder != player_index:
        raise GameError(ErrorCode.NOT_YOUR_TURN_TO_BID)
    if not is_valid_bid(amount, state.current_bid, rules.min_bid, rules.bid_step):
        raise GameError(
            ErrorCode.INVALID_BID_AMOUNT,
            {"amount": amount, "min_bid": get_min_bid(state.current_bid, rules.min_bid, rules.bid_step)},
        )
    batch = _Batch(state, next_ctx)
    batch.emit(create_bid_placed_event, player_index, amount)
    return batch.events


def pass_bid(
    state: GameState,
    next_ctx: NextContext,
    player_index: int,
    rules: RuleSet = DEFAULT_RULES,
) -> List[GameEvent]:
    _require_phase(state, Phase.BIDDING, ErrorCode.NOT_IN_BIDDING_PHASE)
    if state.current_bidder != player_index:
        raise GameError(ErrorCode.NOT_YOUR_TURN)
    if not can_pass(state.current_bid):
        raise GameError(ErrorCode.FIRST_BIDDER_MUST_BID)

    batch = _Batch(state, next_ctx)
    batch.emit(create_player_passed_event, player_index)
    after = batch.state
    if is_bidding_complete(after.player_count, after.passed_players):
        winner = next(p for p in range(after.player_count) if p not in after.passed_players)
        batch.emit(create_bidding_won_event, winner, after.current_bid or rules.min_bid)
    return batch.events


def take_dabb(state: GameState, next_ctx: NextContext, player_index: int) -> List[GameEvent]:
    _require_phase(state, Phase.DABB, ErrorCode.NOT_IN_DABB_PHASE)
    _require_bid_winner(state, player_index, ErrorCode.ONLY_BID_WINNER_CAN_TAKE_DABB)
    if not state.dabb:
        raise GameError(ErrorCode.DABB_ALREADY_TAKEN)
    batch = _Batch(state, next_ctx)
    batch.emit(create_dabb_taken_event, player_index, state.dabb)
    return batch.events


def discard_cards(
    state: GameState,
    next_ctx: NextContext,
    player_index: int,
    card_ids: Sequence[str],
) -> List[GameEvent]:
    _require_phase(state, Phase.DABB, ErrorCode.NOT_IN_DABB_PHASE)
    _require_bid_winner(state, player_index, ErrorCode.ONLY_BID_WINNER_CAN_DISCARD)
    if state.dabb:
        raise GameError(ErrorCode.MUST_TAKE_DABB_FIRST)
    if len(card_ids) != DABB_SIZE or len(set(card_ids)) != DABB_SIZE:
        raise GameError(ErrorCode.MUST_DISCARD_EXACT_COUNT, {"count": DABB_SIZE})
    hand = state.hand(player_index)
    for card_id in card_ids:
        _find_card(hand, card_id)
    batch = _Batch(state, next_ctx)
    batch.emit(create_cards_discarded_event, player_index, list(card_ids))
    return batch.events


def go_out(state: GameState, next_ctx: NextContext, player_index: int, suit: Suit) -> List[GameEvent]:
    _require_phase(state, Phase.DABB, ErrorCode.NOT_IN_DABB_PHASE)
    _require_bid_winner(state, player_index, ErrorCode.ONLY_BID_WINNER_CAN_GO_OUT)
    if state.dabb:
        raise GameError(ErrorCode.MUST_TAKE_DABB_BEFORE_GOING_OUT)
    batch = _Batch(state, next_ctx)
    batch.emit(create_going_out_event, player_index, suit)
    return batch.events


def declare_trump(state: GameState, next_ctx: NextContext, player_index: int, suit: Suit) -> List[GameEvent]:
    _require_phase(state, Phase.TRUMP, ErrorCode.NOT_IN_TRUMP_PHASE)
    _require_bid_winner(state, player_index, ErrorCode.ONLY_BID_WINNER_CAN_DECLARE_TRUMP)
    batch = _Batch(state, next_ctx)
    batch.emit(create_trump_declared_event, player_index, suit)
    return batch.events


def declare_melds(
    state: GameState,
    next_ctx: NextContext,
    player_index: int,
    melds: Sequence[Meld],
    rules: RuleSet = DEFAULT_RULES,
    rng: Optional[Random] = None,
) -> List[GameEvent]:
    _require_phase(state, Phase.MELDING, ErrorCode.NOT_IN_MELDING_PHASE)
    if state.went_out and player_index == state.bid_winner:
        raise GameError(ErrorCode.CANNOT_MELD_WHEN_GOING_OUT)
    if player_index in state.declared_melds:
        raise GameError(ErrorCode.ALREADY_DECLARED_MELDS)
    if not melds_are_declarable(melds, state.hand(player_index), state.trump, rules):
        raise GameError(ErrorCode.INVALID_MELDS)

    batch = _Batch(state, next_ctx)
    batch.emit(create_melds_declared_event, player_index, melds, calculate_meld_points(melds))

    after = batch.state
    expected = after.player_count - 1 if after.went_out else after.player_count
    if len(after.declared_melds) < expected:
        return batch.events

    meld_scores = {
        player: calculate_meld_points(after.declared_melds.get(player, ()))
        for player in range(after.player_count)
    }
    if after.went_out:
        meld_scores[after.bid_winner] = 0
    batch.emit(create_melding_complete_event, meld_scores)
    if after.went_out:
        _finish_round(batch, score_going_out(batch.state, meld_scores, rules), rng)
    return batch.events


def play_card(
    state: GameState,
    next_ctx: NextContext,
    player_index: int,
    card_id: str,
    rules: RuleSet = DEFAULT_RULES,
    rng: Optional[Random] = None,
) -> List[GameEvent]:
    _require_phase(state, Phase.TRICKS, ErrorCode.NOT_IN_TRICKS_PHASE)
    if state.current_player != player_index:
        raise GameError(ErrorCode.NOT_YOUR_TURN)
    hand = state.hand(player_index)
    card = _find_card(hand, card_id)
    if not is_valid_play(card, hand, state.current_trick, state.trump):
        raise GameError(ErrorCode.INVALID_PLAY, {"card_id": card_id})

    batch = _Batch(state, next_ctx)
    batch.emit(create_card_played_event, player_index, card)

    trick = batch.state.current_trick
    if len(trick.plays) < state.player_count:
        return batch.events

    winner = trick.plays[determine_trick_winner(trick, state.trump)].player_index
    cards = trick.cards()
    batch.emit(create_trick_won_event, winner, cards, calculate_trick_points(cards))

    if any(batch.state.hands.get(player) for player in range(state.player_count)):
        return batch.events
    _finish_round(batch, score_round(batch.state, rules), rng)
    return batch.events


def terminate_game(
    state: GameState,
    next_ctx: NextContext,
    player_index: int,
    reason: Optional[str] = None,
) -> List[GameEvent]:
    if state.phase not in ACTIVE_PHASES:
        raise GameError(ErrorCode.CANNOT_TERMINATE_IN_CURRENT_PHASE, {"phase": state.phase.value})
    batch = _Batch(state, next_ctx)
    batch.emit(create_game_terminated_event, player_index, reason)
    return batch.events


def set_connected(
    state: GameState,
    next_ctx: NextContext,
    player_index: int,
    connected: bool,
) -> List[GameEvent]:
    """Record a connection change; nothing is emitted before the players are seated."""
    player = next((p for p in state.players if p.player_index == player_index), None)
    if player is None or player.connected == connected:
        return []
    factory = create_player_reconnected_event if connected else create_player_left_event
    batch = _Batch(state, next_ctx)
    batch.emit(factory, player_index)
    return batch.events
