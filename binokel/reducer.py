"""Fold game events into ``GameState``.

The reducer never validates: commands are checked before their events are
generated, so every handler simply performs the structural update its event
describes.  Replaying the same events always yields an equal state.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from .bidding import get_first_bidder, get_next_bidder, is_bidding_complete
from .cards import AnyCard
from .events import (
    BiddingWon,
    BidPlaced,
    CardPlayed,
    CardsDealt,
    CardsDiscarded,
    DabbTaken,
    EventType,
    GameEvent,
    GameFinished,
    GameStarted,
    GameTerminated,
    GoingOut,
    MeldingComplete,
    MeldsDeclared,
    NewRoundStarted,
    PlayerJoined,
    PlayerLeft,
    PlayerPassed,
    PlayerReconnected,
    RoundScored,
    TrickWon,
    TrumpDeclared,
)
from .state import GameState, Phase, Player, create_initial_state, reset_for_new_round
from .trick import CompletedTrick, Trick


def _remove_cards(hand: Sequence[AnyCard], card_ids: Iterable[str]) -> Tuple[AnyCard, ...]:
    """Remove cards by id; unknown ids take away one hidden placeholder instead."""
    remaining = list(hand)
    for card_id in card_ids:
        index = next((i for i, card in enumerate(remaining) if card.id == card_id), None)
        if index is None:
            index = next((i for i, card in enumerate(remaining) if card.hidden), None)
        if index is not None:
            del remaining[index]
    return tuple(remaining)


def _with_hand(state: GameState, player_index: int, cards: Tuple[AnyCard, ...]) -> Dict[int, Tuple[AnyCard, ...]]:
    hands = dict(state.hands)
    hands[player_index] = cards
    return hands


def _set_connected(state: GameState, player_index: int, connected: bool) -> GameState:
    players = tuple(
        replace(player, connected=connected) if player.player_index == player_index else player
        for player in state.players
    )
    return replace(state, players=players)


def _game_started(state: GameState, payload: GameStarted) -> GameState:
    fresh = create_initial_state(payload.player_count, payload.target_score)
    return replace(
        fresh,
        players=state.players,
        phase=Phase.DEALING,
        dealer=payload.dealer,
        round=1,
        total_scores={key: 0 for key in fresh.score_keys()},
    )


def _player_joined(state: GameState, payload: PlayerJoined) -> GameState:
    player = Player(payload.player_id, payload.nickname, payload.player_index, payload.team)
    others = tuple(p for p in state.players if p.player_index != payload.player_index)
    players = tuple(sorted(others + (player,), key=lambda p: p.player_index))
    return replace(state, players=players)


def _player_left(state: GameState, payload: PlayerLeft) -> GameState:
    return _set_connected(state, payload.player_index, False)


def _player_reconnected(state: GameState, payload: PlayerReconnected) -> GameState:
    return _set_connected(state, payload.player_index, True)


def _cards_dealt(state: GameState, payload: CardsDealt) -> GameState:
    first = get_first_bidder(state.dealer, state.player_count)
    return replace(
        state,
        phase=Phase.BIDDING,
        hands={player: tuple(cards) for player, cards in payload.hands.items()},
        dabb=tuple(payload.dabb),
        current_bid=0,
        current_bidder=first,
        first_bidder=first,
        passed_players=frozenset(),
    )


def _bid_placed(state: GameState, payload: BidPlaced) -> GameState:
    return replace(
        state,
        current_bid=payload.amount,
        current_bidder=get_next_bidder(payload.player_index, state.player_count, state.passed_players),
    )


def _player_passed(state: GameState, payload: PlayerPassed) -> GameState:
    passed = state.passed_players | {payload.player_index}
    if is_bidding_complete(state.player_count, passed):
        next_bidder = None
    else:
        next_bidder = get_next_bidder(payload.player_index, state.player_count, passed)
    return replace(state, passed_players=passed, current_bidder=next_bidder)


def _bidding_won(state: GameState, payload: BiddingWon) -> GameState:
    return replace(
        state,
        phase=Phase.DABB,
        bid_winner=payload.player_index,
        current_bid=payload.winning_bid,
        current_bidder=None,
    )


def _dabb_taken(state: GameState, payload: DabbTaken) -> GameState:
    hand = state.hands.get(payload.player_index, ()) + tuple(payload.dabb_cards)
    return replace(
        state,
        hands=_with_hand(state, payload.player_index, hand),
        dabb=(),
        dabb_card_ids=tuple(card.id for card in payload.dabb_cards),
    )


def _cards_discarded(state: GameState, payload: CardsDiscarded) -> GameState:
    hand = _remove_cards(state.hands.get(payload.player_index, ()), payload.discarded_cards)
    return replace(state, hands=_with_hand(state, payload.player_index, hand), phase=Phase.TRUMP)


def _going_out(state: GameState, payload: GoingOut) -> GameState:
    return replace(state, trump=payload.suit, went_out=True, declared_melds={}, phase=Phase.MELDING)


def _trump_declared(state: GameState, payload: TrumpDeclared) -> GameState:
    return replace(state, trump=payload.suit, declared_melds={}, phase=Phase.MELDING)


def _melds_declared(state: GameState, payload: MeldsDeclared) -> GameState:
    declared = dict(state.declared_melds)
    declared[payload.player_index] = tuple(payload.melds)
    return replace(state, declared_melds=declared)


def _melding_complete(state: GameState, payload: MeldingComplete) -> GameState:
    if state.went_out:
        # Scoring follows immediately; no tricks are played.
        return state
    return replace(
        state,
        phase=Phase.TRICKS,
        tricks_taken={player: () for player in range(state.player_count)},
        current_trick=Trick(),
        current_player=state.bid_winner,
    )


def _card_played(state: GameState, payload: CardPlayed) -> GameState:
    hand = _remove_cards(state.hands.get(payload.player_index, ()), [payload.card.id])
    return replace(
        state,
        hands=_with_hand(state, payload.player_index, hand),
        current_trick=state.current_trick.with_play(payload.player_index, payload.card),
        current_player=(payload.player_index + 1) % state.player_count,
    )


def _trick_won(state: GameState, payload: TrickWon) -> GameState:
    tricks_taken = dict(state.tricks_taken)
    cards = tuple(payload.cards)
    tricks_taken[payload.winner_index] = tricks_taken.get(payload.winner_index, ()) + (cards,)
    return replace(
        state,
        tricks_taken=tricks_taken,
        current_trick=Trick(),
        current_player=payload.winner_index,
        last_completed_trick=CompletedTrick(cards, payload.winner_index, payload.points),
    )


def _round_scored(state: GameState, payload: RoundScored) -> GameState:
    return replace(
        state,
        phase=Phase.SCORING,
        round_scores=dict(payload.scores),
        total_scores=dict(payload.total_scores),
        current_player=None,
    )


def _game_finished(state: GameState, payload: GameFinished) -> GameState:
    return replace(state, phase=Phase.FINISHED, total_scores=dict(payload.final_scores))


def _new_round_started(state: GameState, payload: NewRoundStarted) -> GameState:
    return replace(reset_for_new_round(state), dealer=payload.dealer, round=payload.round)


def _game_terminated(state: GameState, payload: GameTerminated) -> GameState:
    return replace(state, phase=Phase.TERMINATED, terminated_by=payload.terminated_by, current_player=None)


Handler = Callable[[GameState, object], GameState]

_HANDLERS: Dict[EventType, Handler] = {
    EventType.GAME_STARTED: _game_started,
    EventType.PLAYER_JOINED: _player_joined,
    EventType.PLAYER_LEFT: _player_left,
    EventType.PLAYER_RECONNECTED: _player_reconnected,
    EventType.CARDS_DEALT: _cards_dealt,
    EventType.BID_PLACED: _bid_placed,
    EventType.PLAYER_PASSED: _player_passed,
    EventType.BIDDING_WON: _bidding_won,
    EventType.DABB_TAKEN: _dabb_taken,
    EventType.CARDS_DISCARDED: _cards_discarded,
    EventType.GOING_OUT: _going_out,
    EventType.TRUMP_DECLARED: _trump_declared,
    EventType.MELDS_DECLARED: _melds_declared,
    EventType.MELDING_COMPLETE: _melding_complete,
    EventType.CARD_PLAYED: _card_played,
    EventType.TRICK_WON: _trick_won,
    EventType.ROUND_SCORED: _round_scored,
    EventType.GAME_FINISHED: _game_finished,
    EventType.NEW_ROUND_STARTED: _new_round_started,
    EventType.GAME_TERMINATED: _game_terminated,
}

_missing = set(EventType) - set(_HANDLERS)
if _missing:
    raise RuntimeError(f"No reducer handler for: {sorted(t.value for t in _missing)}")


def apply_event(state: GameState, event: GameEvent) -> GameState:
    return _HANDLERS[event.type](state, event.payload)


def apply_events(events: Iterable[GameEvent], initial: Optional[GameState] = None) -> GameState:
    """Replay events in order, starting from ``initial`` or the empty game."""
    state = initial if initial is not None else create_initial_state()
    for event in events:
        state = apply_event(state, event)
    return state
