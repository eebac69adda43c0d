"""Event catalog and event generators.

Every change to a game is recorded as an immutable ``GameEvent``.  Each event
type has its own payload dataclass; ``event_to_dict``/``event_from_dict``
translate to and from the JSON shape used on the wire and in the event log.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from .cards import AnyCard, Card, Suit, deserialize_card, serialize_card
from .melds import Meld, MeldType
from .state import RoundScore


class EventType(Enum):
    GAME_STARTED = "GAME_STARTED"
    PLAYER_JOINED = "PLAYER_JOINED"
    PLAYER_LEFT = "PLAYER_LEFT"
    PLAYER_RECONNECTED = "PLAYER_RECONNECTED"
    CARDS_DEALT = "CARDS_DEALT"
    BID_PLACED = "BID_PLACED"
    PLAYER_PASSED = "PLAYER_PASSED"
    BIDDING_WON = "BIDDING_WON"
    DABB_TAKEN = "DABB_TAKEN"
    CARDS_DISCARDED = "CARDS_DISCARDED"
    GOING_OUT = "GOING_OUT"
    TRUMP_DECLARED = "TRUMP_DECLARED"
    MELDS_DECLARED = "MELDS_DECLARED"
    MELDING_COMPLETE = "MELDING_COMPLETE"
    CARD_PLAYED = "CARD_PLAYED"
    TRICK_WON = "TRICK_WON"
    ROUND_SCORED = "ROUND_SCORED"
    GAME_FINISHED = "GAME_FINISHED"
    NEW_ROUND_STARTED = "NEW_ROUND_STARTED"
    GAME_TERMINATED = "GAME_TERMINATED"

    def __str__(self) -> str:
        return self.value


# Payloads ---------------------------------------------------------------


@dataclass(frozen=True)
class GameStarted:
    player_count: int
    target_score: int
    dealer: int


@dataclass(frozen=True)
class PlayerJoined:
    player_id: str
    player_index: int
    nickname: str
    team: Optional[int] = None


@dataclass(frozen=True)
class PlayerLeft:
    player_index: int


@dataclass(frozen=True)
class PlayerReconnected:
    player_index: int


@dataclass(frozen=True)
class CardsDealt:
    hands: Dict[int, Tuple[AnyCard, ...]]
    dabb: Tuple[AnyCard, ...]


@dataclass(frozen=True)
class BidPlaced:
    player_index: int
    amount: int


@dataclass(frozen=True)
class PlayerPassed:
    player_index: int


@dataclass(frozen=True)
class BiddingWon:
    player_index: int
    winning_bid: int


@dataclass(frozen=True)
class DabbTaken:
    player_index: int
    dabb_cards: Tuple[AnyCard, ...]


@dataclass(frozen=True)
class CardsDiscarded:
    player_index: int
    discarded_cards: Tuple[str, ...]


@dataclass(frozen=True)
class GoingOut:
    player_index: int
    suit: Suit


@dataclass(frozen=True)
class TrumpDeclared:
    player_index: int
    suit: Suit


@dataclass(frozen=True)
class MeldsDeclared:
    player_index: int
    melds: Tuple[Meld, ...]
    total_points: int


@dataclass(frozen=True)
class MeldingComplete:
    meld_scores: Dict[int, int]


@dataclass(frozen=True)
class CardPlayed:
    player_index: int
    card: Card


@dataclass(frozen=True)
class TrickWon:
    winner_index: int
    cards: Tuple[Card, ...]
    points: int


@dataclass(frozen=True)
class RoundScored:
    scores: Dict[int, RoundScore]
    total_scores: Dict[int, int]


@dataclass(frozen=True)
class GameFinished:
    winner: int
    final_scores: Dict[int, int]


@dataclass(frozen=True)
class NewRoundStarted:
    round: int
    dealer: int


@dataclass(frozen=True)
class GameTerminated:
    terminated_by: int
    reason: Optional[str] = None


Payload = Union[
    GameStarted,
    PlayerJoined,
    PlayerLeft,
    PlayerReconnected,
    CardsDealt,
    BidPlaced,
    PlayerPassed,
    BiddingWon,
    DabbTaken,
    CardsDiscarded,
    GoingOut,
    TrumpDeclared,
    MeldsDeclared,
    MeldingComplete,
    CardPlayed,
    TrickWon,
    RoundScored,
    GameFinished,
    NewRoundStarted,
    GameTerminated,
]

PAYLOAD_TYPES: Dict[EventType, type] = {
    EventType.GAME_STARTED: GameStarted,
    EventType.PLAYER_JOINED: PlayerJoined,
    EventType.PLAYER_LEFT: PlayerLeft,
    EventType.PLAYER_RECONNECTED: PlayerReconnected,
    EventType.CARDS_DEALT: CardsDealt,
    EventType.BID_PLACED: BidPlaced,
    EventType.PLAYER_PASSED: PlayerPassed,
    EventType.BIDDING_WON: BiddingWon,
    EventType.DABB_TAKEN: DabbTaken,
    EventType.CARDS_DISCARDED: CardsDiscarded,
    EventType.GOING_OUT: GoingOut,
    EventType.TRUMP_DECLARED: TrumpDeclared,
    EventType.MELDS_DECLARED: MeldsDeclared,
    EventType.MELDING_COMPLETE: MeldingComplete,
    EventType.CARD_PLAYED: CardPlayed,
    EventType.TRICK_WON: TrickWon,
    EventType.ROUND_SCORED: RoundScored,
    EventType.GAME_FINISHED: GameFinished,
    EventType.NEW_ROUND_STARTED: NewRoundStarted,
    EventType.GAME_TERMINATED: GameTerminated,
}

_EVENT_TYPE_BY_PAYLOAD = {payload: event_type for event_type, payload in PAYLOAD_TYPES.items()}


@dataclass(frozen=True)
class GameEvent:
    id: str
    session_id: str
    sequence: int
    timestamp: int
    payload: Payload
    type: EventType = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", _EVENT_TYPE_BY_PAYLOAD[type(self.payload)])


@dataclass(frozen=True)
class EventContext:
    session_id: str
    sequence: int


class EventSequence:
    """Hand out consecutive event contexts for one session."""

    def __init__(self, session_id: str, last_sequence: int = 0) -> None:
        self.session_id = session_id
        self.last_sequence = last_sequence

    def __call__(self) -> EventContext:
        self.last_sequence += 1
        return EventContext(self.session_id, self.last_sequence)


def _stamp(ctx: EventContext, payload: Payload) -> GameEvent:
    return GameEvent(
        id=uuid.uuid4().hex,
        session_id=ctx.session_id,
        sequence=ctx.sequence,
        timestamp=int(time.time() * 1000),
        payload=payload,
    )


# Generators -------------------------------------------------------------


def create_game_started_event(ctx: EventContext, player_count: int, target_score: int, dealer: int) -> GameEvent:
    return _stamp(ctx, GameStarted(player_count, target_score, dealer))


def create_player_joined_event(
    ctx: EventContext,
    player_id: str,
    player_index: int,
    nickname: str,
    team: Optional[int] = None,
) -> GameEvent:
    return _stamp(ctx, PlayerJoined(player_id, player_index, nickname, team))


def create_player_left_event(ctx: EventContext, player_index: int) -> GameEvent:
    return _stamp(ctx, PlayerLeft(player_index))


def create_player_reconnected_event(ctx: EventContext, player_index: int) -> GameEvent:
    return _stamp(ctx, PlayerReconnected(player_index))


def create_cards_dealt_event(ctx: EventContext, hands: Mapping[int, Any], dabb: Any) -> GameEvent:
    frozen_hands = {player: tuple(cards) for player, cards in hands.items()}
    return _stamp(ctx, CardsDealt(frozen_hands, tuple(dabb)))


def create_bid_placed_event(ctx: EventContext, player_index: int, amount: int) -> GameEvent:
    return _stamp(ctx, BidPlaced(player_index, amount))


def create_player_passed_event(ctx: EventContext, player_index: int) -> GameEvent:
    return _stamp(ctx, PlayerPassed(player_index))


def create_bidding_won_event(ctx: EventContext, player_index: int, winning_bid: int) -> GameEvent:
    return _stamp(ctx, BiddingWon(player_index, winning_bid))


def create_dabb_taken_event(ctx: EventContext, player_index: int, dabb_cards: Any) -> GameEvent:
    return _stamp(ctx, DabbTaken(player_index, tuple(dabb_cards)))


def create_cards_discarded_event(ctx: EventContext, player_index: int, discarded_cards: Any) -> GameEvent:
    return _stamp(ctx, CardsDiscarded(player_index, tuple(discarded_cards)))


def create_going_out_event(ctx: EventContext, player_index: int, suit: Suit) -> GameEvent:
    return _stamp(ctx, GoingOut(player_index, suit))


def create_trump_declared_event(ctx: EventContext, player_index: int, suit: Suit) -> GameEvent:
    return _stamp(ctx, TrumpDeclared(player_index, suit))


def create_melds_declared_event(ctx: EventContext, player_index: int, melds: Any, total_points: int) -> GameEvent:
    return _stamp(ctx, MeldsDeclared(player_index, tuple(melds), total_points))


def create_melding_complete_event(ctx: EventContext, meld_scores: Mapping[int, int]) -> GameEvent:
    return _stamp(ctx, MeldingComplete(dict(meld_scores)))


def create_card_played_event(ctx: EventContext, player_index: int, card: Card) -> GameEvent:
    return _stamp(ctx, CardPlayed(player_index, card))


def create_trick_won_event(ctx: EventContext, winner_index: int, cards: Any, points: int) -> GameEvent:
    return _stamp(ctx, TrickWon(winner_index, tuple(cards), points))


def create_round_scored_event(
    ctx: EventContext,
    scores: Mapping[int, RoundScore],
    total_scores: Mapping[int, int],
) -> GameEvent:
    return _stamp(ctx, RoundScored(dict(scores), dict(total_scores)))


def create_game_finished_event(ctx: EventContext, winner: int, final_scores: Mapping[int, int]) -> GameEvent:
    return _stamp(ctx, GameFinished(winner, dict(final_scores)))


def create_new_round_started_event(ctx: EventContext, round_number: int, dealer: int) -> GameEvent:
    return _stamp(ctx, NewRoundStarted(round_number, dealer))


def create_game_terminated_event(ctx: EventContext, terminated_by: int, reason: Optional[str] = None) -> GameEvent:
    return _stamp(ctx, GameTerminated(terminated_by, reason))


# Serialization ----------------------------------------------------------


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def serialize_meld(meld: Meld) -> dict:
    data: dict = {"type": meld.type.value, "cards": list(meld.cards), "points": meld.points}
    if meld.suit is not None:
        data["suit"] = meld.suit.value
    return data


def deserialize_meld(payload: Mapping[str, Any]) -> Meld:
    suit = payload.get("suit")
    return Meld(
        type=MeldType(payload["type"]),
        cards=tuple(payload["cards"]),
        points=int(payload["points"]),
        suit=Suit(suit) if suit else None,
    )


def _encode(value: Any) -> Any:
    if isinstance(value, (Card,)) or getattr(value, "hidden", False) is True:
        return serialize_card(value)
    if isinstance(value, Meld):
        return serialize_meld(value)
    if isinstance(value, RoundScore):
        return {"melds": value.melds, "tricks": value.tricks, "total": value.total, "bidMet": value.bid_met}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(key): _encode(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    return value


def event_to_dict(event: GameEvent) -> dict:
    payload = {_camel(f.name): _encode(getattr(event.payload, f.name)) for f in fields(event.payload)}
    return {
        "id": event.id,
        "sessionId": event.session_id,
        "sequence": event.sequence,
        "timestamp": event.timestamp,
        "type": event.type.value,
        "payload": payload,
    }


def _cards(items: Any) -> Tuple[AnyCard, ...]:
    return tuple(deserialize_card(item) for item in items)


def _int_keys(mapping: Mapping[str, Any], convert: Callable[[Any], Any] = int) -> dict:
    return {int(key): convert(value) for key, value in mapping.items()}


def _round_score(payload: Mapping[str, Any]) -> RoundScore:
    return RoundScore(
        melds=int(payload["melds"]),
        tricks=int(payload["tricks"]),
        total=int(payload["total"]),
        bid_met=bool(payload["bidMet"]),
    )


_DECODERS: Dict[EventType, Callable[[Mapping[str, Any]], Payload]] = {
    EventType.GAME_STARTED: lambda p: GameStarted(p["playerCount"], p["targetScore"], p["dealer"]),
    EventType.PLAYER_JOINED: lambda p: PlayerJoined(p["playerId"], p["playerIndex"], p["nickname"], p.get("team")),
    EventType.PLAYER_LEFT: lambda p: PlayerLeft(p["playerIndex"]),
    EventType.PLAYER_RECONNECTED: lambda p: PlayerReconnected(p["playerIndex"]),
    EventType.CARDS_DEALT: lambda p: CardsDealt(_int_keys(p["hands"], _cards), _cards(p["dabb"])),
    EventType.BID_PLACED: lambda p: BidPlaced(p["playerIndex"], p["amount"]),
    EventType.PLAYER_PASSED: lambda p: PlayerPassed(p["playerIndex"]),
    EventType.BIDDING_WON: lambda p: BiddingWon(p["playerIndex"], p["winningBid"]),
    EventType.DABB_TAKEN: lambda p: DabbTaken(p["playerIndex"], _cards(p["dabbCards"])),
    EventType.CARDS_DISCARDED: lambda p: CardsDiscarded(p["playerIndex"], tuple(p["discardedCards"])),
    EventType.GOING_OUT: lambda p: GoingOut(p["playerIndex"], Suit(p["suit"])),
    EventType.TRUMP_DECLARED: lambda p: TrumpDeclared(p["playerIndex"], Suit(p["suit"])),
    EventType.MELDS_DECLARED: lambda p: MeldsDeclared(
        p["playerIndex"], tuple(deserialize_meld(m) for m in p["melds"]), p["totalPoints"]
    ),
    EventType.MELDING_COMPLETE: lambda p: MeldingComplete(_int_keys(p["meldScores"])),
    EventType.CARD_PLAYED: lambda p: CardPlayed(p["playerIndex"], deserialize_card(p["card"])),
    EventType.TRICK_WON: lambda p: TrickWon(p["winnerIndex"], _cards(p["cards"]), p["points"]),
    EventType.ROUND_SCORED: lambda p: RoundScored(
        _int_keys(p["scores"], _round_score), _int_keys(p["totalScores"])
    ),
    EventType.GAME_FINISHED: lambda p: GameFinished(p["winner"], _int_keys(p["finalScores"])),
    EventType.NEW_ROUND_STARTED: lambda p: NewRoundStarted(p["round"], p["dealer"]),
    EventType.GAME_TERMINATED: lambda p: GameTerminated(p["terminatedBy"], p.get("reason")),
}


def event_from_dict(data: Mapping[str, Any]) -> GameEvent:
    event_type = EventType(data["type"])
    return GameEvent(
        id=data["id"],
        session_id=data["sessionId"],
        sequence=int(data["sequence"]),
        timestamp=int(data["timestamp"]),
        payload=_DECODERS[event_type](data["payload"]),
    )
