"""Human-readable event log export, used when debugging failed games."""

from __future__ import annotations

import time
from typing import Dict, Iterable, List, Optional

from .cards import SUIT_NAMES, card_from_id, card_label, is_hidden_card_id
from .events import (
    BiddingWon,
    BidPlaced,
    CardPlayed,
    CardsDealt,
    CardsDiscarded,
    DabbTaken,
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

DIVIDER = "=" * 80
INDENT = "      "


def _cards(cards: Iterable) -> str:
    return ", ".join(card_label(card) for card in cards) or "-"


def _card_ids(card_ids: Iterable[str]) -> str:
    labels = []
    for card_id in card_ids:
        labels.append("?" if is_hidden_card_id(card_id) else card_label(card_from_id(card_id)))
    return ", ".join(labels)


def _details(event: GameEvent, names: Dict[int, str]) -> List[str]:
    payload = event.payload

    def who(index: int) -> str:
        return f"{names[index]} [{index}]" if index in names else f"Player {index}"

    if isinstance(payload, GameStarted):
        return [f"{payload.player_count} players, target score: {payload.target_score}"]
    if isinstance(payload, PlayerJoined):
        team = f" (Team {payload.team})" if payload.team is not None else ""
        return [f"{payload.nickname} joined as Player {payload.player_index}{team}"]
    if isinstance(payload, PlayerLeft):
        return [f"{who(payload.player_index)} left"]
    if isinstance(payload, PlayerReconnected):
        return [f"{who(payload.player_index)} reconnected"]
    if isinstance(payload, CardsDealt):
        lines = [f"Player {player}: {_cards(cards)}" for player, cards in sorted(payload.hands.items())]
        lines.append(f"Dabb: {_cards(payload.dabb)}")
        return lines
    if isinstance(payload, BidPlaced):
        return [f"{who(payload.player_index)} bid {payload.amount}"]
    if isinstance(payload, PlayerPassed):
        return [f"{who(payload.player_index)} passed"]
    if isinstance(payload, BiddingWon):
        return [f"{who(payload.player_index)} won bidding with {payload.winning_bid}"]
    if isinstance(payload, DabbTaken):
        return [f"{who(payload.player_index)} took dabb: {_cards(payload.dabb_cards)}"]
    if isinstance(payload, CardsDiscarded):
        return [f"{who(payload.player_index)} discarded: {_card_ids(payload.discarded_cards)}"]
    if isinstance(payload, GoingOut):
        return [f"{who(payload.player_index)} went out in {SUIT_NAMES[payload.suit]}"]
    if isinstance(payload, TrumpDeclared):
        return [f"{who(payload.player_index)} declared {SUIT_NAMES[payload.suit]} as trump"]
    if isinstance(payload, MeldsDeclared):
        lines = [f"{who(payload.player_index)} declared {payload.total_points} points"]
        for meld in payload.melds:
            suit = f" {SUIT_NAMES[meld.suit]}" if meld.suit is not None else ""
            lines.append(f"  - {meld.type.value}{suit} ({meld.points}): {_card_ids(meld.cards)}")
        return lines
    if isinstance(payload, MeldingComplete):
        return [", ".join(f"{who(player)}: {points}" for player, points in sorted(payload.meld_scores.items()))]
    if isinstance(payload, CardPlayed):
        return [f"{who(payload.player_index)} played {card_label(payload.card)}"]
    if isinstance(payload, TrickWon):
        return [f"{who(payload.winner_index)} won the trick ({payload.points} points): {_cards(payload.cards)}"]
    if isinstance(payload, RoundScored):
        lines = []
        for key, score in sorted(payload.scores.items()):
            status = "" if score.bid_met else " (bid not met)"
            lines.append(
                f"{key}: melds {score.melds}, tricks {score.tricks}, round {score.total}, "
                f"total {payload.total_scores.get(key, 0)}{status}"
            )
        return lines
    if isinstance(payload, GameFinished):
        return [f"Winner: {payload.winner}, final scores: {dict(sorted(payload.final_scores.items()))}"]
    if isinstance(payload, NewRoundStarted):
        return [f"Round {payload.round}, dealer {who(payload.dealer)}"]
    if isinstance(payload, GameTerminated):
        reason = f": {payload.reason}" if payload.reason else ""
        return [f"Terminated by {who(payload.terminated_by)}{reason}"]
    return []


def format_event_log(
    events: Iterable[GameEvent],
    terminated: bool = False,
    session_id: Optional[str] = None,
) -> str:
    events = list(events)
    names = {e.payload.player_index: e.payload.nickname for e in events if isinstance(e.payload, PlayerJoined)}

    lines = [DIVIDER, "BINOKEL EVENT LOG"]
    if session_id:
        lines.append(f"Session: {session_id}")
    lines.append(f"Events: {len(events)}")
    if terminated:
        lines.append("Status: TERMINATED")
    lines.append(DIVIDER)

    for event in events:
        if isinstance(event.payload, (GameStarted, NewRoundStarted)):
            round_number = event.payload.round if isinstance(event.payload, NewRoundStarted) else 1
            lines.extend(["", f"--- Round {round_number} ---"])
        stamp = time.strftime("%H:%M:%S", time.localtime(event.timestamp / 1000))
        lines.append(f"[{event.sequence:03d}] {stamp} | {event.type.value}")
        lines.extend(INDENT + detail for detail in _details(event, names))

    lines.append(DIVIDER)
    return "\n".join(lines)
