"""Per-player projection of the event stream.

Each observer receives the same events in the same order, with the cards
they may not see replaced by ``hidden-<n>`` placeholders.  Counts and
positions are preserved so that replaying a filtered stream still produces a
consistent state for that observer.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List

from .cards import HIDDEN_PREFIX, hidden_cards
from .deck import DECK_SIZE
from .events import CardsDealt, CardsDiscarded, DabbTaken, GameEvent

HIDDEN_ID = HIDDEN_PREFIX


def filter_event_for_player(event: GameEvent, observer_index: int) -> GameEvent:
    payload = event.payload

    if isinstance(payload, CardsDealt):
        hands = {}
        offset = 0
        for player, cards in sorted(payload.hands.items()):
            if player == observer_index:
                hands[player] = tuple(cards)
            else:
                hands[player] = tuple(hidden_cards(len(cards), offset))
            offset += len(cards)
        dabb = tuple(hidden_cards(len(payload.dabb), offset))
        return replace(event, payload=CardsDealt(hands, dabb))

    if isinstance(payload, DabbTaken) and payload.player_index != observer_index:
        hidden = tuple(hidden_cards(len(payload.dabb_cards), DECK_SIZE))
        return replace(event, payload=DabbTaken(payload.player_index, hidden))

    if isinstance(payload, CardsDiscarded) and payload.player_index != observer_index:
        hidden_ids = tuple(HIDDEN_ID for _ in payload.discarded_cards)
        return replace(event, payload=CardsDiscarded(payload.player_index, hidden_ids))

    return event


def filter_events_for_player(events: Iterable[GameEvent], observer_index: int) -> List[GameEvent]:
    return [filter_event_for_player(event, observer_index) for event in events]
