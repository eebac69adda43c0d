"""Card-related data structures and helpers for Binokel."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Union


class Suit(Enum):
    KREUZ = "kreuz"
    SCHIPPE = "schippe"
    HERZ = "herz"
    BOLLEN = "bollen"

    def __str__(self) -> str:
        return self.value


class Rank(Enum):
    BUABE = "buabe"
    OBER = "ober"
    KOENIG = "koenig"
    ZEHN = "10"
    ASS = "ass"

    def __str__(self) -> str:
        return self.value


# Card point values per the official rules.
RANK_POINTS: dict[Rank, int] = {
    Rank.BUABE: 2,
    Rank.OBER: 3,
    Rank.KOENIG: 4,
    Rank.ZEHN: 10,
    Rank.ASS: 11,
}

# Rank order from lowest to highest for trick resolution (10 outranks König).
RANK_ORDER: list[Rank] = [
    Rank.BUABE,
    Rank.OBER,
    Rank.KOENIG,
    Rank.ZEHN,
    Rank.ASS,
]

RANK_STRENGTH: dict[Rank, int] = {rank: index for index, rank in enumerate(RANK_ORDER)}

SUIT_NAMES: dict[Suit, str] = {
    Suit.KREUZ: "Kreuz",
    Suit.SCHIPPE: "Schippe",
    Suit.HERZ: "Herz",
    Suit.BOLLEN: "Bollen",
}

RANK_NAMES: dict[Rank, str] = {
    Rank.BUABE: "Buabe",
    Rank.OBER: "Ober",
    Rank.KOENIG: "König",
    Rank.ZEHN: "Zehn",
    Rank.ASS: "Ass",
}

HIDDEN_PREFIX = "hidden"


@dataclass(frozen=True)
class Card:
    """Immutable representation of one of the 40 physical cards."""

    suit: Suit
    rank: Rank
    copy: int = 0

    hidden = False

    @property
    def id(self) -> str:
        return f"{self.suit.value}-{self.rank.value}-{self.copy}"

    def point_value(self) -> int:
        return RANK_POINTS[self.rank]


@dataclass(frozen=True)
class HiddenCard:
    """Placeholder for a card the observer is not allowed to see."""

    id: str

    hidden = True
    suit = None
    rank = None
    copy = None

    def point_value(self) -> int:
        return 0


AnyCard = Union[Card, HiddenCard]


def hidden_cards(count: int, start: int = 0) -> List[HiddenCard]:
    return [HiddenCard(f"{HIDDEN_PREFIX}-{index}") for index in range(start, start + count)]


def is_hidden_card_id(card_id: str) -> bool:
    return card_id.startswith(HIDDEN_PREFIX)


def is_hidden_card(card: AnyCard) -> bool:
    return is_hidden_card_id(card.id)


def card_strength(card: Card) -> int:
    """Return an integer strength used for ordering cards within a suit."""
    return RANK_STRENGTH[card.rank]


def card_from_id(card_id: str) -> Card:
    """Parse a ``suit-rank-copy`` identifier back into a card."""
    try:
        suit_name, rank_name, copy = card_id.split("-")
        return Card(Suit(suit_name), Rank(rank_name), int(copy))
    except ValueError as exc:
        raise ValueError(f"Malformed card id: {card_id!r}") from exc


def beats(candidate: Card, current: Card, led_suit: Suit, trump: Optional[Suit]) -> bool:
    """Return True if candidate wins over current within the trick context."""
    candidate_trump = trump is not None and candidate.suit is trump
    current_trump = trump is not None and current.suit is trump

    if candidate_trump and not current_trump:
        return True
    if current_trump and not candidate_trump:
        return False

    if candidate.suit is current.suit:
        return card_strength(candidate) > card_strength(current)

    if candidate.suit is led_suit and current.suit is not led_suit:
        return True

    return False


_SORT_SUITS = {suit: index for index, suit in enumerate(Suit)}


def sort_hand(cards: Iterable[Card]) -> List[Card]:
    """Sort by suit, strongest rank first, for display."""
    return sorted(cards, key=lambda card: (_SORT_SUITS[card.suit], -card_strength(card), card.copy))


def serialize_card(card: AnyCard) -> dict:
    if card.hidden:
        return {"id": card.id}
    return {"id": card.id, "suit": card.suit.value, "rank": card.rank.value, "copy": card.copy}


def deserialize_card(payload: Mapping[str, object]) -> AnyCard:
    if payload.get("suit") is None:
        return HiddenCard(str(payload["id"]))
    return Card(Suit(payload["suit"]), Rank(payload["rank"]), int(payload.get("copy", 0)))


def card_label(card: AnyCard) -> str:
    if card.hidden:
        return "?"
    return f"{SUIT_NAMES[card.suit]} {RANK_NAMES[card.rank]}"
