"""Meld detection for Binokel."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .cards import Card, Rank, Suit, card_strength
from .rules_schema import DEFAULT_RULES, RuleSet


class MeldType(Enum):
    PAAR = "paar"
    FAMILIE = "familie"
    BINOKEL = "binokel"
    DOPPEL_BINOKEL = "doppel-binokel"
    VIER_ASS = "vier-ass"
    VIER_KOENIG = "vier-koenig"
    VIER_OBER = "vier-ober"
    VIER_UNTER = "vier-unter"
    ACHT_ASS = "acht-ass"
    ACHT_KOENIG = "acht-koenig"
    ACHT_OBER = "acht-ober"
    ACHT_UNTER = "acht-unter"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Meld:
    type: MeldType
    cards: Tuple[str, ...]
    points: int
    suit: Optional[Suit] = None

    def key(self) -> tuple:
        return (self.type, self.suit, self.points, frozenset(self.cards))


# Binokel: Schippe-Ober with Bollen-Buabe.
BINOKEL_OBER_SUIT = Suit.SCHIPPE
BINOKEL_BUABE_SUIT = Suit.BOLLEN

FAMILIE_RANKS: Tuple[Rank, ...] = (Rank.ASS, Rank.ZEHN, Rank.KOENIG, Rank.OBER, Rank.BUABE)

KIND_MELDS: Dict[Rank, Tuple[MeldType, MeldType]] = {
    Rank.ASS: (MeldType.VIER_ASS, MeldType.ACHT_ASS),
    Rank.KOENIG: (MeldType.VIER_KOENIG, MeldType.ACHT_KOENIG),
    Rank.OBER: (MeldType.VIER_OBER, MeldType.ACHT_OBER),
    Rank.BUABE: (MeldType.VIER_UNTER, MeldType.ACHT_UNTER),
}

_SUIT_ORDER = {suit: index for index, suit in enumerate(Suit)}


def _canonical(cards: Iterable[Card]) -> List[Card]:
    # Independent of the order the hand was dealt in.
    return sorted(cards, key=lambda card: (_SUIT_ORDER[card.suit], -card_strength(card), card.copy))


def _points(rules: RuleSet, meld_type: MeldType, is_trump: bool = False) -> int:
    points = rules.meld_points[meld_type.value]
    if is_trump:
        points += rules.trump_bonus.get(meld_type.value, 0)
    return points


def detect_melds(hand: Sequence[Card], trump: Optional[Suit], rules: RuleSet = DEFAULT_RULES) -> List[Meld]:
    """Return every meld contained in the hand for the given trump suit."""
    cards = _canonical(hand)
    melds: List[Meld] = []
    melds.extend(_detect_binokel(cards, rules))
    melds.extend(_detect_kinds(cards, rules))
    familien = _detect_familie(cards, trump, rules)
    melds.extend(familien)
    melds.extend(_detect_paar(cards, trump, familien, rules))
    return melds


def _detect_binokel(cards: Sequence[Card], rules: RuleSet) -> List[Meld]:
    obers = [c for c in cards if c.suit is BINOKEL_OBER_SUIT and c.rank is Rank.OBER]
    buaben = [c for c in cards if c.suit is BINOKEL_BUABE_SUIT and c.rank is Rank.BUABE]
    if len(obers) >= 2 and len(buaben) >= 2:
        ids = tuple(c.id for c in obers + buaben)
        return [Meld(MeldType.DOPPEL_BINOKEL, ids, _points(rules, MeldType.DOPPEL_BINOKEL))]
    if obers and buaben:
        return [Meld(MeldType.BINOKEL, (obers[0].id, buaben[0].id), _points(rules, MeldType.BINOKEL))]
    return []


def _detect_kinds(cards: Sequence[Card], rules: RuleSet) -> List[Meld]:
    melds: List[Meld] = []
    for rank, (four, eight) in KIND_MELDS.items():
        of_rank = [c for c in cards if c.rank is rank]
        suits = {c.suit for c in of_rank}
        if len(suits) != len(Suit):
            continue
        if len(of_rank) == 2 * len(Suit):
            melds.append(Meld(eight, tuple(c.id for c in of_rank), _points(rules, eight)))
        else:
            one_per_suit = [next(c for c in of_rank if c.suit is suit) for suit in Suit]
            melds.append(Meld(four, tuple(c.id for c in one_per_suit), _points(rules, four)))
    return melds


def _detect_familie(cards: Sequence[Card], trump: Optional[Suit], rules: RuleSet) -> List[Meld]:
    melds: List[Meld] = []
    for suit in Suit:
        by_rank = {rank: [c for c in cards if c.suit is suit and c.rank is rank] for rank in FAMILIE_RANKS}
        count = min(len(found) for found in by_rank.values())
        points = _points(rules, MeldType.FAMILIE, suit is trump)
        for copy_index in range(count):
            ids = tuple(by_rank[rank][copy_index].id for rank in FAMILIE_RANKS)
            melds.append(Meld(MeldType.FAMILIE, ids, points, suit))
    return melds


def _detect_paar(
    cards: Sequence[Card],
    trump: Optional[Suit],
    familien: Sequence[Meld],
    rules: RuleSet,
) -> List[Meld]:
    used = {card_id for meld in familien for card_id in meld.cards}
    melds: List[Meld] = []
    for suit in Suit:
        koenige = [c for c in cards if c.suit is suit and c.rank is Rank.KOENIG and c.id not in used]
        obers = [c for c in cards if c.suit is suit and c.rank is Rank.OBER and c.id not in used]
        points = _points(rules, MeldType.PAAR, suit is trump)
        for koenig, ober in zip(koenige, obers):
            melds.append(Meld(MeldType.PAAR, (koenig.id, ober.id), points, suit))
    return melds


def calculate_meld_points(melds: Iterable[Meld]) -> int:
    return sum(meld.points for meld in melds)


def melds_are_declarable(
    declared: Iterable[Meld],
    hand: Sequence[Card],
    trump: Optional[Suit],
    rules: RuleSet = DEFAULT_RULES,
) -> bool:
    """True if every declared meld is backed by the hand, each at most as often as detected."""
    available = Counter(meld.key() for meld in detect_melds(hand, trump, rules))
    wanted = Counter(meld.key() for meld in declared)
    return all(available[key] >= count for key, count in wanted.items())
