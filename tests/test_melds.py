import random
from collections import Counter

import pytest

from binokel.cards import Card, Rank, Suit
from binokel.melds import Meld, MeldType, calculate_meld_points, detect_melds, melds_are_declarable
from binokel.rules_schema import RuleSet

FAMILIE = (Rank.ASS, Rank.ZEHN, Rank.KOENIG, Rank.OBER, Rank.BUABE)


def C(suit, rank, copy=0):
    return Card(suit, rank, copy)


def of_type(melds, meld_type):
    return [meld for meld in melds if meld.type is meld_type]


def test_single_binokel():
    melds = detect_melds([C(Suit.SCHIPPE, Rank.OBER), C(Suit.BOLLEN, Rank.BUABE)], Suit.HERZ)
    assert len(melds) == 1
    assert melds[0].type is MeldType.BINOKEL
    assert melds[0].points == 40


def test_doppel_binokel_replaces_two_binokel():
    hand = [
        C(Suit.SCHIPPE, Rank.OBER, 0),
        C(Suit.SCHIPPE, Rank.OBER, 1),
        C(Suit.BOLLEN, Rank.BUABE, 0),
        C(Suit.BOLLEN, Rank.BUABE, 1),
    ]
    melds = detect_melds(hand, Suit.HERZ)
    assert len(of_type(melds, MeldType.DOPPEL_BINOKEL)) == 1
    assert of_type(melds, MeldType.DOPPEL_BINOKEL)[0].points == 300
    assert of_type(melds, MeldType.BINOKEL) == []


def test_paar_points_with_trump_bonus():
    hand = [C(Suit.HERZ, Rank.KOENIG), C(Suit.HERZ, Rank.OBER)]
    assert calculate_meld_points(detect_melds(hand, Suit.KREUZ)) == 20
    assert calculate_meld_points(detect_melds(hand, Suit.HERZ)) == 40


def test_familie_consumes_paar_cards():
    hand = [C(Suit.HERZ, rank) for rank in FAMILIE]
    melds = detect_melds(hand, Suit.KREUZ)
    assert [meld.type for meld in melds] == [MeldType.FAMILIE]
    assert melds[0].points == 100
    assert detect_melds(hand, Suit.HERZ)[0].points == 150


def test_extra_king_and_ober_form_paar_next_to_familie():
    hand = [C(Suit.HERZ, rank) for rank in FAMILIE]
    hand += [C(Suit.HERZ, Rank.KOENIG, 1), C(Suit.HERZ, Rank.OBER, 1)]
    melds = detect_melds(hand, Suit.KREUZ)
    assert len(of_type(melds, MeldType.FAMILIE)) == 1
    paare = of_type(melds, MeldType.PAAR)
    assert len(paare) == 1
    assert set(paare[0].cards) == {"herz-koenig-1", "herz-ober-1"}


def test_two_familien_in_one_suit():
    hand = [C(Suit.KREUZ, rank, copy) for rank in FAMILIE for copy in (0, 1)]
    melds = detect_melds(hand, Suit.KREUZ)
    familien = of_type(melds, MeldType.FAMILIE)
    assert len(familien) == 2
    assert all(meld.points == 150 for meld in familien)
    assert of_type(melds, MeldType.PAAR) == []


@pytest.mark.parametrize(
    "rank, four, four_points, eight, eight_points",
    [
        (Rank.ASS, MeldType.VIER_ASS, 100, MeldType.ACHT_ASS, 1000),
        (Rank.KOENIG, MeldType.VIER_KOENIG, 80, MeldType.ACHT_KOENIG, 600),
        (Rank.OBER, MeldType.VIER_OBER, 60, MeldType.ACHT_OBER, 400),
        (Rank.BUABE, MeldType.VIER_UNTER, 40, MeldType.ACHT_UNTER, 200),
    ],
)
def test_four_and_eight_of_a_kind(rank, four, four_points, eight, eight_points):
    one_each = [C(suit, rank) for suit in Suit]
    melds = detect_melds(one_each, None)
    assert [meld.points for meld in of_type(melds, four)] == [four_points]

    all_eight = [C(suit, rank, copy) for suit in Suit for copy in (0, 1)]
    melds = detect_melds(all_eight, None)
    assert [meld.points for meld in of_type(melds, eight)] == [eight_points]
    assert of_type(melds, four) == []


def test_three_suits_are_not_enough():
    hand = [C(suit, Rank.ASS) for suit in (Suit.KREUZ, Suit.HERZ, Suit.BOLLEN)]
    assert detect_melds(hand, Suit.HERZ) == []


def test_detection_is_order_independent():
    hand = [C(Suit.HERZ, rank) for rank in FAMILIE] + [C(Suit.HERZ, Rank.KOENIG, 1), C(Suit.HERZ, Rank.OBER, 1)]
    hand += [C(Suit.SCHIPPE, Rank.OBER), C(Suit.BOLLEN, Rank.BUABE), C(Suit.SCHIPPE, Rank.OBER, 1)]
    hand += [C(suit, Rank.ASS) for suit in (Suit.KREUZ, Suit.SCHIPPE, Suit.BOLLEN)]
    hand += [C(Suit.KREUZ, Rank.KOENIG), C(Suit.KREUZ, Rank.OBER)]
    expected = Counter(meld.key() for meld in detect_melds(hand, Suit.HERZ))
    # Familie, two Paare, Binokel and Vier Ass.
    assert sum(expected.values()) == 5

    rng = random.Random(11)
    for _ in range(20):
        shuffled = list(hand)
        rng.shuffle(shuffled)
        assert Counter(meld.key() for meld in detect_melds(shuffled, Suit.HERZ)) == expected


def test_declared_melds_must_come_from_hand():
    hand = [C(Suit.HERZ, Rank.KOENIG), C(Suit.HERZ, Rank.OBER), C(Suit.SCHIPPE, Rank.OBER), C(Suit.BOLLEN, Rank.BUABE)]
    detected = detect_melds(hand, Suit.HERZ)

    assert melds_are_declarable(detected, hand, Suit.HERZ)
    assert melds_are_declarable([], hand, Suit.HERZ)
    assert not melds_are_declarable(detected + detected[:1], hand, Suit.HERZ)
    fake = Meld(MeldType.FAMILIE, ("kreuz-ass-0",), 100, Suit.KREUZ)
    assert not melds_are_declarable([fake], hand, Suit.HERZ)
    inflated = Meld(MeldType.BINOKEL, ("schippe-ober-0", "bollen-buabe-0"), 400)
    assert not melds_are_declarable([inflated], hand, Suit.HERZ)


def test_rules_reject_unknown_meld_names():
    with pytest.raises(ValueError):
        RuleSet(trump_bonus={"royal": 10})
    custom = RuleSet(meld_points={**RuleSet().meld_points, "paar": 30})
    assert detect_melds([C(Suit.HERZ, Rank.KOENIG), C(Suit.HERZ, Rank.OBER)], None, custom)[0].points == 30
