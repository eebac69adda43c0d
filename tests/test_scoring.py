import pytest

from binokel.cards import Card, Rank, Suit
from binokel.melds import Meld, MeldType
from binokel.scoring import (
    ScoringError,
    accumulate_totals,
    find_game_winner,
    round_to_ten,
    score_going_out,
    score_round,
)
from binokel.state import GameState, Phase, Player


def C(suit, rank, copy=0):
    return Card(suit, rank, copy)


HERZ_FAMILIE = Meld(
    MeldType.FAMILIE,
    ("herz-ass-0", "herz-10-0", "herz-koenig-0", "herz-ober-0", "herz-buabe-0"),
    150,
    Suit.HERZ,
)

# 88 for the eight aces plus an Ober and two Buaben.
NINETY_FIVE = (
    (C(Suit.KREUZ, Rank.ASS, 0), C(Suit.KREUZ, Rank.ASS, 1), C(Suit.SCHIPPE, Rank.ASS, 0)),
    (C(Suit.SCHIPPE, Rank.ASS, 1), C(Suit.HERZ, Rank.ASS, 0), C(Suit.HERZ, Rank.ASS, 1)),
    (C(Suit.BOLLEN, Rank.ASS, 0), C(Suit.BOLLEN, Rank.ASS, 1), C(Suit.KREUZ, Rank.OBER, 0)),
    (C(Suit.KREUZ, Rank.BUABE, 0), C(Suit.KREUZ, Rank.BUABE, 1)),
)


def three_player_round(bid):
    return GameState(
        phase=Phase.TRICKS,
        player_count=3,
        target_score=1000,
        bid_winner=0,
        current_bid=bid,
        trump=Suit.HERZ,
        declared_melds={0: (HERZ_FAMILIE,), 1: (), 2: ()},
        tricks_taken={
            0: NINETY_FIVE,
            1: ((C(Suit.HERZ, Rank.ZEHN, 0), C(Suit.HERZ, Rank.ZEHN, 1), C(Suit.HERZ, Rank.KOENIG, 1)),),
            2: ((C(Suit.BOLLEN, Rank.KOENIG), C(Suit.BOLLEN, Rank.OBER)),),
        },
        total_scores={0: 100, 1: 0, 2: 50},
    )


def four_player_round():
    players = tuple(Player(f"p{i}", f"P{i}", i, team=i % 2) for i in range(4))
    paar = Meld(MeldType.PAAR, ("kreuz-koenig-0", "kreuz-ober-0"), 20, Suit.KREUZ)
    binokel = Meld(MeldType.BINOKEL, ("schippe-ober-0", "bollen-buabe-0"), 40)
    return GameState(
        phase=Phase.TRICKS,
        player_count=4,
        target_score=1000,
        players=players,
        bid_winner=1,
        current_bid=150,
        trump=Suit.HERZ,
        declared_melds={0: (), 1: (), 2: (binokel,), 3: (paar,)},
        tricks_taken={
            0: ((C(Suit.HERZ, Rank.ASS), C(Suit.HERZ, Rank.ZEHN), C(Suit.HERZ, Rank.KOENIG)),),
            1: ((C(Suit.KREUZ, Rank.ASS), C(Suit.KREUZ, Rank.BUABE)),),
            2: (),
            3: ((C(Suit.BOLLEN, Rank.ASS), C(Suit.BOLLEN, Rank.BUABE)),),
        },
        total_scores={0: 0, 1: 0},
    )


@pytest.mark.parametrize(
    "value, expected",
    [(0, 0), (4, 0), (5, 10), (94, 90), (95, 100), (96, 100), (155, 160), (240, 240), (-5, 0)],
)
def test_round_to_ten(value, expected):
    assert round_to_ten(value) == expected


def test_bid_met_with_rounded_tricks():
    scores = score_round(three_player_round(250))
    assert scores[0].melds == 150
    assert scores[0].tricks == 100
    assert scores[0].total == 250
    assert scores[0].bid_met
    assert scores[1].tricks == 20
    assert scores[2].tricks == 10
    assert scores[1].bid_met and scores[2].bid_met


def test_bid_missed_costs_double():
    scores = score_round(three_player_round(260))
    assert scores[0].total == -520
    assert not scores[0].bid_met
    assert scores[1].total == 20


def test_totals_accumulate():
    state = three_player_round(250)
    totals = accumulate_totals(state, score_round(state))
    assert totals == {0: 350, 1: 20, 2: 60}


def test_team_scores_round_each_player_first():
    scores = score_round(four_player_round())
    assert set(scores) == {0, 1}
    # 13 + 13 card points round to 10 + 10, not to 30.
    assert scores[1].tricks == 20
    assert scores[1].melds == 20
    assert scores[1].total == -300
    assert scores[0].tricks == 30
    assert scores[0].total == 70


def test_going_out_three_players():
    state = three_player_round(160)
    scores = score_going_out(state, {0: 0, 1: 60, 2: 0})
    assert scores[0].total == -160
    assert not scores[0].bid_met
    assert scores[1].total == 100
    assert scores[2].total == 40


def test_going_out_bonus_counts_once_per_team():
    state = four_player_round()
    scores = score_going_out(state, {0: 20, 1: 0, 2: 40, 3: 100})
    assert scores[1].total == -150
    assert scores[0].total == 100


def test_scoring_without_bid_winner_fails():
    state = GameState(phase=Phase.TRICKS, player_count=3, target_score=1000)
    with pytest.raises(ScoringError):
        score_round(state)


def test_find_game_winner():
    assert find_game_winner({0: 900, 1: 950}, 1000) is None
    assert find_game_winner({0: 1010, 1: 1200, 2: 300}, 1000) == 1
    assert find_game_winner({0: 1000, 1: 1000}, 1000) == 0
