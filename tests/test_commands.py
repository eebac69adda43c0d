import random

import pytest

from binokel import commands
from binokel.cards import Suit
from binokel.errors import ErrorCode, GameError
from binokel.events import EventSequence, EventType
from binokel.mechanics import get_valid_plays
from binokel.melds import Meld, MeldType
from binokel.reducer import apply_events
from binokel.state import Phase, create_initial_state, next_actor
from bots.base import DecisionContext, apply_action
from bots.binokel_bot import BinokelBot


class Table:
    """Seeded game driven by bots until a test takes over."""

    def __init__(self, player_count=3, seed=7):
        self.rng = random.Random(seed)
        self.seq = EventSequence("commands")
        self.bots = [BinokelBot(seed=seed + i) for i in range(player_count)]
        seats = [commands.Seat(f"p{i}", f"Player {i}", i) for i in range(player_count)]
        self.state = create_initial_state(player_count)
        self.run(commands.start_game(self.state, self.seq, seats, player_count, 1000, self.rng))

    def run(self, events):
        self.state = apply_events(events, self.state)
        return events

    def step(self):
        player = next_actor(self.state)
        action = self.bots[player].decide(DecisionContext(self.state, player))
        return self.run(apply_action(self.state, self.seq, player, action, rng=self.rng))

    def advance_to(self, phase, limit=500):
        for _ in range(limit):
            if self.state.phase is phase:
                return self.state
            self.step()
        raise AssertionError(f"never reached {phase}")

    def expect(self, code, command, *args, **kwargs):
        before = self.seq.last_sequence
        with pytest.raises(GameError) as exc:
            command(self.state, self.seq, *args, **kwargs)
        assert exc.value.code is code
        assert self.seq.last_sequence == before


def test_start_game_requires_all_seats():
    seats = [commands.Seat("p0", "A", 0), commands.Seat("p1", "B", 1)]
    with pytest.raises(GameError) as exc:
        commands.start_game(create_initial_state(3), EventSequence("s"), seats, 3, 1000)
    assert exc.value.code is ErrorCode.NOT_ENOUGH_PLAYERS
    assert "Need 3 players" in exc.value.message


def test_game_cannot_start_twice():
    table = Table()
    seats = [commands.Seat(f"p{i}", f"Player {i}", i) for i in range(3)]
    table.expect(ErrorCode.GAME_ALREADY_STARTED, commands.start_game, seats, 3, 1000)


def test_four_players_split_into_two_teams():
    table = Table(player_count=4)
    teams = [player.team for player in table.state.players]
    assert sorted(teams) == [0, 0, 1, 1]
    assert table.state.score_keys() == [0, 1]
    assert table.state.total_scores == {0: 0, 1: 0}


def test_fewer_players_have_no_teams():
    table = Table(player_count=3)
    assert all(player.team is None for player in table.state.players)


def test_dabb_phase_errors():
    table = Table()
    table.advance_to(Phase.DABB)
    winner = table.state.bid_winner
    other = (winner + 1) % 3

    table.expect(ErrorCode.ONLY_BID_WINNER_CAN_TAKE_DABB, commands.take_dabb, other)
    table.expect(ErrorCode.MUST_TAKE_DABB_FIRST, commands.discard_cards, winner, ["a", "b", "c", "d"])
    table.expect(ErrorCode.MUST_TAKE_DABB_BEFORE_GOING_OUT, commands.go_out, winner, Suit.HERZ)
    table.expect(ErrorCode.NOT_IN_TRUMP_PHASE, commands.declare_trump, winner, Suit.HERZ)
    table.expect(ErrorCode.NOT_IN_BIDDING_PHASE, commands.place_bid, winner, 300)

    table.run(commands.take_dabb(table.state, table.seq, winner))
    assert len(table.state.hand(winner)) == 16
    table.expect(ErrorCode.DABB_ALREADY_TAKEN, commands.take_dabb, winner)
    table.expect(ErrorCode.ONLY_BID_WINNER_CAN_GO_OUT, commands.go_out, other, Suit.HERZ)

    hand = [card.id for card in table.state.hand(winner)]
    table.expect(ErrorCode.ONLY_BID_WINNER_CAN_DISCARD, commands.discard_cards, other, hand[:4])
    table.expect(ErrorCode.MUST_DISCARD_EXACT_COUNT, commands.discard_cards, winner, hand[:3])
    table.expect(ErrorCode.MUST_DISCARD_EXACT_COUNT, commands.discard_cards, winner, [hand[0]] * 4)
    foreign = next(card.id for card in table.state.hand(other))
    table.expect(ErrorCode.CARD_NOT_IN_HAND, commands.discard_cards, winner, hand[:3] + [foreign])

    table.run(commands.discard_cards(table.state, table.seq, winner, hand[:4]))
    assert table.state.phase is Phase.TRUMP
    assert len(table.state.hand(winner)) == 12
    table.expect(ErrorCode.ONLY_BID_WINNER_CAN_DECLARE_TRUMP, commands.declare_trump, other, Suit.HERZ)


def test_melding_errors():
    table = Table()
    table.advance_to(Phase.MELDING)
    player = next_actor(table.state)

    table.run(commands.declare_melds(table.state, table.seq, player, []))
    table.expect(ErrorCode.ALREADY_DECLARED_MELDS, commands.declare_melds, player, [])

    target = next_actor(table.state)
    aces = tuple(f"{suit.value}-ass-{copy}" for suit in Suit for copy in (0, 1))
    table.expect(ErrorCode.INVALID_MELDS, commands.declare_melds, target, [Meld(MeldType.ACHT_ASS, aces, 1000)])
    table.expect(ErrorCode.NOT_IN_TRICKS_PHASE, commands.play_card, target, "herz-ass-0")


def test_trick_phase_errors():
    table = Table()
    table.advance_to(Phase.TRICKS)
    current = table.state.current_player
    waiting = (current + 1) % 3

    table.expect(ErrorCode.NOT_YOUR_TURN, commands.play_card, waiting, table.state.hand(waiting)[0].id)
    foreign = table.state.hand(waiting)[0].id
    table.expect(ErrorCode.CARD_NOT_IN_HAND, commands.play_card, current, foreign)
    table.expect(ErrorCode.NOT_IN_MELDING_PHASE, commands.declare_melds, current, [])

    # Walk the round until somebody holds a card they may not play.
    for _ in range(200):
        state = table.state
        if state.phase is not Phase.TRICKS:
            break
        player = state.current_player
        hand = state.hand(player)
        legal = {card.id for card in get_valid_plays(hand, state.current_trick, state.trump)}
        illegal = [card.id for card in hand if card.id not in legal]
        if illegal:
            table.expect(ErrorCode.INVALID_PLAY, commands.play_card, player, illegal[0])
            return
        table.step()
    pytest.fail("no illegal card came up during the round")


def test_completed_trick_goes_to_winner():
    table = Table()
    table.advance_to(Phase.TRICKS)
    events = []
    while not any(event.type is EventType.TRICK_WON for event in events):
        events = table.step()
    won = events[-1]
    assert won.type is EventType.TRICK_WON
    assert len(won.payload.cards) == 3
    assert table.state.current_player == won.payload.winner_index
    assert table.state.current_trick.is_empty()
    assert table.state.tricks_taken[won.payload.winner_index][-1] == won.payload.cards


def test_terminate_only_while_active():
    waiting = create_initial_state(3)
    with pytest.raises(GameError) as exc:
        commands.terminate_game(waiting, EventSequence("t"), 0)
    assert exc.value.code is ErrorCode.CANNOT_TERMINATE_IN_CURRENT_PHASE

    table = Table()
    events = table.run(commands.terminate_game(table.state, table.seq, 2, "bored"))
    assert events[0].payload.reason == "bored"
    assert table.state.phase is Phase.TERMINATED
    assert table.state.terminated_by == 2
    table.expect(ErrorCode.CANNOT_TERMINATE_IN_CURRENT_PHASE, commands.terminate_game, 0)


def test_connection_changes_are_recorded_once():
    table = Table()
    left = table.run(commands.set_connected(table.state, table.seq, 1, False))
    assert [event.type for event in left] == [EventType.PLAYER_LEFT]
    assert not table.state.players[1].connected
    assert commands.set_connected(table.state, table.seq, 1, False) == []

    back = table.run(commands.set_connected(table.state, table.seq, 1, True))
    assert [event.type for event in back] == [EventType.PLAYER_RECONNECTED]
    assert table.state.players[1].connected
    assert commands.set_connected(create_initial_state(3), table.seq, 0, True) == []
