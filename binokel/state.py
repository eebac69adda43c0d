"""Game state model for Binokel.

A ``GameState`` is never mutated in place: the reducer derives a new state
for every event, so a state can be shared freely between the session cache,
the scheduler and the bots.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from .cards import AnyCard, Card, Suit
from .melds import Meld
from .trick import CompletedTrick, Trick


class Phase(Enum):
    WAITING = "waiting"
    DEALING = "dealing"
    BIDDING = "bidding"
    DABB = "dabb"
    TRUMP = "trump"
    MELDING = "melding"
    TRICKS = "tricks"
    SCORING = "scoring"
    FINISHED = "finished"
    TERMINATED = "terminated"

    def __str__(self) -> str:
        return self.value


# Phases in which the game is running and may be aborted.
ACTIVE_PHASES = frozenset(
    {
        Phase.DEALING,
        Phase.BIDDING,
        Phase.DABB,
        Phase.TRUMP,
        Phase.MELDING,
        Phase.TRICKS,
        Phase.SCORING,
    }
)


@dataclass(frozen=True)
class Player:
    id: str
    nickname: str
    player_index: int
    team: Optional[int] = None
    connected: bool = True


@dataclass(frozen=True)
class RoundScore:
    melds: int
    tricks: int
    total: int
    bid_met: bool


@dataclass
class GameState:
    phase: Phase
    player_count: int
    target_score: int
    players: Tuple[Player, ...] = ()
    hands: Dict[int, Tuple[AnyCard, ...]] = field(default_factory=dict)
    dabb: Tuple[AnyCard, ...] = ()
    current_bid: int = 0
    bid_winner: Optional[int] = None
    current_bidder: Optional[int] = None
    first_bidder: Optional[int] = None
    passed_players: FrozenSet[int] = frozenset()
    trump: Optional[Suit] = None
    went_out: bool = False
    current_trick: Trick = field(default_factory=Trick)
    tricks_taken: Dict[int, Tuple[Tuple[Card, ...], ...]] = field(default_factory=dict)
    current_player: Optional[int] = None
    round_scores: Dict[int, RoundScore] = field(default_factory=dict)
    total_scores: Dict[int, int] = field(default_factory=dict)
    declared_melds: Dict[int, Tuple[Meld, ...]] = field(default_factory=dict)
    dealer: int = 0
    round: int = 0
    dabb_card_ids: Tuple[str, ...] = ()
    last_completed_trick: Optional[CompletedTrick] = None
    terminated_by: Optional[int] = None

    def hand(self, player_index: int) -> List[AnyCard]:
        return list(self.hands.get(player_index, ()))

    @property
    def uses_teams(self) -> bool:
        return self.player_count == 4

    def team_of(self, player_index: int) -> Optional[int]:
        for player in self.players:
            if player.player_index == player_index:
                return player.team
        return None

    def team_members(self, team: int) -> List[int]:
        return sorted(player.player_index for player in self.players if player.team == team)

    def score_keys(self) -> List[int]:
        """Keys of ``round_scores``/``total_scores``: teams at four players, seats otherwise."""
        if self.uses_teams:
            return [0, 1]
        return list(range(self.player_count))


def create_initial_state(player_count: int = 4, target_score: int = 1000) -> GameState:
    return GameState(phase=Phase.WAITING, player_count=player_count, target_score=target_score)


def reset_for_new_round(state: GameState) -> GameState:
    """Clear the per-round fields, keeping players and cumulative scores."""
    return replace(
        state,
        phase=Phase.DEALING,
        hands={},
        dabb=(),
        current_bid=0,
        bid_winner=None,
        current_bidder=None,
        first_bidder=None,
        passed_players=frozenset(),
        trump=None,
        went_out=False,
        current_trick=Trick(),
        tricks_taken={},
        current_player=None,
        round_scores={},
        declared_melds={},
        dealer=(state.dealer + 1) % state.player_count,
        round=state.round + 1,
        dabb_card_ids=(),
        last_completed_trick=None,
    )


def next_actor(state: GameState) -> Optional[int]:
    """Seat expected to act next, or None when nobody has to act."""
    if state.phase is Phase.BIDDING:
        return state.current_bidder
    if state.phase in (Phase.DABB, Phase.TRUMP):
        return state.bid_winner
    if state.phase is Phase.MELDING:
        for player in range(state.player_count):
            if state.went_out and player == state.bid_winner:
                continue
            if player not in state.declared_melds:
                return player
        return None
    if state.phase is Phase.TRICKS:
        return state.current_player
    return None
