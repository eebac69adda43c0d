"""Headless bot-vs-bot simulation of complete Binokel games."""

from __future__ import annotations

import argparse
import logging
import random
import time
import traceback
import uuid
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from binokel import commands
from binokel.events import EventSequence, GameEvent, GameFinished
from binokel.export import format_event_log
from binokel.reducer import apply_events
from binokel.rules_schema import RuleSet
from binokel.state import GameState, Phase, create_initial_state, next_actor

from .base import BotStrategy, DecisionContext, apply_action
from .binokel_bot import BinokelBot

logger = logging.getLogger(__name__)

AI_NAMES = ("Alice", "Bob", "Charlie", "Diana")

BotFactory = Callable[[int, Optional[int]], BotStrategy]


class SimulationError(RuntimeError):
    """Raised when a simulated game exceeds its limits or gets stuck."""


@dataclass(frozen=True)
class SimulationOptions:
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    player_count: int = 3
    target_score: int = 1000
    max_actions: int = 10000
    timeout_seconds: float = 30.0
    seed: Optional[int] = None


@dataclass
class SimulationResult:
    session_id: str
    events: List[GameEvent]
    rounds: int
    winner: Optional[int]
    scores: Dict[int, int]
    action_count: int
    duration_seconds: float
    error: Optional[str] = None
    error_stack: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _default_bot(player_index: int, seed: Optional[int]) -> BotStrategy:
    return BinokelBot(seed=None if seed is None else seed + player_index)


class SimulationEngine:
    """Drive one game from the first deal to ``finished`` with bots in every seat."""

    def __init__(self, options: SimulationOptions, bot_factory: BotFactory = _default_bot) -> None:
        if options.player_count not in (2, 3, 4):
            raise ValueError(f"Binokel is played by 2, 3 or 4 players, not {options.player_count}.")
        self.options = options
        self.rules = RuleSet(target_score=options.target_score)
        self.rng = random.Random(options.seed)
        self.bots = [bot_factory(index, options.seed) for index in range(options.player_count)]
        self.state: GameState = create_initial_state(options.player_count, options.target_score)
        self.events: List[GameEvent] = []
        self.action_count = 0
        self._sequence = EventSequence(options.session_id)

    def _record(self, events: List[GameEvent]) -> None:
        self.events.extend(events)
        self.state = apply_events(events, self.state)

    def _seats(self) -> List[commands.Seat]:
        return [
            commands.Seat(f"ai-{index}", AI_NAMES[index], index, is_ai=True)
            for index in range(self.options.player_count)
        ]

    def _check_limits(self, deadline: float) -> None:
        where = f"Phase: {self.state.phase}, Round: {self.state.round}"
        if self.action_count > self.options.max_actions:
            raise SimulationError(f"Action limit exceeded ({self.options.max_actions}). {where}")
        if time.monotonic() > deadline:
            raise SimulationError(f"Timeout exceeded ({self.options.timeout_seconds}s). {where}")

    def step(self) -> None:
        player = next_actor(self.state)
        if player is None:
            raise SimulationError(f"Nobody can act in phase {self.state.phase}, round {self.state.round}.")
        action = self.bots[player].decide(DecisionContext(self.state, player, self.rules))
        self._record(apply_action(self.state, self._sequence, player, action, self.rules, self.rng))

    def run(self) -> SimulationResult:
        start = time.monotonic()
        deadline = start + self.options.timeout_seconds
        error: Optional[str] = None
        error_stack: Optional[str] = None
        try:
            self._record(
                commands.start_game(
                    self.state,
                    self._sequence,
                    self._seats(),
                    self.options.player_count,
                    self.options.target_score,
                    self.rng,
                )
            )
            while self.state.phase is not Phase.FINISHED:
                self.action_count += 1
                self._check_limits(deadline)
                self.step()
        except Exception as exc:
            logger.debug("Simulation %s failed", self.options.session_id, exc_info=True)
            error = str(exc)
            error_stack = traceback.format_exc()

        winner = next(
            (event.payload.winner for event in self.events if isinstance(event.payload, GameFinished)),
            None,
        )
        return SimulationResult(
            session_id=self.options.session_id,
            events=self.events,
            rounds=self.state.round,
            winner=winner,
            scores=dict(self.state.total_scores),
            action_count=self.action_count,
            duration_seconds=time.monotonic() - start,
            error=error,
            error_stack=error_stack,
        )


def run_batch(
    games: int,
    *,
    player_count: int = 3,
    target_score: int = 1000,
    max_actions: int = 10000,
    timeout_seconds: float = 30.0,
    seed: Optional[int] = None,
) -> List[SimulationResult]:
    results = []
    for index in range(games):
        options = SimulationOptions(
            player_count=player_count,
            target_score=target_score,
            max_actions=max_actions,
            timeout_seconds=timeout_seconds,
            seed=None if seed is None else seed + index * 1000,
        )
        results.append(SimulationEngine(options).run())
    return results


def write_failure_logs(results: Iterable[SimulationResult], output_dir: Path) -> List[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for result in results:
        if result.ok:
            continue
        path = output_dir / f"failed-{result.session_id}.log"
        body = format_event_log(result.events, session_id=result.session_id)
        path.write_text(f"{body}\n\nERROR: {result.error}\n{result.error_stack or ''}", encoding="utf-8")
        written.append(path)
    return written


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Simulate bot-only Binokel games.")
    parser.add_argument("--players", type=int, default=3, choices=(2, 3, 4))
    parser.add_argument("--games", type=int, default=10)
    parser.add_argument("--target-score", type=int, default=1000)
    parser.add_argument("--max-actions", type=int, default=10000)
    parser.add_argument("--timeout", type=float, default=30.0, help="Seconds per game.")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output-dir", type=Path, default=None)
    args = parser.parse_args(argv)

    results = run_batch(
        args.games,
        player_count=args.players,
        target_score=args.target_score,
        max_actions=args.max_actions,
        timeout_seconds=args.timeout,
        seed=args.seed,
    )

    failures = [result for result in results if not result.ok]
    completed = len(results) - len(failures)
    print(f"Games: {len(results)}, completed: {completed}, failed: {len(failures)}")
    if completed:
        finished = [result for result in results if result.ok]
        print(f"Average rounds: {sum(r.rounds for r in finished) / completed:.1f}")
        print(f"Average actions: {sum(r.action_count for r in finished) / completed:.1f}")
        print(f"Average duration: {sum(r.duration_seconds for r in finished) / completed:.3f}s")
        wins = Counter(result.winner for result in finished)
        print("Wins: " + ", ".join(f"{key}: {count}" for key, count in sorted(wins.items())))
    for result in failures:
        print(f"FAILED {result.session_id}: {result.error}")
    if args.output_dir is not None and failures:
        for path in write_failure_logs(failures, args.output_dir):
            print(f"Wrote {path}")
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
