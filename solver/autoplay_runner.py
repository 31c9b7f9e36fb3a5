from __future__ import annotations

import argparse
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from klondike.AutoPlay import AutoPlayer, QueueScheduler
from klondike.Core import Core, GameConfig
from klondike.Interface import Interface


@dataclass(frozen=True, slots=True)
class RunLimits:
    max_ticks: int = 20_000
    max_reshuffles: int = 0
    stall_limit: int = 100


@dataclass(slots=True)
class RunResult:
    seed: int
    status: str
    won: bool
    foundation_cards: int
    ticks: int
    reshuffles: int
    history_depth: int
    elapsed_ms: float

    def to_dict(self) -> dict:
        return {
            "seed": self.seed,
            "status": self.status,
            "won": self.won,
            "foundation_cards": self.foundation_cards,
            "ticks": self.ticks,
            "reshuffles": self.reshuffles,
            "history_depth": self.history_depth,
            "elapsed_ms": self.elapsed_ms,
        }


class _CountingInterface(Interface):
    def __init__(self):
        super().__init__()
        self.no_moves = 0

    def onNoMoves(self):
        self.no_moves += 1


def play_seed(seed: int, limits: RunLimits = RunLimits()) -> RunResult:
    """Play one seeded deal with the auto-play heuristic, no delay between ticks."""

    config = GameConfig()
    config.seed = seed
    config.autoPlayDelay = 0
    config.stallLimit = limits.stall_limit

    core = Core()
    core.registerInterface(_CountingInterface())
    core.startGame(config)
    scheduler = QueueScheduler()
    player = AutoPlayer(core, scheduler)

    started = time.perf_counter()
    ticks = 0
    reshuffles = 0
    player.startAutoPlay()
    while True:
        ticks += scheduler.runPending(maxSteps=max(0, limits.max_ticks - ticks))
        if core.isWon():
            status = "won"
            break
        if ticks >= limits.max_ticks:
            player.stopAutoPlay("tick_limit")
            status = "tick_limit"
            break
        if reshuffles < limits.max_reshuffles and core.isGameOverNoMoves():
            core.askReshuffle()
            reshuffles += 1
            player.startAutoPlay()
            continue
        status = player.stopReason or "stopped"
        break

    state = core.state
    return RunResult(
        seed=seed,
        status=status,
        won=status == "won",
        foundation_cards=sum(len(pile) for pile in state.foundation),
        ticks=ticks,
        reshuffles=reshuffles,
        history_depth=len(state.history),
        elapsed_ms=round((time.perf_counter() - started) * 1000.0, 3),
    )


def play_seeds(seeds: Iterable[int], limits: RunLimits = RunLimits()) -> list[RunResult]:
    return [play_seed(seed, limits) for seed in seeds]


def summarize(results: list[RunResult]) -> dict:
    count = len(results)
    won = sum(1 for r in results if r.won)
    statuses: dict[str, int] = {}
    for r in results:
        statuses[r.status] = statuses.get(r.status, 0) + 1
    return {
        "games": count,
        "won": won,
        "win_rate": round(won / count, 4) if count else 0.0,
        "avg_foundation_cards": round(sum(r.foundation_cards for r in results) / count, 2) if count else 0.0,
        "statuses": statuses,
    }


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Batch auto-play of seeded Klondike deals.")
    parser.add_argument("--start-seed", type=int, required=True, help="Start seed (inclusive).")
    parser.add_argument("--count", type=int, required=True, help="How many seeds to play.")
    parser.add_argument("--max-ticks", type=int, default=20_000, help="Per-seed auto-play tick limit.")
    parser.add_argument("--max-reshuffles", type=int, default=0, help="Reshuffles allowed when stuck.")
    parser.add_argument("--stall-limit", type=int, default=100, help="Draw/recycle steps in a row before giving up.")
    parser.add_argument("--jsonl", type=str, default="", help="Optional output jsonl path.")
    parser.add_argument("--verbose", action="store_true", help="Log auto-play details.")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    limits = RunLimits(max_ticks=args.max_ticks, max_reshuffles=args.max_reshuffles, stall_limit=args.stall_limit)

    out_path = Path(args.jsonl).expanduser() if args.jsonl else None
    if out_path is not None:
        out_path.parent.mkdir(parents=True, exist_ok=True)

    results = []
    started = time.perf_counter()
    for i in range(args.count):
        result = play_seed(args.start_seed + i, limits)
        results.append(result)
        if out_path is not None:
            with out_path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(result.to_dict(), ensure_ascii=False) + "\n")
        print(
            f"seed={result.seed} status={result.status} foundation={result.foundation_cards} "
            f"ticks={result.ticks} reshuffles={result.reshuffles} elapsed_ms={result.elapsed_ms}"
        )

    summary = summarize(results)
    total_ms = (time.perf_counter() - started) * 1000.0
    print(
        f"summary games={summary['games']} won={summary['won']} win_rate={summary['win_rate']} "
        f"avg_foundation={summary['avg_foundation_cards']} total_ms={total_ms:.1f}"
    )


if __name__ == "__main__":
    main()
