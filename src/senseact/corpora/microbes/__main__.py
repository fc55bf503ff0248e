"""Console runner for the Microbes dish.

Usage:
    python -m senseact.corpora.microbes
    python -m senseact.corpora.microbes --ticks 3000 --summary-interval 300
"""

from __future__ import annotations

import argparse
import sys
from collections import Counter

from senseact.corpora.microbes import Dish, create_manager
from senseact.engine import AgentManager
from senseact.logging_config import configure_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the Microbes dish headlessly.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--ticks", type=int, default=1800, help="Number of ticks to run")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument(
        "--summary-interval",
        type=int,
        default=150,
        help="Print a summary every N ticks",
    )
    return parser.parse_args(argv)


def print_summary(manager: AgentManager) -> None:
    dish = manager.world
    assert isinstance(dish, Dish)
    behaviours = Counter(str(agent.state) for agent in dish.microbes)
    print(f"Tick {manager.tick_count:5d} | Alive: {len(dish.microbes):2d} | ", end="")
    print(f"Born: {dish.births:3d} | Died: {dish.deaths:3d} | ", end="")
    print(" ".join(f"{name}={count}" for name, count in sorted(behaviours.items())))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()

    print(f"Starting Microbes dish for {args.ticks} ticks...")
    print("=" * 70)

    manager = create_manager(seed=args.seed)
    print_summary(manager)

    for _ in range(args.ticks):
        manager.tick()
        if manager.tick_count % args.summary_interval == 0:
            print_summary(manager)

    print("=" * 70)
    print(f"Simulation complete. Final tick: {manager.tick_count}")
    best = manager.best_agent()
    if best is not None:
        print(f"  Fittest microbe: {best.name} ({best.performance:.1f})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
