"""Console runner for the Cleaner simulation.

Usage:
    python -m senseact.corpora.cleaner
    python -m senseact.corpora.cleaner --ticks 3000 --width 5 --depth 5
"""

from __future__ import annotations

import argparse
import sys

from senseact.corpora.cleaner import DEFAULT_DEPTH, DEFAULT_WIDTH, FloorWorld, create_manager
from senseact.engine import AgentManager
from senseact.logging_config import configure_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the Cleaner simulation headlessly.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--ticks", type=int, default=1800, help="Number of ticks to run")
    parser.add_argument("--width", type=int, default=DEFAULT_WIDTH, help="Tile columns")
    parser.add_argument("--depth", type=int, default=DEFAULT_DEPTH, help="Tile rows")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument(
        "--summary-interval",
        type=int,
        default=150,
        help="Print a summary every N ticks",
    )
    return parser.parse_args(argv)


def print_summary(manager: AgentManager) -> None:
    world = manager.world
    assert isinstance(world, FloorWorld)
    dirty = sum(1 for f in world.floors if f.is_dirty)
    cleaner = manager.agents[0]
    print(
        f"Tick {manager.tick_count:5d} | Dirty tiles: {dirty:2d}/{len(world.floors)} | "
        f"Performance: {cleaner.performance:6.2f}% | "
        f"Position: ({cleaner.position.x:5.2f}, {cleaner.position.y:5.2f})"
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()

    print(f"Starting Cleaner simulation for {args.ticks} ticks...")
    print("=" * 70)

    manager = create_manager(seed=args.seed, width=args.width, depth=args.depth)
    print_summary(manager)

    for _ in range(args.ticks):
        manager.tick()
        if manager.tick_count % args.summary_interval == 0:
            print_summary(manager)

    print("=" * 70)
    print(f"Simulation complete. Final tick: {manager.tick_count}")
    print(f"Mean tick time: {manager.metrics.mean_duration * 1000:.3f} ms")
    return 0


if __name__ == "__main__":
    sys.exit(main())
