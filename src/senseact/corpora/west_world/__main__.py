"""Console runner for West World.

Usage:
    python -m senseact.corpora.west_world
    python -m senseact.corpora.west_world --ticks 60 --verbose
"""

from __future__ import annotations

import argparse
import logging
import sys

from senseact.corpora.west_world import MINER_ID, create_manager, miner_stats
from senseact.logging_config import configure_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run West World headlessly.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--ticks", type=int, default=30, help="Number of ticks to run")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every agent message (DEBUG level)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else None)

    manager = create_manager(seed=args.seed)
    for _ in range(args.ticks):
        manager.tick()
        states = " | ".join(f"{agent.name}: {agent.state}" for agent in manager.agents)
        print(f"[{manager.tick_count:3d}] {states}")

    miner = manager.get_agent(MINER_ID)
    if miner is not None:
        print(f"Money in bank: {miner_stats(miner).money_in_bank}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
