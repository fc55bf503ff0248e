"""Console runner for the Warehouse simulation.

Usage:
    python -m senseact.corpora.warehouse
    python -m senseact.corpora.warehouse --ticks 3000 --pickers 5
"""

from __future__ import annotations

import argparse
import sys

from senseact.corpora.warehouse import START_CELLS, WarehouseWorld, carried_part, create_manager
from senseact.engine import AgentManager
from senseact.logging_config import configure_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the Warehouse simulation headlessly.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--ticks", type=int, default=1800, help="Number of ticks to run")
    parser.add_argument(
        "--pickers",
        type=int,
        choices=range(1, len(START_CELLS) + 1),
        default=3,
        help="Number of picker agents",
    )
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
    assert isinstance(world, WarehouseWorld)
    open_orders = sum(len(o.orders) for o in world.outbounds)
    print(f"Tick {manager.tick_count:5d} | Delivered: {world.delivered:3d} | ", end="")
    print(f"Open orders: {open_orders:2d} | ", end="")
    for agent in manager.agents:
        part = carried_part(agent)
        print(f"{agent.id}={'-' if part is None else part} ", end="")
    print()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()

    print(f"Starting Warehouse simulation for {args.ticks} ticks...")
    print("=" * 70)

    manager = create_manager(seed=args.seed, pickers=args.pickers)
    print_summary(manager)

    for _ in range(args.ticks):
        manager.tick()
        if manager.tick_count % args.summary_interval == 0:
            print_summary(manager)

    print("=" * 70)
    print(f"Simulation complete. Final tick: {manager.tick_count}")
    for agent_id, delivered in sorted(manager.performance_by_agent().items()):
        print(f"  {agent_id}: {delivered:.0f} parts delivered")
    return 0


if __name__ == "__main__":
    sys.exit(main())
