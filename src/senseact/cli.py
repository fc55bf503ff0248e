"""Command-line interface for SenseAct."""

import argparse
import sys

import uvicorn

from senseact import __version__
from senseact.corpora import available_corpora, load_corpus
from senseact.errors import LookupTableError
from senseact.logging_config import configure_logging
from senseact.navigation import LookupTable


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="senseact",
        description="SenseAct - agent cognition framework",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )

    run = subparsers.add_parser("run", help="Run a corpus headlessly")
    run.add_argument("--corpus", choices=available_corpora(), default="cleaner")
    run.add_argument("--ticks", type=int, default=1000, help="Number of ticks (default: 1000)")
    run.add_argument("--seed", type=int, default=None, help="Random seed for the corpus")

    build = subparsers.add_parser("build-table", help="Precompute a corpus' lookup table")
    build.add_argument("--corpus", choices=available_corpora(), default="cleaner")
    build.add_argument("--output", required=True, help="JSON file to write")

    return parser


def _serve(parsed: argparse.Namespace) -> int:
    print(f"Starting SenseAct server at http://{parsed.host}:{parsed.port}")
    print("Press Ctrl+C to stop")
    uvicorn.run(
        "senseact.server.app:app",
        host=parsed.host,
        port=parsed.port,
        reload=parsed.reload,
    )
    return 0


def _run(parsed: argparse.Namespace) -> int:
    manager = load_corpus(parsed.corpus, seed=parsed.seed)
    manager.run(parsed.ticks)
    print(f"Ran '{parsed.corpus}' for {manager.tick_count} ticks ({manager.elapsed:.2f}s simulated)")
    for agent_id, score in manager.performance_by_agent().items():
        print(f"  {agent_id}: performance {score:.2f}")
    if manager.metrics.failures:
        print(f"  {manager.metrics.failures} agent step(s) failed, see log")
    return 0


def _build_table(parsed: argparse.Namespace) -> int:
    manager = load_corpus(parsed.corpus)
    if len(manager.graph) == 0:
        print(f"Corpus '{parsed.corpus}' has no navigation graph", file=sys.stderr)
        return 1
    table = manager.lookup_table or LookupTable.build(manager.graph)
    try:
        table.save(parsed.output)
    except LookupTableError as e:
        print(str(e), file=sys.stderr)
        return 1
    print(f"Wrote {len(table.entries)} lookups for {len(manager.graph)} nodes to {parsed.output}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Run a SenseAct command.

    Args:
        args: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success).
    """
    parsed = build_parser().parse_args(args)
    configure_logging()

    if parsed.command == "serve":
        return _serve(parsed)
    if parsed.command == "run":
        return _run(parsed)
    return _build_table(parsed)


if __name__ == "__main__":
    sys.exit(main())
