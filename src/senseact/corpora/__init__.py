"""Example worlds that exercise the framework end to end.

Each corpus module exposes ``create_manager(config=None, seed=...)`` and can
be run headless with ``python -m senseact.corpora.<name>``.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

from senseact.errors import UnknownCorpusError

if TYPE_CHECKING:
    from senseact.config import EngineConfig
    from senseact.engine.manager import AgentManager

CORPORA: dict[str, str] = {
    "cleaner": "senseact.corpora.cleaner",
    "microbes": "senseact.corpora.microbes",
    "warehouse": "senseact.corpora.warehouse",
    "west_world": "senseact.corpora.west_world",
}

DEFAULT_CORPUS = "cleaner"


def available_corpora() -> list[str]:
    return sorted(CORPORA)


def load_corpus(
    name: str, config: EngineConfig | None = None, seed: int | None = None
) -> AgentManager:
    """Build a fresh manager for the named corpus.

    Raises:
        UnknownCorpusError: If no corpus has that name.
    """
    module_name = CORPORA.get(name)
    if module_name is None:
        raise UnknownCorpusError(
            f"Unknown corpus '{name}'. Available: {', '.join(available_corpora())}"
        )
    module = importlib.import_module(module_name)
    if seed is None:
        return module.create_manager(config)
    return module.create_manager(config, seed=seed)
