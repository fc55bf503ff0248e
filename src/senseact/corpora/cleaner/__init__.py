"""The Cleaner corpus: one vacuum agent keeping a grid of floor tiles clean.

Tiles pick up dirt at random intervals, some of them twice as often as the
rest. The agent cleans the tile it stands on when it is dirty, otherwise it
heads for the cheapest dirty tile to reach (using the lookup table), or for
the spot that is most likely to get dirty next.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import IntEnum

from senseact.components import Actuator, PerformanceMeasure, Sensor, State
from senseact.config import EngineConfig
from senseact.engine import AgentManager
from senseact.model import Action, Agent, Percept
from senseact.navigation import Vec3, distance, grid_graph

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 4
DEFAULT_DEPTH = 3
FLOOR_SCALE = 1.0
LIKELY_TO_GET_DIRTY_CHANCE = 0.25
TIME_BETWEEN_DIRT_GENERATION = 5.0
CHANCE_DIRTY = 0.1
DIRT_ATTEMPTS = 3


class DirtLevel(IntEnum):
    CLEAN = 0
    DIRTY = 1
    VERY_DIRTY = 2
    EXTREMELY_DIRTY = 3


@dataclass(eq=False)
class Floor:
    """A single floor tile."""

    name: str
    position: Vec3
    likely_to_get_dirty: bool = False
    level: DirtLevel = DirtLevel.CLEAN

    @property
    def is_dirty(self) -> bool:
        return self.level > DirtLevel.CLEAN

    def dirty(self) -> None:
        """Raise the dirt level by one, up to extremely dirty."""
        if self.level < DirtLevel.EXTREMELY_DIRTY:
            self.level = DirtLevel(self.level + 1)

    def clean(self) -> None:
        self.level = DirtLevel.CLEAN


@dataclass
class FloorWorld:
    """The floor tiles and the dirt that accumulates on them.

    Every ``time_between_dirt`` seconds each tile that is not already
    extremely dirty gets ``DIRT_ATTEMPTS`` chances to gain a dirt level
    (doubled for tiles likely to get dirty). If no tile gained dirt the
    chance doubles and the round repeats, so dirt is always added.
    """

    floors: list[Floor]
    rng: random.Random = field(default_factory=random.Random)
    time_between_dirt: float = TIME_BETWEEN_DIRT_GENERATION
    chance_dirty: float = CHANCE_DIRTY
    tile_size: float = FLOOR_SCALE
    elapsed: float = 0.0

    def update(self, delta_time: float) -> None:
        self.elapsed += delta_time
        if self.elapsed < self.time_between_dirt:
            return
        self.elapsed = 0.0
        self.add_dirt()

    def add_dirt(self) -> int:
        """Run one dirt generation round. Returns how many levels were added."""
        candidates = [f for f in self.floors if f.level < DirtLevel.EXTREMELY_DIRTY]
        if not candidates:
            return 0

        chance = max(self.chance_dirty, 1e-6)
        added = 0
        while added == 0:
            for floor in candidates:
                floor_chance = chance * 2 if floor.likely_to_get_dirty else chance
                for _ in range(DIRT_ATTEMPTS):
                    if self.rng.random() <= floor_chance:
                        floor.dirty()
                        added += 1
            chance *= 2
        logger.debug("Added %d dirt levels", added)
        return added

    def floor_at(self, position: Vec3) -> Floor | None:
        """The tile under ``position``, if any."""
        best: Floor | None = None
        best_distance = self.tile_size / 2
        for floor in self.floors:
            d = distance(floor.position, position)
            if d <= best_distance:
                best, best_distance = floor, d
        return best


def _world(agent: Agent) -> FloorWorld | None:
    if agent.manager is None or not isinstance(agent.manager.world, FloorWorld):
        return None
    return agent.manager.world


# Percepts


@dataclass(frozen=True)
class DirtyPercept(Percept):
    """The tile the agent is standing on."""

    floor: Floor
    is_dirty: bool


@dataclass(frozen=True)
class FloorsPercept(Percept):
    """Snapshot of every tile, as parallel tuples."""

    positions: tuple[Vec3, ...]
    dirty: tuple[bool, ...]
    likely_to_get_dirty: tuple[bool, ...]


# Sensors


class DirtySensor(Sensor):
    def sense(self, agent: Agent) -> DirtyPercept | None:
        world = _world(agent)
        if world is None:
            return None
        floor = world.floor_at(agent.position)
        if floor is None:
            return None
        return DirtyPercept(floor, floor.is_dirty)


class FloorsSensor(Sensor):
    def sense(self, agent: Agent) -> FloorsPercept | None:
        world = _world(agent)
        if world is None or not world.floors:
            return None
        return FloorsPercept(
            positions=tuple(f.position for f in world.floors),
            dirty=tuple(f.is_dirty for f in world.floors),
            likely_to_get_dirty=tuple(f.likely_to_get_dirty for f in world.floors),
        )


# Actions and actuators


@dataclass(eq=False)
class CleanAction(Action):
    floor: Floor | None = None


class CleanActuator(Actuator):
    """Cleans a tile over ``time_to_clean`` seconds, tracked by the agent's "clean" timer."""

    def __init__(self, time_to_clean: float = 0.25) -> None:
        self.time_to_clean = time_to_clean

    def act(self, agent: Agent, action: Action) -> bool:
        if not isinstance(action, CleanAction):
            return False

        timer = agent.timer("clean", self.time_to_clean)
        if action.floor is None:
            agent.add_message(f"{self}: unable to clean current floor tile.")
            timer.cancel()
            return False

        if timer.idle:
            timer.start(self.time_to_clean)
        if timer.running:
            agent.add_message(f"{self}: cleaning current floor tile.")
            return False

        timer.cancel()
        action.floor.clean()
        agent.add_message(f"{self}: finished cleaning {action.floor.name}.")
        return True


# Mind


class CleanerMind(State):
    """Global state: clean the current tile, or move to where dirt is."""

    def execute(self, agent: Agent) -> Action | None:
        # Still cleaning, nothing new to decide
        if any(isinstance(a, CleanAction) for a in agent.pending_actions):
            return None

        percept = agent.sense(DirtySensor)
        if percept is None or not percept.is_dirty:
            agent.add_message("Nothing to clean, preparing for more dirt.")
            agent.navigate(self.location_to_move(agent))
            return None

        agent.add_message("Cleaning current floor tile.")
        agent.stop_navigating()
        return CleanAction(percept.floor)

    @staticmethod
    def location_to_move(agent: Agent) -> Vec3:
        """The cheapest dirty tile, else the weighted midpoint of dirt-prone tiles, else the origin."""
        floors = agent.sense(FloorsSensor)
        if floors is None:
            return Vec3(0.0, 0.0, 0.0)

        dirty = [p for p, d in zip(floors.positions, floors.dirty, strict=True) if d]
        if dirty:
            if agent.manager is not None:
                reachable = agent.manager.navigator.nearest_reachable(agent.position, dirty)
                if reachable is not None:
                    return reachable
            return min(dirty, key=lambda p: distance(agent.position, p))

        likely = [
            p
            for p, flag in zip(floors.positions, floors.likely_to_get_dirty, strict=True)
            if flag
        ]
        if likely:
            return _weighted_midpoint(floors.positions, likely)
        return Vec3(0.0, 0.0, 0.0)


def _weighted_midpoint(all_positions: tuple[Vec3, ...], likely: list[Vec3]) -> Vec3:
    # Dirt-prone tiles are counted twice
    points = list(all_positions) + likely
    count = len(all_positions)
    return Vec3(
        sum(p.x for p in points) / count,
        sum(p.y for p in points) / count,
        sum(p.z for p in points) / count,
    )


class CleanerPerformance(PerformanceMeasure):
    """Percentage of the maximum possible dirt that is absent (100 = spotless)."""

    def calculate_performance(self, agent: Agent) -> float:
        world = _world(agent)
        if world is None or not world.floors:
            return 100.0
        max_performance = len(world.floors) * int(DirtLevel.EXTREMELY_DIRTY)
        dirt = sum(int(f.level) for f in world.floors)
        return (max_performance - dirt) / max_performance * 100.0


# World construction


def create_floors(
    width: int,
    depth: int,
    rng: random.Random,
    scale: float = FLOOR_SCALE,
    likely_chance: float = LIKELY_TO_GET_DIRTY_CHANCE,
) -> list[Floor]:
    """Tiles centred on the origin, in the same row-major order as the grid graph."""
    ox, oy = _origin(width, depth, scale)
    floors = []
    for row in range(depth):
        for col in range(width):
            floors.append(
                Floor(
                    name=f"Floor {col} {row}",
                    position=Vec3(ox + col * scale, oy + row * scale, 0.0),
                    likely_to_get_dirty=rng.random() < likely_chance,
                )
            )
    return floors


def _origin(width: int, depth: int, scale: float) -> tuple[float, float]:
    return (-(width - 1) / 2 * scale, -(depth - 1) / 2 * scale)


def create_cleaner(manager: AgentManager, time_to_clean: float = 0.25) -> Agent:
    return Agent(
        id="cleaner",
        name="Cleaner Agent",
        move_speed=2.0,
        global_state=manager.states.get(CleanerMind),
        sensors=[DirtySensor(), FloorsSensor()],
        actuators=[CleanActuator(time_to_clean)],
        performance_measure=CleanerPerformance(),
    )


def create_manager(
    config: EngineConfig | None = None,
    seed: int | None = 42,
    width: int = DEFAULT_WIDTH,
    depth: int = DEFAULT_DEPTH,
    chance_dirty: float = CHANCE_DIRTY,
    time_between_dirt: float = TIME_BETWEEN_DIRT_GENERATION,
) -> AgentManager:
    """Create the cleaner world with its navigation graph and agent.

    Args:
        config: Engine settings; defaults to the environment-driven config.
        seed: Seed for dirt generation, for reproducible runs.
        width: Number of tile columns.
        depth: Number of tile rows.
        chance_dirty: Per-attempt chance that a tile gains dirt.
        time_between_dirt: Seconds between dirt generation rounds.

    Returns:
        A manager with the floor world attached and one cleaner registered.
    """
    rng = random.Random(seed)
    world = FloorWorld(
        floors=create_floors(width, depth, rng),
        rng=rng,
        time_between_dirt=time_between_dirt,
        chance_dirty=chance_dirty,
    )
    ox, oy = _origin(width, depth, FLOOR_SCALE)
    graph = grid_graph(width, depth, spacing=FLOOR_SCALE, origin=(ox, oy, 0.0))

    manager = AgentManager(config, graph=graph, world=world)
    manager.add_agent(create_cleaner(manager))
    return manager
