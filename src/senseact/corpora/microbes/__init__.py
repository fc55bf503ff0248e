"""The Microbes corpus: a petri dish of hunting, courting microbes.

Microbes come in seven colours arranged in a ring. A microbe can mate with
its own colour and the two colours next to it, and eats every other colour.
Hunger creeps up at random. A hungry microbe hunts, an adult that has not
mated looks for a partner, and an adult that has mated goes after pickups.
Young, well-fed microbes evade whoever is hunting them, or wander.

The global mind state picks the behaviour every tick and answers the
"hunted" and "eaten" events; courtship ("impress", then "mate") is handled
by the mate-seeking state only. The dish is the world: it ages microbes,
removes the dead, hands newborns to the manager and keeps the population
and the pickups topped up. There is no navigation graph; microbes move in
straight lines across the dish.
"""

from __future__ import annotations

import itertools
import logging
import math
import random
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum, IntEnum

from senseact.components import PerformanceMeasure, Sensor, State
from senseact.config import EngineConfig
from senseact.engine import AgentManager
from senseact.model import AIEvent, Agent, Percept
from senseact.navigation import Vec3, distance

logger = logging.getLogger(__name__)

CENTER = Vec3(0.0, 0.0, 0.0)
NEVER_HUNGRY = -(10**9)
# Fleeing microbes stay this far inside the rim
RIM_MARGIN = 0.9


class MicrobeType(IntEnum):
    RED = 0
    ORANGE = 1
    YELLOW = 2
    GREEN = 3
    BLUE = 4
    PURPLE = 5
    PINK = 6

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def can_mate_with(self, other: MicrobeType) -> bool:
        """Same colour, or a neighbour on the colour ring."""
        return (other - self) % len(MicrobeType) in (0, 1, len(MicrobeType) - 1)

    def can_eat(self, other: MicrobeType) -> bool:
        return not self.can_mate_with(other)


class MicrobeEvent(Enum):
    EATEN = "eaten"
    IMPRESS = "impress"
    MATE = "mate"
    HUNTED = "hunted"


class PickupType(Enum):
    FERTILITY = "fertility"
    NEVER_HUNGRY = "never_hungry"
    REJUVENATE = "rejuvenate"


@dataclass
class DishSettings:
    """Tunable parameters of the dish and its population."""

    floor_radius: float = 10.0
    min_microbes: int = 10
    max_microbes: int = 30
    active_pickups: int = 5
    starting_hunger: int = -10
    max_hunger: int = 20
    hunger_restored_from_eating: int = 10
    # Chance per second that hunger goes up by one
    hunger_chance: float = 1.0
    min_speed: float = 2.0
    max_speed: float = 4.0
    min_lifespan: float = 20.0
    max_lifespan: float = 30.0
    min_detection_range: float = 5.0
    max_offspring: int = 4
    interact_radius: float = 1.0
    score_seconds: float = 1.0
    score_offspring: float = 10.0


@dataclass(eq=False)
class Pickup:
    """A power-up lying on the dish until a microbe comes within reach."""

    kind: PickupType
    position: Vec3

    def apply(self, microbe: Agent) -> None:
        stats = microbe_stats(microbe)
        if self.kind is PickupType.FERTILITY:
            stats.did_mate = False
            microbe.add_message("Powered up - can now mate again!")
        elif self.kind is PickupType.NEVER_HUNGRY:
            stats.hunger = NEVER_HUNGRY
            microbe.add_message("Powered up - will not be hungry for eternity!")
        else:
            stats.elapsed_lifespan = stats.lifespan / 2
            microbe.add_message("Powered up - has extended life and is now a young adult again!")


@dataclass(eq=False)
class MicrobeStats:
    """Everything a microbe keeps track of; stored in its memory."""

    kind: MicrobeType
    lifespan: float
    detection_range: float
    hunger: int = 0
    elapsed_lifespan: float = 0.0
    time_alive: float = 0.0
    did_mate: bool = False
    offspring: int = 0
    alive: bool = True
    target: Agent | None = None
    pursuer: Agent | None = None
    target_pickup: Pickup | None = None

    @property
    def hungry(self) -> bool:
        return self.hunger > 0

    @property
    def adult(self) -> bool:
        return self.elapsed_lifespan >= self.lifespan / 2


def microbe_stats(agent: Agent) -> MicrobeStats:
    return agent.memory["microbe"]


def is_alive(agent: Agent | None) -> bool:
    return agent is not None and microbe_stats(agent).alive


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class Dish:
    """The petri dish every microbe lives in."""

    settings: DishSettings = field(default_factory=DishSettings)
    rng: random.Random = field(default_factory=random.Random)
    pickups: list[Pickup] = field(default_factory=list)
    manager: AgentManager | None = None
    births: int = 0
    deaths: int = 0
    _newborns: list[Agent] = field(default_factory=list, repr=False)
    _serials: dict[MicrobeType, Iterator[int]] = field(default_factory=dict, repr=False)

    @property
    def microbes(self) -> list[Agent]:
        """Living microbes, in manager order."""
        if self.manager is None:
            return []
        return [agent for agent in self.manager.agents if is_alive(agent)]

    def update(self, delta_time: float) -> None:
        if self.manager is None:
            return
        for newborn in self._newborns:
            self.add_microbe(newborn)
        self._newborns.clear()

        for agent in self.manager.agents:
            stats = microbe_stats(agent)
            if stats.alive:
                stats.elapsed_lifespan += delta_time
                stats.time_alive += delta_time
                cause = self._cause_of_death(agent)
                if cause is not None:
                    self.kill(agent, cause)
            if not stats.alive:
                self.manager.remove_agent(agent)

        while len(self.manager.agents) < self.settings.min_microbes:
            self.add_microbe(self.spawn())

        self._collect_pickups()
        self.restock_pickups()

    def _cause_of_death(self, agent: Agent) -> str | None:
        stats = microbe_stats(agent)
        if stats.hunger > self.settings.max_hunger:
            return "Starved."
        if stats.elapsed_lifespan >= stats.lifespan:
            return "Died of old age."
        if distance(agent.position, CENTER) > self.settings.floor_radius:
            return "Fell off the dish."
        return None

    def kill(self, agent: Agent, cause: str = "Died.") -> None:
        """Mark a microbe dead; the dish removes it on its next update."""
        stats = microbe_stats(agent)
        if not stats.alive:
            return
        stats.alive = False
        agent.change_state(None)
        agent.stop_navigating()
        agent.add_message(cause)
        self.deaths += 1
        logger.debug("%s: %s", agent.name, cause)

    # Population

    def random_point(self) -> Vec3:
        """Uniformly random point on the dish."""
        r = self.settings.floor_radius * math.sqrt(self.rng.random())
        angle = self.rng.uniform(0.0, 2 * math.pi)
        return Vec3(r * math.cos(angle), r * math.sin(angle), 0.0)

    def flee_point(self, position: Vec3, threat: Vec3) -> Vec3:
        """A point straight away from ``threat``, pulled back inside the rim."""
        dx, dy = position.x - threat.x, position.y - threat.y
        length = math.hypot(dx, dy)
        if length == 0:
            angle = self.rng.uniform(0.0, 2 * math.pi)
            dx, dy, length = math.cos(angle), math.sin(angle), 1.0
        reach = self.settings.floor_radius
        x = position.x + dx / length * reach
        y = position.y + dy / length * reach
        limit = self.settings.floor_radius * RIM_MARGIN
        radius = math.hypot(x, y)
        if radius > limit:
            x, y = x * limit / radius, y * limit / radius
        return Vec3(x, y, 0.0)

    def spawn(
        self,
        kind: MicrobeType | None = None,
        position: Vec3 | None = None,
        speed: float | None = None,
        lifespan: float | None = None,
        detection_range: float | None = None,
    ) -> Agent:
        """Create a microbe; anything not given is rolled at random."""
        if self.manager is None:
            raise RuntimeError("Dish is not attached to a manager")
        s = self.settings
        kind = self.rng.choice(list(MicrobeType)) if kind is None else kind
        position = self.random_point() if position is None else position
        if speed is None:
            speed = self.rng.uniform(s.min_speed, s.max_speed)
        if lifespan is None:
            lifespan = self.rng.uniform(s.min_lifespan, s.max_lifespan)
        if detection_range is None:
            detection_range = self.rng.uniform(s.min_detection_range, s.floor_radius * 2)

        serial = next(self._serials.setdefault(kind, itertools.count(1)))
        states = self.manager.states
        return Agent(
            id=f"{kind.name.lower()}-{serial}",
            name=f"{kind.label} {serial}",
            position=position,
            move_speed=speed,
            initial_state=states.get(MicrobeWanderingState),
            global_state=states.get(MicrobeMind),
            sensors=[PreySensor(), MateSensor(), PickupSensor()],
            performance_measure=MicrobePerformance(),
            memory={
                "microbe": MicrobeStats(
                    kind=kind,
                    lifespan=lifespan,
                    detection_range=detection_range,
                    hunger=s.starting_hunger,
                )
            },
        )

    def add_microbe(self, agent: Agent) -> None:
        if self.manager is None:
            raise RuntimeError("Dish is not attached to a manager")
        self.manager.add_agent(agent)

    def breed(self, parent_a: Agent, parent_b: Agent) -> int:
        """Conceive offspring between two parents.

        The young inherit a parent's colour and the parents' averaged speed,
        lifespan and detection range, nudged at random. They join the dish on
        its next update.

        Returns:
            How many were conceived; limited by ``max_offspring`` and the room
            left in the dish.
        """
        s = self.settings
        a, b = microbe_stats(parent_a), microbe_stats(parent_b)
        position = Vec3(*((p + q) / 2 for p, q in zip(parent_a.position, parent_b.position)))
        room = s.max_microbes - len(self.microbes) - len(self._newborns)
        born = max(0, min(s.max_offspring, room))
        for _ in range(born):
            self._newborns.append(
                self.spawn(
                    kind=a.kind if self.rng.random() <= 0.5 else b.kind,
                    position=position,
                    speed=_clamp(
                        (parent_a.move_speed + parent_b.move_speed) / 2 + self.rng.random() - 0.5,
                        s.min_speed,
                        s.max_speed,
                    ),
                    lifespan=_clamp(
                        (a.lifespan + b.lifespan) / 2 + self.rng.random() - 0.5,
                        s.min_lifespan,
                        s.max_lifespan,
                    ),
                    detection_range=_clamp(
                        (a.detection_range + b.detection_range) / 2 + self.rng.random() - 0.5,
                        s.min_detection_range,
                        s.floor_radius * 2,
                    ),
                )
            )
        a.offspring += born
        b.offspring += born
        self.births += born
        return born

    # Pickups

    def restock_pickups(self) -> None:
        while len(self.pickups) < self.settings.active_pickups:
            kind = self.rng.choice(list(PickupType))
            self.pickups.append(Pickup(kind, self.random_point()))

    def _collect_pickups(self) -> None:
        """The nearest living microbe within reach of a pickup collects it."""
        for pickup in list(self.pickups):
            in_reach = [
                microbe
                for microbe in self.microbes
                if distance(microbe.position, pickup.position) <= self.settings.interact_radius
            ]
            if not in_reach:
                continue
            collector = min(in_reach, key=lambda m: distance(m.position, pickup.position))
            collector.add_message(f"Collecting {pickup.kind.value} pickup.")
            pickup.apply(collector)
            self.pickups.remove(pickup)


def _dish(agent: Agent) -> Dish | None:
    if agent.manager is None or not isinstance(agent.manager.world, Dish):
        return None
    return agent.manager.world


def eat(eater: Agent, eaten: Agent) -> None:
    dish = _dish(eater)
    stats = microbe_stats(eater)
    if dish is not None:
        settings = dish.settings
        stats.hunger = max(
            settings.starting_hunger, stats.hunger - settings.hunger_restored_from_eating
        )
    eater.add_message(f"Ate {eaten.name}.")


def _roam(agent: Agent) -> None:
    dish = _dish(agent)
    if dish is not None and not agent.navigating:
        agent.navigate(dish.random_point())


# Percepts


@dataclass(frozen=True)
class MicrobePercept(Percept):
    microbe: Agent
    distance: float


@dataclass(frozen=True)
class PickupPercept(Percept):
    pickup: Pickup
    distance: float


# Sensors


def _nearest_microbe(
    agent: Agent, accept: Callable[[Agent, Agent], bool]
) -> MicrobePercept | None:
    dish = _dish(agent)
    if dish is None:
        return None
    detection_range = microbe_stats(agent).detection_range
    best: MicrobePercept | None = None
    for other in dish.microbes:
        if other is agent or not accept(agent, other):
            continue
        gap = distance(agent.position, other.position)
        if gap < detection_range and (best is None or gap < best.distance):
            best = MicrobePercept(other, gap)
    return best


def _edible(agent: Agent, other: Agent) -> bool:
    return microbe_stats(agent).kind.can_eat(microbe_stats(other).kind)


def _courting(agent: Agent, other: Agent) -> bool:
    theirs = microbe_stats(other)
    return (
        theirs.adult
        and other.is_in_state(MicrobeSeekingMateState)
        and microbe_stats(agent).kind.can_mate_with(theirs.kind)
    )


class PreySensor(Sensor):
    """Nearest microbe in detection range of a colour this one eats."""

    def sense(self, agent: Agent) -> MicrobePercept | None:
        return _nearest_microbe(agent, _edible)


class MateSensor(Sensor):
    """Nearest compatible adult in detection range that is also looking for a mate."""

    def sense(self, agent: Agent) -> MicrobePercept | None:
        return _nearest_microbe(agent, _courting)


class PickupSensor(Sensor):
    """Nearest pickup anywhere on the dish."""

    def sense(self, agent: Agent) -> PickupPercept | None:
        dish = _dish(agent)
        if dish is None:
            return None
        best: PickupPercept | None = None
        for pickup in dish.pickups:
            gap = distance(agent.position, pickup.position)
            if best is None or gap < best.distance:
                best = PickupPercept(pickup, gap)
        return best


# States


class MicrobeMind(State):
    """Global state: hunger ticks up, then the most pressing need picks the behaviour."""

    def execute(self, agent: Agent) -> None:
        dish = _dish(agent)
        stats = microbe_stats(agent)
        if dish is None or not stats.alive:
            return
        if dish.rng.random() <= dish.settings.hunger_chance * agent.delta_time:
            stats.hunger += 1

        wanted = self.choose(stats)
        if not agent.is_in_state(wanted):
            agent.change_state(agent.get_state(wanted))

    @staticmethod
    def choose(stats: MicrobeStats) -> type[State]:
        if stats.hungry:
            return MicrobeSeekingFoodState
        if stats.adult:
            return MicrobeSeekingPickupState if stats.did_mate else MicrobeSeekingMateState
        if is_alive(stats.pursuer):
            return MicrobeEvadeState
        return MicrobeWanderingState

    def handle_event(self, agent: Agent, event: AIEvent) -> bool:
        sender = event.sender
        if sender is None:
            return False
        if event.event_id is MicrobeEvent.HUNTED:
            microbe_stats(agent).pursuer = sender
            return True
        if event.event_id is MicrobeEvent.EATEN:
            dish = _dish(agent)
            if dish is None:
                return False
            eat(sender, agent)
            dish.kill(agent, f"Eaten by {sender.name}.")
            return True
        return False


class MicrobeSeekingFoodState(State):
    def enter(self, agent: Agent) -> None:
        agent.add_message("Starting to search for food.")

    def execute(self, agent: Agent) -> None:
        dish = _dish(agent)
        if dish is None:
            return
        stats = microbe_stats(agent)
        if not is_alive(stats.target):
            percept = agent.sense(PreySensor)
            stats.target = percept.microbe if percept is not None else None

        prey = stats.target
        if prey is None:
            agent.add_message("Cannot find any food, roaming.")
            _roam(agent)
            return

        if distance(agent.position, prey.position) <= dish.settings.interact_radius:
            agent.fire_event(prey, MicrobeEvent.EATEN)
            stats.target = None
            return

        agent.add_message(f"Hunting {prey.name}.")
        agent.navigate(prey.position)
        agent.fire_event(prey, MicrobeEvent.HUNTED)

    def exit(self, agent: Agent) -> None:
        microbe_stats(agent).target = None
        agent.stop_navigating()
        agent.add_message("No longer searching for food.")


class MicrobeSeekingMateState(State):
    """Courtship: impress a nearby partner, walk over, then mate."""

    def enter(self, agent: Agent) -> None:
        agent.add_message("Looking for a mate.")

    def execute(self, agent: Agent) -> None:
        dish = _dish(agent)
        if dish is None:
            return
        stats = microbe_stats(agent)
        partner = stats.target
        if partner is not None and not (
            is_alive(partner) and partner.is_in_state(MicrobeSeekingMateState)
        ):
            agent.add_message(f"{partner.name} is no longer interested.")
            stats.target = None

        if stats.target is None:
            percept = agent.sense(MateSensor)
            if percept is not None:
                candidate = percept.microbe
                agent.add_message(f"Attempting to impress {candidate.name} to mate.")
                if agent.fire_event(candidate, MicrobeEvent.IMPRESS):
                    agent.add_message(f"{candidate.name} accepted advances to mate.")
                    stats.target = candidate
                else:
                    agent.add_message(f"Could not mate with {candidate.name}.")

        partner = stats.target
        if partner is None:
            agent.add_message("Cannot find a mate, roaming.")
            _roam(agent)
            return

        if distance(agent.position, partner.position) <= dish.settings.interact_radius:
            if agent.fire_event(partner, MicrobeEvent.MATE):
                agent.add_message(f"Mating with {partner.name}.")
                stats.did_mate = True
            return

        agent.add_message(f"Moving to mate with {partner.name}.")
        agent.navigate(partner.position)

    def exit(self, agent: Agent) -> None:
        microbe_stats(agent).target = None
        agent.stop_navigating()
        agent.add_message("No longer looking for a mate.")

    def handle_event(self, agent: Agent, event: AIEvent) -> bool:
        stats = microbe_stats(agent)
        sender = event.sender
        if sender is None:
            return False

        if event.event_id is MicrobeEvent.IMPRESS:
            if not stats.adult or stats.did_mate or stats.target is not None:
                agent.add_message(f"Cannot mate with {sender.name}.")
                return False
            agent.add_message(f"Accepted advances of {sender.name}.")
            stats.target = sender
            return True

        if event.event_id is MicrobeEvent.MATE:
            stats.did_mate = True
            microbe_stats(sender).did_mate = True
            dish = _dish(agent)
            born = dish.breed(agent, sender) if dish is not None else 0
            if born:
                agent.add_message(f"Have {born} offspring with {sender.name}.")
            else:
                agent.add_message(f"Failed to have any offspring with {sender.name}.")
            return True

        return False


class MicrobeSeekingPickupState(State):
    def enter(self, agent: Agent) -> None:
        agent.add_message("Starting searching for a pickup.")

    def execute(self, agent: Agent) -> None:
        dish = _dish(agent)
        if dish is None:
            return
        stats = microbe_stats(agent)
        if stats.target_pickup not in dish.pickups:
            percept = agent.sense(PickupSensor)
            stats.target_pickup = percept.pickup if percept is not None else None

        pickup = stats.target_pickup
        if pickup is None:
            agent.add_message("Cannot find any pickups, roaming.")
            _roam(agent)
            return

        agent.add_message(f"Moving to {pickup.kind.value} pickup.")
        agent.navigate(pickup.position)

    def exit(self, agent: Agent) -> None:
        microbe_stats(agent).target_pickup = None
        agent.stop_navigating()
        agent.add_message("No longer searching for a pickup.")


class MicrobeEvadeState(State):
    """Run straight away from the hunter while it is in sight."""

    def enter(self, agent: Agent) -> None:
        agent.add_message("Being hunted, starting to evade.")

    def execute(self, agent: Agent) -> None:
        dish = _dish(agent)
        if dish is None:
            return
        stats = microbe_stats(agent)
        hunter = stats.pursuer
        if not is_alive(hunter) or microbe_stats(hunter).target is not agent:
            stats.pursuer = None
            return

        if distance(agent.position, hunter.position) > stats.detection_range:
            agent.add_message("Have a feeling I am being hunted but don't know where they are.")
            agent.stop_navigating()
            return

        agent.add_message(f"Evading {hunter.name}.")
        agent.navigate(dish.flee_point(agent.position, hunter.position))

    def exit(self, agent: Agent) -> None:
        microbe_stats(agent).pursuer = None
        agent.stop_navigating()
        agent.add_message("No longer being hunted, stopping evading.")


class MicrobeWanderingState(State):
    def enter(self, agent: Agent) -> None:
        agent.add_message("Nothing to do, starting to wander.")
        agent.stop_navigating()

    def execute(self, agent: Agent) -> None:
        _roam(agent)

    def exit(self, agent: Agent) -> None:
        agent.stop_navigating()
        agent.add_message("Got something to do, stopping wandering.")


class MicrobePerformance(PerformanceMeasure):
    """Seconds alive plus a bonus for every offspring."""

    def calculate_performance(self, agent: Agent) -> float:
        dish = _dish(agent)
        if dish is None:
            return 0.0
        stats = microbe_stats(agent)
        settings = dish.settings
        return (
            stats.time_alive * settings.score_seconds
            + stats.offspring * settings.score_offspring
        )


# World construction


def create_manager(
    config: EngineConfig | None = None,
    seed: int | None = 42,
    settings: DishSettings | None = None,
) -> AgentManager:
    """Create the dish, its starting population and its pickups.

    Args:
        config: Engine settings; defaults to the environment-driven config.
        seed: Seed for every random roll in the dish.
        settings: Dish parameters; defaults to :class:`DishSettings`.
    """
    if settings is None:
        settings = DishSettings()
    dish = Dish(settings=settings, rng=random.Random(seed))
    manager = AgentManager(config, world=dish)
    dish.manager = manager
    for _ in range(dish.settings.min_microbes):
        dish.add_microbe(dish.spawn())
    dish.restock_pickups()
    return manager
