"""The Warehouse corpus: pickers fetch parts from racks for outbound orders.

Outbound stations post orders for part types. Each picker alternates between
a pick state (find the cheapest rack-to-outbound trip for an ordered part,
walk there, pick the part) and a place state (walk to a station that wants
the part, drop it off). A global mind state switches between the two based
on whether the picker is carrying something. Pick and place are handled by
two separate actuators on the same agent.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any

from senseact.components import Actuator, PerformanceMeasure, Sensor, State
from senseact.config import EngineConfig
from senseact.engine import AgentManager
from senseact.model import Action, Agent, Percept, Timer
from senseact.navigation import Vec3, distance, grid_graph

logger = logging.getLogger(__name__)

GRID_WIDTH = 9
GRID_DEPTH = 7
SHELVES = frozenset(
    (col, row) for col in (2, 4, 6) for row in (2, 3, 4)
)
RACK_CELLS = ((1, 3), (3, 3), (5, 3), (7, 3))
OUTBOUND_CELLS = ((0, 6), (8, 6))
START_CELLS = ((4, 0), (3, 0), (5, 0), (2, 0), (6, 0))

RACK_CAPACITY = 3
RESTOCK_TIME = 4.0
ORDER_INTERVAL = 3.0
MAX_ORDERS = 3
INTERACT_DISTANCE = 0.5


@dataclass(eq=False)
class Rack:
    """Storage for one part type that slowly restocks after being picked."""

    name: str
    position: Vec3
    part_id: int
    stock: int = RACK_CAPACITY
    capacity: int = RACK_CAPACITY
    restock_time: float = RESTOCK_TIME
    restock: Timer = field(default_factory=Timer)

    def has(self, part_id: int) -> bool:
        return part_id == self.part_id and self.stock > 0

    def pick(self, part_id: int) -> bool:
        if not self.has(part_id):
            return False
        self.stock -= 1
        return True

    def update(self, delta_time: float) -> None:
        self.restock.tick(delta_time)
        if self.restock.expired:
            self.stock = min(self.capacity, self.stock + 1)
            self.restock.cancel()
        if self.stock < self.capacity and self.restock.idle:
            self.restock.start(self.restock_time)


@dataclass(eq=False)
class Outbound:
    """A shipping station holding open orders, one part id per order."""

    name: str
    position: Vec3
    orders: list[int] = field(default_factory=list)
    delivered: int = 0

    def wants(self, part_id: int) -> bool:
        return part_id in self.orders

    def place(self, part_id: int) -> bool:
        if not self.wants(part_id):
            return False
        self.orders.remove(part_id)
        self.delivered += 1
        return True


@dataclass
class WarehouseWorld:
    """Racks, outbound stations and the order stream feeding them."""

    racks: list[Rack]
    outbounds: list[Outbound]
    rng: random.Random = field(default_factory=random.Random)
    order_interval: float = ORDER_INTERVAL
    max_orders: int = MAX_ORDERS
    elapsed: float = 0.0

    @property
    def part_types(self) -> list[int]:
        return sorted({rack.part_id for rack in self.racks})

    @property
    def delivered(self) -> int:
        return sum(outbound.delivered for outbound in self.outbounds)

    def update(self, delta_time: float) -> None:
        for rack in self.racks:
            rack.update(delta_time)
        self.elapsed += delta_time
        if self.elapsed >= self.order_interval:
            self.elapsed = 0.0
            self.add_order()

    def add_order(self) -> Outbound | None:
        """Post a random order at a random station that has room for one."""
        open_stations = [o for o in self.outbounds if len(o.orders) < self.max_orders]
        if not open_stations or not self.racks:
            return None
        outbound = self.rng.choice(open_stations)
        part_id = self.rng.choice(self.part_types)
        outbound.orders.append(part_id)
        logger.debug("Order for part %d posted at %s", part_id, outbound.name)
        return outbound


def _world(agent: Agent) -> WarehouseWorld | None:
    if agent.manager is None or not isinstance(agent.manager.world, WarehouseWorld):
        return None
    return agent.manager.world


def carried_part(agent: Agent) -> int | None:
    return agent.memory.get("part")


# Percepts


@dataclass(frozen=True)
class PickPercept(Percept):
    rack: Rack
    part_id: int
    outbound: Outbound
    cost: float


@dataclass(frozen=True)
class PlacePercept(Percept):
    outbound: Outbound
    part_id: int
    cost: float


# Sensors


class PickSensor(Sensor):
    """Finds the ordered part whose rack-then-station trip is cheapest."""

    def sense(self, agent: Agent) -> PickPercept | None:
        world = _world(agent)
        if world is None or carried_part(agent) is not None:
            return None
        navigator = agent.manager.navigator

        best: PickPercept | None = None
        for outbound in world.outbounds:
            for part_id in dict.fromkeys(outbound.orders):
                for rack in world.racks:
                    if not rack.has(part_id):
                        continue
                    to_rack = navigator.cost(agent.position, rack.position)
                    to_outbound = navigator.cost(rack.position, outbound.position)
                    if to_rack is None or to_outbound is None:
                        continue
                    cost = to_rack + to_outbound
                    if best is None or cost < best.cost:
                        best = PickPercept(rack, part_id, outbound, cost)
        return best


class PlaceSensor(Sensor):
    """Finds the cheapest station to reach that wants the carried part."""

    def sense(self, agent: Agent) -> PlacePercept | None:
        world = _world(agent)
        part_id = carried_part(agent)
        if world is None or part_id is None:
            return None
        navigator = agent.manager.navigator

        best: PlacePercept | None = None
        for outbound in world.outbounds:
            if not outbound.wants(part_id):
                continue
            cost = navigator.cost(agent.position, outbound.position)
            if cost is not None and (best is None or cost < best.cost):
                best = PlacePercept(outbound, part_id, cost)
        return best


# Actions and actuators


@dataclass(eq=False)
class PickAction(Action):
    rack: Rack | None = None
    part_id: int = -1


@dataclass(eq=False)
class PlaceAction(Action):
    outbound: Outbound | None = None


class PickActuator(Actuator):
    def __init__(self, interact_distance: float = INTERACT_DISTANCE) -> None:
        self.interact_distance = interact_distance

    def act(self, agent: Agent, action: Action) -> bool:
        if not isinstance(action, PickAction) or action.rack is None:
            return False
        if carried_part(agent) is not None:
            agent.add_message(f"{self}: already have a part.")
            return False
        if distance(agent.position, action.rack.position) > self.interact_distance:
            return False
        if not action.rack.pick(action.part_id):
            agent.add_message(f"{self}: {action.rack.name} is out of part {action.part_id}.")
            return False
        agent.memory["part"] = action.part_id
        return True


class PlaceActuator(Actuator):
    def __init__(self, interact_distance: float = INTERACT_DISTANCE) -> None:
        self.interact_distance = interact_distance

    def act(self, agent: Agent, action: Action) -> bool:
        if not isinstance(action, PlaceAction) or action.outbound is None:
            return False
        part_id = carried_part(agent)
        if part_id is None:
            return False
        if distance(agent.position, action.outbound.position) > self.interact_distance:
            return False
        if not action.outbound.place(part_id):
            agent.add_message(f"{self}: {action.outbound.name} no longer wants part {part_id}.")
            return False
        agent.memory["part"] = None
        agent.memory["delivered"] = agent.memory.get("delivered", 0) + 1
        return True


# States


class WarehousePickState(State):
    def enter(self, agent: Agent) -> None:
        agent.add_message("Starting to pick up.")
        agent.memory["target"] = None
        agent.stop_all_actions()

    def execute(self, agent: Agent) -> Action | None:
        if carried_part(agent) is not None:
            return None

        target: PickPercept | None = agent.memory.get("target")
        if target is not None and not target.rack.has(target.part_id):
            agent.add_message(f"{target.rack.name} ran out, looking again.")
            target = None
        if target is None:
            target = agent.sense(PickSensor)
            agent.memory["target"] = target
        if target is None:
            return None

        agent.navigate(target.rack.position)
        return PickAction(rack=target.rack, part_id=target.part_id)


class WarehousePlaceState(State):
    def enter(self, agent: Agent) -> None:
        agent.add_message("Starting to place down.")
        agent.memory["target"] = None
        agent.stop_all_actions()

    def execute(self, agent: Agent) -> Action | None:
        part_id = carried_part(agent)
        if part_id is None:
            return None

        target: PlacePercept | None = agent.memory.get("target")
        if target is not None and not target.outbound.wants(part_id):
            target = None
        if target is None:
            target = agent.sense(PlaceSensor)
            agent.memory["target"] = target
        if target is None:
            # Nothing wants this part any more; drop it so the picker is not stuck
            agent.add_message(f"Nowhere to place part {part_id}, discarding it.")
            agent.memory["part"] = None
            agent.stop_navigating()
            return None

        agent.navigate(target.outbound.position)
        return PlaceAction(outbound=target.outbound)


class WarehouseMind(State):
    """Global state: pick while empty-handed, place while carrying."""

    def execute(self, agent: Agent) -> None:
        if carried_part(agent) is not None:
            if not agent.is_in_state(WarehousePlaceState):
                agent.change_state(agent.get_state(WarehousePlaceState))
        elif not agent.is_in_state(WarehousePickState):
            agent.change_state(agent.get_state(WarehousePickState))


class WarehousePerformance(PerformanceMeasure):
    """Parts this picker has delivered."""

    def calculate_performance(self, agent: Agent) -> float:
        return float(agent.memory.get("delivered", 0))


# World construction


def _cell(col: int, row: int) -> Vec3:
    return Vec3(float(col), float(row), 0.0)


def create_world(rng: random.Random, initial_orders: int = 2) -> WarehouseWorld:
    racks = [
        Rack(name=f"Rack {part_id}", position=_cell(*cell), part_id=part_id)
        for part_id, cell in enumerate(RACK_CELLS)
    ]
    outbounds = [
        Outbound(name=f"Outbound {i}", position=_cell(*cell))
        for i, cell in enumerate(OUTBOUND_CELLS)
    ]
    world = WarehouseWorld(racks=racks, outbounds=outbounds, rng=rng)
    for _ in range(initial_orders):
        world.add_order()
    return world


def create_picker(manager: AgentManager, index: int, position: Any) -> Agent:
    return Agent(
        id=f"picker-{index + 1}",
        name=f"Picker {index + 1}",
        position=position,
        move_speed=2.0,
        initial_state=manager.states.get(WarehousePickState),
        global_state=manager.states.get(WarehouseMind),
        sensors=[PickSensor(), PlaceSensor()],
        actuators=[PickActuator(), PlaceActuator()],
        performance_measure=WarehousePerformance(),
        memory={"part": None, "target": None, "delivered": 0},
    )


def create_manager(
    config: EngineConfig | None = None,
    seed: int | None = 42,
    pickers: int = 3,
    initial_orders: int = 2,
) -> AgentManager:
    """Create the warehouse floor, its racks and stations, and the pickers.

    Args:
        config: Engine settings; defaults to the environment-driven config.
        seed: Seed for the order stream.
        pickers: Number of picker agents (at most one per start cell).
        initial_orders: Orders posted before the first tick.
    """
    rng = random.Random(seed)
    world = create_world(rng, initial_orders)
    graph = grid_graph(GRID_WIDTH, GRID_DEPTH, blocked=SHELVES)

    manager = AgentManager(config, graph=graph, world=world)
    for index, cell in enumerate(START_CELLS[:pickers]):
        manager.add_agent(create_picker(manager, index, _cell(*cell)))
    return manager
