"""The West World corpus: Miner Bob and his wife Elsa.

Bob cycles between the gold mine, the bank, the saloon and home purely
through state changes. Elsa keeps house, with a global state that sends her
to the bathroom now and then (reverting to what she was doing afterwards)
and that answers Bob's "Hi honey, I'm home" by cooking stew. When the stew
is done she tells Bob, who stops sleeping to eat it. Nobody moves on a
graph here; locations are just labels.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum, StrEnum

from senseact.components import State
from senseact.config import EngineConfig
from senseact.engine import AgentManager
from senseact.model import AIEvent, Agent

MINER_ID = "bob"
HOUSEKEEPER_ID = "elsa"

COOK_TIME = 0.05
BATHROOM_CHANCE = 0.1


class WestWorldMessage(Enum):
    HI_HONEY_IM_HOME = "hi_honey_im_home"
    STEW_READY = "stew_ready"


class Location(StrEnum):
    UNDEFINED = "undefined"
    GOLD_MINE = "gold_mine"
    BANK = "bank"
    SALOON = "saloon"
    HOME = "home"


@dataclass
class MinerStats:
    """Everything Bob keeps track of; stored in the miner's memory."""

    location: Location = Location.UNDEFINED
    gold_carried: int = 0
    money_in_bank: int = 0
    thirst: int = 0
    fatigue: int = 0
    max_gold_carried: int = 2
    max_thirst: int = 5
    max_fatigue: int = 4

    @property
    def pockets_full(self) -> bool:
        return self.gold_carried >= self.max_gold_carried

    @property
    def thirsty(self) -> bool:
        return self.thirst >= self.max_thirst

    @property
    def tired(self) -> bool:
        return self.fatigue >= self.max_fatigue

    @property
    def rested(self) -> bool:
        return self.fatigue <= 0


def miner_stats(agent: Agent) -> MinerStats:
    return agent.memory.setdefault("miner", MinerStats())


def _rng(agent: Agent) -> random.Random:
    return agent.memory.setdefault("rng", random.Random())


def _move_to(agent: Agent, location: Location, message: str) -> bool:
    """Change location; False if the miner was already there."""
    stats = miner_stats(agent)
    if stats.location == location:
        return False
    stats.location = location
    agent.add_message(message)
    return True


# Miner states


class MinerGlobalState(State):
    """Bob gets a little thirstier every tick."""

    def execute(self, agent: Agent) -> None:
        stats = miner_stats(agent)
        stats.thirst = min(stats.max_thirst, stats.thirst + 1)


class EnterMineAndDigForNugget(State):
    def enter(self, agent: Agent) -> None:
        _move_to(agent, Location.GOLD_MINE, "Walkin' to the gold mine.")

    def execute(self, agent: Agent) -> None:
        stats = miner_stats(agent)
        stats.fatigue = min(stats.max_fatigue, stats.fatigue + 1)
        stats.gold_carried = min(stats.max_gold_carried, stats.gold_carried + 1)
        agent.add_message("Pickin' up a nugget.")

        if stats.pockets_full:
            agent.change_state(agent.get_state(VisitBankAndDepositGold))
        elif stats.thirsty:
            agent.change_state(agent.get_state(QuenchThirst))

    def exit(self, agent: Agent) -> None:
        agent.add_message("Ah'm leavin' the gold mine with mah pockets full o' sweet gold.")


class VisitBankAndDepositGold(State):
    def enter(self, agent: Agent) -> None:
        _move_to(agent, Location.BANK, "Goin' to the bank. Yes siree.")

    def execute(self, agent: Agent) -> None:
        stats = miner_stats(agent)
        stats.money_in_bank += stats.gold_carried
        stats.gold_carried = 0
        agent.add_message(f"Depositin' gold. Total savings now: {stats.money_in_bank}")

        if not stats.tired:
            agent.change_state(agent.get_state(EnterMineAndDigForNugget))
            return
        agent.add_message("Woohoo! Rich enough for now. Back home to mah li'l lady.")
        agent.change_state(agent.get_state(GoHomeAndSleepTillRested))

    def exit(self, agent: Agent) -> None:
        agent.add_message("Leavin' the bank.")


class GoHomeAndSleepTillRested(State):
    def enter(self, agent: Agent) -> None:
        if _move_to(agent, Location.HOME, "Walkin' home."):
            agent.broadcast_event(WestWorldMessage.HI_HONEY_IM_HOME)

    def execute(self, agent: Agent) -> None:
        stats = miner_stats(agent)
        stats.fatigue = max(0, stats.fatigue - 1)
        agent.add_message("ZZZZ...")
        if stats.rested:
            agent.change_state(agent.get_state(EnterMineAndDigForNugget))

    def exit(self, agent: Agent) -> None:
        agent.add_message("What a God-darn fantastic nap! Time to find more gold.")

    def handle_event(self, agent: Agent, event: AIEvent) -> bool:
        if event.event_id is not WestWorldMessage.STEW_READY:
            return False
        agent.change_state(agent.get_state(EatStew))
        return True


class QuenchThirst(State):
    def enter(self, agent: Agent) -> None:
        _move_to(agent, Location.SALOON, "Boy, ah sure is thusty! Walkin' to the saloon.")

    def execute(self, agent: Agent) -> None:
        miner_stats(agent).thirst = 0
        agent.add_message("That's mighty fine sippin' liquor.")
        agent.change_state(agent.get_state(EnterMineAndDigForNugget))

    def exit(self, agent: Agent) -> None:
        agent.add_message("Leavin' the saloon, feelin' good.")


class EatStew(State):
    def enter(self, agent: Agent) -> None:
        agent.add_message("Smells reaaal goood, Elsa!")

    def execute(self, agent: Agent) -> None:
        agent.add_message("Tastes real good too!")
        agent.change_state(agent.get_state(GoHomeAndSleepTillRested))

    def exit(self, agent: Agent) -> None:
        agent.add_message("Thank ya li'l lady. Ah better get back to whatever ah wuz doin'.")


# Housekeeper states


class ElsaMind(State):
    """Global state: bathroom breaks and answering Bob."""

    def execute(self, agent: Agent) -> None:
        if agent.is_in_state(CookStew) or agent.is_in_state(VisitBathroom):
            return
        if _rng(agent).random() < BATHROOM_CHANCE:
            agent.change_state(agent.get_state(VisitBathroom))

    def handle_event(self, agent: Agent, event: AIEvent) -> bool:
        if event.event_id is not WestWorldMessage.HI_HONEY_IM_HOME:
            return False
        agent.add_message("Hi honey. Let me make you some of mah fine country stew.")
        agent.change_state(agent.get_state(CookStew))
        return True


class DoHousework(State):
    def execute(self, agent: Agent) -> None:
        chore = _rng(agent).randrange(3)
        if chore == 2:
            agent.add_message("Makin' the bed.")
        elif chore == 1:
            agent.add_message("Moppin' the floor.")


class VisitBathroom(State):
    def enter(self, agent: Agent) -> None:
        agent.add_message("Walkin' to the can. Need to powda mah pretty li'l nose.")

    def execute(self, agent: Agent) -> None:
        agent.add_message("Ahhhhhh! Sweet relief!")
        if not agent.revert_state():
            agent.change_state(agent.get_state(DoHousework))

    def exit(self, agent: Agent) -> None:
        agent.add_message("Leavin' the john.")


class CookStew(State):
    """The stew is ready when the housekeeper's "stew" timer runs out."""

    def enter(self, agent: Agent) -> None:
        agent.add_message("Puttin' the stew in the oven.")
        agent.timer("stew", COOK_TIME).start()

    def execute(self, agent: Agent) -> None:
        if not agent.timer("stew").expired:
            agent.add_message("Fussin' over food.")
            return
        agent.change_state(agent.get_state(DoHousework))

    def exit(self, agent: Agent) -> None:
        agent.timer("stew").cancel()
        agent.add_message("Stew ready! Let's eat.")
        agent.broadcast_event(WestWorldMessage.STEW_READY)
        agent.add_message("Puttin' the stew on the table.")


# World construction


def create_miner(manager: AgentManager) -> Agent:
    return Agent(
        id=MINER_ID,
        name="Miner Bob",
        initial_state=manager.states.get(EnterMineAndDigForNugget),
        global_state=manager.states.get(MinerGlobalState),
        memory={"miner": MinerStats()},
    )


def create_housekeeper(manager: AgentManager, seed: int | None) -> Agent:
    return Agent(
        id=HOUSEKEEPER_ID,
        name="Elsa",
        initial_state=manager.states.get(DoHousework),
        global_state=manager.states.get(ElsaMind),
        memory={"rng": random.Random(seed)},
    )


def create_manager(config: EngineConfig | None = None, seed: int | None = 42) -> AgentManager:
    """Create Bob and Elsa. There is no navigation graph in this world."""
    manager = AgentManager(config)
    manager.add_agent(create_miner(manager))
    manager.add_agent(create_housekeeper(manager, seed))
    return manager
