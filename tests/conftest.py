import random
from typing import Dict, List

import pytest

from werewolf.config import Settings
from werewolf.gm import GameMaster
from werewolf.models import Phase, Player, RoleId
from werewolf.store import SharedStateStore

NAMES = ["Alice", "Bastien", "Chloe", "Damien", "Elise", "Fabien", "Gaelle", "Hugo"]

CLASSIC = {"werewolf": 1, "seer": 1, "witch": 1, "villager": 3}
WITH_CUPID = {"werewolf": 1, "cupid": 1, "villager": 4}


def make_players(*roles: RoleId) -> Dict[str, Player]:
    """Players p0..pn holding ``roles`` in order."""
    return {
        f"p{i}": Player(id=f"p{i}", name=f"P{i}", role=role)
        for i, role in enumerate(roles)
    }


def advance_to(gm: GameMaster, phase: Phase, night: int = None, limit: int = 30) -> None:
    for _ in range(limit):
        if gm.phase == phase and (night is None or gm.night_count == night):
            return
        gm.advance_phase()
    raise AssertionError(f"never reached {phase.value}")


def holder(gm: GameMaster, role: RoleId) -> Player:
    return gm.players_with_role(role)[0]


def villagers(gm: GameMaster) -> List[Player]:
    return gm.players_with_role(RoleId.VILLAGER)


@pytest.fixture
def store():
    return SharedStateStore()


@pytest.fixture
def settings():
    return Settings(timer_seconds=60)


@pytest.fixture
def lobby(store, settings):
    gm = GameMaster.create(store, "Moderator", settings=settings, rng=random.Random(7))
    for name in NAMES[:6]:
        gm.join(name)
    return gm


@pytest.fixture
def classic(lobby):
    lobby.assign_roles(CLASSIC)
    return lobby


@pytest.fixture
def cupid_game(lobby):
    lobby.assign_roles(WITH_CUPID)
    return lobby
