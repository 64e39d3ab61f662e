"""Role catalog and default distributions."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set, Union

from .errors import UnknownRoleError
from .models import Phase, Player, Role, RoleId, Team


ROLE_CATALOG: Dict[RoleId, Role] = {
    RoleId.WEREWOLF: Role(
        id=RoleId.WEREWOLF,
        name="Werewolf",
        team=Team.WEREWOLVES,
        description="Every night you wake up with the other werewolves to pick a victim.",
        power="Choose a victim each night",
        wake_order=1,
        action_phase=Phase.NIGHT_WEREWOLVES,
    ),
    RoleId.VILLAGER: Role(
        id=RoleId.VILLAGER,
        name="Villager",
        team=Team.VILLAGE,
        description="A plain villager. Your strength is the vote and deduction.",
        power="No special power",
    ),
    RoleId.SEER: Role(
        id=RoleId.SEER,
        name="Seer",
        team=Team.VILLAGE,
        description="Every night you may look at the role of one player.",
        power="See one player's role each night",
        wake_order=2,
        action_phase=Phase.NIGHT_SEER,
    ),
    RoleId.WITCH: Role(
        id=RoleId.WITCH,
        name="Witch",
        team=Team.VILLAGE,
        description=(
            "You own a life potion that saves the werewolves' victim and a death "
            "potion that kills anyone. Each potion can be used once per game."
        ),
        power="One life potion and one death potion",
        wake_order=3,
        action_phase=Phase.NIGHT_WITCH,
        one_time_use=True,
    ),
    RoleId.HUNTER: Role(
        id=RoleId.HUNTER,
        name="Hunter",
        team=Team.VILLAGE,
        description="When you die, day or night, you immediately take another player with you.",
        power="Shoot someone when dying",
    ),
    RoleId.CUPID: Role(
        id=RoleId.CUPID,
        name="Cupid",
        team=Team.VILLAGE,
        description=(
            "On the first night you bind two players as lovers. If one dies, the "
            "other dies of a broken heart."
        ),
        power="Create a pair of lovers (first night only)",
        wake_order=0,
        action_phase=Phase.NIGHT_CUPID,
        one_time_use=True,
    ),
    RoleId.LITTLE_GIRL: Role(
        id=RoleId.LITTLE_GIRL,
        name="Little Girl",
        team=Team.VILLAGE,
        description="You may spy on the werewolves during their turn. If caught, you die.",
        power="Spy on the werewolves",
    ),
}

MIN_DISTRIBUTION_PLAYERS = 4

_W, _V, _S, _T, _H, _C, _L = (
    RoleId.WEREWOLF,
    RoleId.VILLAGER,
    RoleId.SEER,
    RoleId.WITCH,
    RoleId.HUNTER,
    RoleId.CUPID,
    RoleId.LITTLE_GIRL,
)

DEFAULT_DISTRIBUTIONS: Dict[int, Dict[RoleId, int]] = {
    4: {_W: 1, _S: 1, _V: 2},
    5: {_W: 1, _S: 1, _V: 3},
    6: {_W: 1, _S: 1, _H: 1, _V: 3},
    7: {_W: 2, _S: 1, _H: 1, _V: 3},
    8: {_W: 2, _S: 1, _T: 1, _H: 1, _V: 3},
    9: {_W: 2, _S: 1, _T: 1, _H: 1, _V: 4},
    10: {_W: 2, _S: 1, _T: 1, _H: 1, _C: 1, _V: 4},
    11: {_W: 2, _S: 1, _T: 1, _H: 1, _C: 1, _V: 5},
    12: {_W: 3, _S: 1, _T: 1, _H: 1, _C: 1, _V: 5},
    13: {_W: 3, _S: 1, _T: 1, _H: 1, _C: 1, _L: 1, _V: 5},
    14: {_W: 3, _S: 1, _T: 1, _H: 1, _C: 1, _L: 1, _V: 6},
    15: {_W: 3, _S: 1, _T: 1, _H: 1, _C: 1, _L: 1, _V: 7},
}


def to_role_id(value: Union[RoleId, str]) -> RoleId:
    if isinstance(value, RoleId):
        return value
    try:
        return RoleId(value)
    except ValueError:
        raise UnknownRoleError(value) from None


def get_role(value: Union[RoleId, str]) -> Role:
    return ROLE_CATALOG[to_role_id(value)]


def team_of(role_id: Optional[RoleId]) -> Optional[Team]:
    if role_id is None:
        return None
    return ROLE_CATALOG[role_id].team


def roles_by_team(team: Team) -> List[Role]:
    return [role for role in ROLE_CATALOG.values() if role.team == team]


def default_role_distribution(player_count: int) -> Optional[Dict[RoleId, int]]:
    """Balanced configuration for ``player_count`` players, or None below the minimum."""
    if player_count < MIN_DISTRIBUTION_PLAYERS:
        return None
    largest = max(DEFAULT_DISTRIBUTIONS)
    return dict(DEFAULT_DISTRIBUTIONS.get(player_count, DEFAULT_DISTRIBUTIONS[largest]))


def present_roles(players: Iterable[Player]) -> Set[RoleId]:
    """Roles held by living non-moderator players."""
    return {p.role for p in players if p.in_play and p.role is not None}
