import pytest

from werewolf.errors import PreconditionError, UnknownRoleError
from werewolf.models import Phase, Player, RoleId, Team
from werewolf.roles import (
    DEFAULT_DISTRIBUTIONS,
    ROLE_CATALOG,
    default_role_distribution,
    get_role,
    present_roles,
    roles_by_team,
    team_of,
    to_role_id,
)


def test_catalog_covers_every_role():
    assert set(ROLE_CATALOG) == set(RoleId)
    assert get_role("werewolf").team == Team.WEREWOLVES
    assert [role.id for role in roles_by_team(Team.WEREWOLVES)] == [RoleId.WEREWOLF]


def test_night_roles_point_at_their_phase():
    assert get_role(RoleId.CUPID).action_phase == Phase.NIGHT_CUPID
    assert get_role(RoleId.WITCH).one_time_use
    assert get_role(RoleId.VILLAGER).action_phase is None


@pytest.mark.parametrize("count", sorted(DEFAULT_DISTRIBUTIONS))
def test_default_distribution_fills_the_table(count):
    config = default_role_distribution(count)
    assert sum(config.values()) == count
    assert config[RoleId.WEREWOLF] >= 1


def test_default_distribution_edges():
    assert default_role_distribution(3) is None
    assert default_role_distribution(20) == DEFAULT_DISTRIBUTIONS[15]
    # callers may edit the result freely
    default_role_distribution(8)[RoleId.WEREWOLF] = 99
    assert DEFAULT_DISTRIBUTIONS[8][RoleId.WEREWOLF] == 2


def test_unknown_role_is_rejected():
    with pytest.raises(UnknownRoleError) as excinfo:
        to_role_id("vampire")
    assert isinstance(excinfo.value, PreconditionError)
    assert "vampire" in str(excinfo.value)
    assert team_of(None) is None


def test_present_roles_ignores_dead_and_moderator():
    players = [
        Player(id="a", name="A", role=RoleId.SEER),
        Player(id="b", name="B", role=RoleId.WITCH, is_alive=False),
        Player(id="m", name="M", role=RoleId.CUPID, is_moderator=True),
        Player(id="c", name="C"),
    ]
    assert present_roles(players) == {RoleId.SEER}
