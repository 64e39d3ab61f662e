"""Role configuration validation and random role assignment."""

from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Union

from .errors import PreconditionError
from .models import Player, RoleId
from .roles import to_role_id

logger = logging.getLogger(__name__)

MIN_PLAYERS = 3


def normalise_role_config(config: Mapping[Union[RoleId, str], int]) -> Dict[RoleId, int]:
    if not isinstance(config, Mapping):
        raise PreconditionError(f"role configuration must map roles to counts, got {type(config).__name__}")
    normalised: Dict[RoleId, int] = {}
    for key, count in config.items():
        role_id = to_role_id(key)
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise PreconditionError(f"invalid count for {role_id.value}: {count!r}")
        normalised[role_id] = normalised.get(role_id, 0) + count
    return normalised


def validate_role_configuration(
    config: Mapping[Union[RoleId, str], int],
    player_count: int,
) -> Dict[RoleId, int]:
    """Return the normalised configuration or raise ``PreconditionError``."""
    normalised = normalise_role_config(config)
    if player_count < MIN_PLAYERS:
        raise PreconditionError(f"at least {MIN_PLAYERS} players are needed, got {player_count}")
    total = sum(normalised.values())
    if total != player_count:
        raise PreconditionError(
            f"role count mismatch: configuration holds {total} roles for {player_count} players"
        )
    return normalised


def expand_role_config(config: Mapping[RoleId, int]) -> List[RoleId]:
    roles: List[RoleId] = []
    for role_id, count in config.items():
        roles.extend([role_id] * count)
    return roles


def assign_roles(
    players: List[Player],
    config: Mapping[Union[RoleId, str], int],
    rng: Optional[random.Random] = None,
) -> List[Player]:
    """Deal one shuffled role per player.

    The input players are left untouched; updated copies are returned in the
    same order so the caller can commit them all at once.
    """
    rng = rng or random.Random()
    moderators = [p.id for p in players if p.is_moderator]
    if moderators:
        raise PreconditionError(f"moderators cannot receive a role: {moderators}")
    normalised = validate_role_configuration(config, len(players))

    deck = expand_role_config(normalised)
    rng.shuffle(deck)

    assigned: List[Player] = []
    for player, role_id in zip(players, deck):
        updated = replace(
            player,
            role=role_id,
            is_alive=True,
            death_reason=None,
            death_night=None,
        )
        if role_id == RoleId.WITCH:
            updated.has_used_life_potion = False
            updated.has_used_death_potion = False
        assigned.append(updated)
    logger.debug("Roles dealt | players=%s deck=%s", len(assigned), [r.value for r in deck])
    return assigned
