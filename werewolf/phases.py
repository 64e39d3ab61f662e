"""Phase table and skip rules of the day/night cycle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Dict, List, Mapping, Optional

from .errors import PreconditionError, StuckPhaseError
from .models import Phase, RoleId


DEFAULT_MAX_HOPS = 10


@dataclass(frozen=True)
class PhaseInfo:
    name: str
    description: str
    next: Optional[Phase]
    optional: bool = False


PHASE_TABLE: Dict[Phase, PhaseInfo] = {
    Phase.LOBBY: PhaseInfo("Lobby", "Players are joining the game.", None),
    Phase.ROLE_REVEAL: PhaseInfo(
        "Role reveal", "Players discover their secret role.", Phase.NIGHT_START
    ),
    Phase.NIGHT_START: PhaseInfo(
        "Nightfall", "The village falls asleep.", Phase.NIGHT_CUPID
    ),
    Phase.NIGHT_CUPID: PhaseInfo(
        "Cupid's turn", "Cupid binds two lovers.", Phase.NIGHT_WEREWOLVES, optional=True
    ),
    Phase.NIGHT_WEREWOLVES: PhaseInfo(
        "Werewolves' turn", "The werewolves pick a victim.", Phase.NIGHT_SEER
    ),
    Phase.NIGHT_SEER: PhaseInfo(
        "Seer's turn", "The seer looks at one player's role.", Phase.NIGHT_WITCH, optional=True
    ),
    Phase.NIGHT_WITCH: PhaseInfo(
        "Witch's turn", "The witch may save or poison.", Phase.DAY_ANNOUNCEMENT, optional=True
    ),
    Phase.DAY_ANNOUNCEMENT: PhaseInfo(
        "Daybreak", "The village wakes up and discovers the night's victims.", Phase.DAY_DISCUSSION
    ),
    Phase.DAY_DISCUSSION: PhaseInfo(
        "Discussion", "The villagers debate.", Phase.DAY_VOTE
    ),
    Phase.DAY_VOTE: PhaseInfo(
        "Village vote", "The village votes to eliminate a suspect.", Phase.VOTE_RESULT
    ),
    Phase.VOTE_RESULT: PhaseInfo(
        "Vote result", "The most voted player is eliminated.", Phase.NIGHT_START
    ),
    Phase.FINISHED: PhaseInfo("Game over", "The game is over.", None),
}

# phase -> role that must be present and alive for the phase to be played
_ROLE_GATED: Dict[Phase, RoleId] = {
    Phase.NIGHT_CUPID: RoleId.CUPID,
    Phase.NIGHT_SEER: RoleId.SEER,
    Phase.NIGHT_WITCH: RoleId.WITCH,
}


def should_skip_phase(
    phase: Phase,
    present_roles: Collection[RoleId],
    night_count: int,
    table: Mapping[Phase, PhaseInfo] = PHASE_TABLE,
) -> bool:
    """True when ``phase`` is optional and has nobody to play it."""
    info = table.get(phase)
    gate = _ROLE_GATED.get(phase)
    if info is None or not info.optional or gate is None:
        return False
    if gate not in present_roles:
        return True
    if phase == Phase.NIGHT_CUPID:
        return night_count != 0
    return False


def next_valid_phase(
    current: Phase,
    present_roles: Collection[RoleId],
    night_count: int,
    table: Mapping[Phase, PhaseInfo] = PHASE_TABLE,
    max_hops: int = DEFAULT_MAX_HOPS,
) -> Phase:
    """Walk the successor chain of ``current`` until a playable phase is found."""
    info = table.get(current)
    if info is None or info.next is None:
        raise PreconditionError(f"phase {current.value} has no successor")
    candidate = info.next
    hops = 1
    while should_skip_phase(candidate, present_roles, night_count, table):
        if hops >= max_hops:
            raise StuckPhaseError(current.value, candidate.value, hops)
        following = table.get(candidate)
        if following is None or following.next is None:
            raise StuckPhaseError(current.value, candidate.value, hops)
        candidate = following.next
        hops += 1
    return candidate


def valid_phases(
    present_roles: Collection[RoleId],
    night_count: int,
    table: Mapping[Phase, PhaseInfo] = PHASE_TABLE,
) -> List[Phase]:
    """Phases the moderator may currently pick from."""
    return [phase for phase in table if not should_skip_phase(phase, present_roles, night_count, table)]
