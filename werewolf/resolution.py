"""Night and vote resolution plus the win evaluator.

Everything here is pure with respect to its inputs except ``apply_victims``,
which mutates the player records it is handed.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import PreconditionError
from .models import (
    DEATH_CAUSE_TEXT,
    DeathReason,
    LoversPair,
    NightActions,
    Player,
    Result,
    Team,
    Victim,
    VoteOutcome,
    VoteStatus,
)
from .roles import team_of


VILLAGE_WIN_MESSAGE = "The village wins! Every werewolf has been eliminated."
WEREWOLF_WIN_MESSAGE = "The werewolves win! They now outnumber the village."


def _victim(player: Player, cause: DeathReason) -> Victim:
    return Victim(
        player_id=player.id,
        name=player.name,
        cause=cause,
        cause_text=DEATH_CAUSE_TEXT[cause],
    )


def collect_deaths(
    primaries: Sequence[Tuple[str, DeathReason]],
    players: Mapping[str, Player],
    lovers: Optional[LoversPair],
) -> List[Victim]:
    """Turn primary deaths into the full victim list, lovers included.

    Primaries that are unknown, dead or already listed are dropped (first
    cause wins). Each remaining primary may pull its lover in once as a
    heartbreak victim; heartbreak victims never chain further.
    """
    victims: List[Victim] = []
    seen = set()
    for player_id, cause in primaries:
        player = players.get(player_id)
        if player is None or not player.in_play or player_id in seen:
            continue
        victims.append(_victim(player, cause))
        seen.add(player_id)

    if lovers is None:
        return victims
    for victim in list(victims):
        partner_id = lovers.partner_of(victim.player_id)
        if partner_id is None or partner_id in seen:
            continue
        partner = players.get(partner_id)
        if partner is None or not partner.in_play:
            continue
        victims.append(_victim(partner, DeathReason.HEARTBREAK))
        seen.add(partner_id)
    return victims


def apply_victims(players: Mapping[str, Player], victims: Iterable[Victim], night: int) -> List[Victim]:
    """Mark victims dead; already-dead players are left as they are."""
    applied: List[Victim] = []
    for victim in victims:
        player = players.get(victim.player_id)
        if player is None or not player.is_alive:
            continue
        player.is_alive = False
        player.death_reason = victim.cause
        player.death_night = night
        applied.append(victim)
    return applied


def resolve_night(
    actions: Optional[NightActions],
    players: Mapping[str, Player],
    lovers: Optional[LoversPair],
) -> List[Victim]:
    """Compute who dies from the night's recorded actions."""
    if actions is None:
        return []
    primaries: List[Tuple[str, DeathReason]] = []
    if actions.werewolf_target and not actions.witch_saved:
        primaries.append((actions.werewolf_target, DeathReason.DEVOURED))
    if actions.witch_kill_target:
        primaries.append((actions.witch_kill_target, DeathReason.POISONED))
    return collect_deaths(primaries, players, lovers)


def tally_votes(votes: Mapping[str, str], players: Mapping[str, Player]) -> Dict[str, int]:
    """Count ballots cast by living players onto living players."""
    counter: Counter = Counter()
    for voter_id, target_id in votes.items():
        voter = players.get(voter_id)
        target = players.get(target_id)
        if voter is None or target is None or not voter.in_play or not target.in_play:
            continue
        counter[target_id] += 1
    return dict(counter)


def resolve_vote(
    votes: Mapping[str, str],
    players: Mapping[str, Player],
    lovers: Optional[LoversPair],
    tie_break: Optional[str] = None,
) -> VoteOutcome:
    """Decide the elimination of a vote round without applying it."""
    tally = tally_votes(votes, players)
    if not tally:
        return VoteOutcome(status=VoteStatus.NO_VOTES)

    max_votes = max(tally.values())
    tied = [target for target, count in tally.items() if count == max_votes]
    if tie_break is not None and tie_break not in tied:
        raise PreconditionError(f"tie-break {tie_break!r} is not among the leaders {tied}")

    if len(tied) == 1:
        eliminated = tied[0]
    elif tie_break is None:
        return VoteOutcome(status=VoteStatus.TIE, tally=tally, max_votes=max_votes, tied=tied)
    else:
        eliminated = tie_break

    victims = collect_deaths([(eliminated, DeathReason.VOTED)], players, lovers)
    return VoteOutcome(
        status=VoteStatus.ELIMINATED,
        tally=tally,
        max_votes=max_votes,
        tied=tied,
        eliminated=eliminated,
        victims=victims,
    )


def count_alive_by_team(players: Iterable[Player]) -> Dict[Team, int]:
    counts = {Team.VILLAGE: 0, Team.WEREWOLVES: 0}
    for player in players:
        if not player.in_play:
            continue
        team = team_of(player.role)
        if team is not None:
            counts[team] += 1
    return counts


def evaluate_winner(players: Iterable[Player]) -> Optional[Result]:
    """Return the result if one side has won, otherwise None."""
    counts = count_alive_by_team(players)
    wolves = counts[Team.WEREWOLVES]
    villagers = counts[Team.VILLAGE]
    if wolves == 0:
        return Result(winner=Team.VILLAGE, message=VILLAGE_WIN_MESSAGE)
    if wolves >= villagers:
        return Result(winner=Team.WEREWOLVES, message=WEREWOLF_WIN_MESSAGE)
    return None
