"""Rule-based participants that play a whole game for demos and tests."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

from .models import NightActions, Phase, Player, Result, RoleId, Victim, VoteStatus, WitchAction

if TYPE_CHECKING:
    from .gm import GameMaster


@dataclass
class RuleBasedParticipant:
    """Picks plausible targets for one player from what it is shown."""

    player: Player
    rng: random.Random
    known_roles: Dict[str, RoleId] = field(default_factory=dict)

    def _others(self, alive: List[Player]) -> List[Player]:
        return [p for p in alive if p.id != self.player.id]

    def choose_werewolf_target(self, alive: List[Player]) -> Optional[str]:
        prey = [p for p in self._others(alive) if p.role != RoleId.WEREWOLF]
        if not prey:
            prey = self._others(alive)
        return self.rng.choice(prey).id if prey else None

    def choose_seer_target(self, alive: List[Player]) -> Optional[str]:
        unknown = [p for p in self._others(alive) if p.id not in self.known_roles]
        candidates = unknown or self._others(alive)
        return self.rng.choice(candidates).id if candidates else None

    def remember(self, player_id: str, role: RoleId) -> None:
        self.known_roles[player_id] = role

    def choose_witch_action(
        self,
        actions: NightActions,
        alive: List[Player],
    ) -> Tuple[WitchAction, Optional[str]]:
        attacked = actions.werewolf_target
        if attacked is not None and not self.player.has_used_life_potion:
            if attacked == self.player.id or self.rng.random() < 0.5:
                return WitchAction.SAVE, None
        if not self.player.has_used_death_potion and self.rng.random() < 0.3:
            candidates = [p for p in self._others(alive) if p.id != attacked]
            if candidates:
                return WitchAction.KILL, self.rng.choice(candidates).id
        return WitchAction.NOTHING, None

    def choose_lovers(self, alive: List[Player]) -> Optional[Tuple[str, str]]:
        if len(alive) < 2:
            return None
        first, second = self.rng.sample(alive, 2)
        return first.id, second.id

    def choose_vote(self, alive: List[Player]) -> Optional[str]:
        others = self._others(alive)
        if not others:
            return None
        if self.player.role == RoleId.WEREWOLF:
            prey = [p for p in others if p.role != RoleId.WEREWOLF]
            others = prey or others
        else:
            suspects = [p for p in others if self.known_roles.get(p.id) == RoleId.WEREWOLF]
            others = suspects or others
        return self.rng.choice(others).id


@dataclass
class RuleBasedTable:
    rng: random.Random

    def create_participant(self, player: Player) -> RuleBasedParticipant:
        return RuleBasedParticipant(player=player, rng=self.rng)


class AutoplayDirector:
    """Moderator loop driving a game master with rule-based participants."""

    def __init__(
        self,
        gm: "GameMaster",
        table: RuleBasedTable,
        announce: Callable[[str], None] = print,
        max_rounds: int = 20,
    ) -> None:
        self.gm = gm
        self.table = table
        self.announce = announce
        self.max_rounds = max_rounds
        self.participants: Dict[str, RuleBasedParticipant] = {
            p.id: table.create_participant(p) for p in gm.record.participants
        }

    def _participant(self, player: Player) -> RuleBasedParticipant:
        participant = self.participants.get(player.id)
        if participant is None:
            participant = self.participants[player.id] = self.table.create_participant(player)
        participant.player = player
        return participant

    def _finished(self) -> bool:
        if self.gm.record.result is not None:
            return True
        result = self.gm.check_victory()
        if result is None:
            return False
        self.gm.declare_winner(result)
        self.announce(f"GM: {result.message}")
        return True

    def _announce_deaths(self, victims: List[Victim], quiet: str) -> None:
        if not victims:
            self.announce(quiet)
            return
        for victim in victims:
            role = self.gm.player(victim.player_id).role
            role_name = role.value if role else "unknown"
            self.announce(f"GM: {victim.name} ({role_name}) was {victim.cause_text}.")

    # ---------------------------------------------------------------- phases --
    def _play_phase(self, phase: Phase) -> None:
        alive = self.gm.alive_players()
        if phase == Phase.NIGHT_CUPID:
            for cupid in self.gm.players_with_role(RoleId.CUPID):
                lovers = self._participant(cupid).choose_lovers(alive)
                if lovers:
                    self.gm.record_cupid_lovers(cupid.id, *lovers)
                    break
        elif phase == Phase.NIGHT_WEREWOLVES:
            for wolf in self.gm.players_with_role(RoleId.WEREWOLF):
                target = self._participant(wolf).choose_werewolf_target(alive)
                if target:
                    self.gm.record_werewolf_target(wolf.id, target)
        elif phase == Phase.NIGHT_SEER:
            for seer in self.gm.players_with_role(RoleId.SEER):
                target = self._participant(seer).choose_seer_target(alive)
                if target:
                    role = self.gm.record_seer_target(seer.id, target)
                    self._participant(seer).remember(target, role)
        elif phase == Phase.NIGHT_WITCH:
            for witch in self.gm.players_with_role(RoleId.WITCH):
                action, target = self._participant(witch).choose_witch_action(
                    self.gm.current_actions(), alive
                )
                self.gm.record_witch_action(witch.id, action, target)
        elif phase == Phase.DAY_VOTE:
            self._vote(alive)

    def _vote(self, alive: List[Player]) -> None:
        for voter in alive:
            target = self._participant(voter).choose_vote(alive)
            if target:
                self.gm.record_vote(voter.id, target)
        outcome = self.gm.resolve_vote()
        if outcome.status == VoteStatus.TIE:
            pick = self.table.rng.choice(outcome.tied)
            self.announce(f"GM: tie between {len(outcome.tied)} players, the moderator decides.")
            outcome = self.gm.resolve_vote(tie_break=pick)
        if outcome.decided:
            self._announce_deaths(outcome.victims, "")
        else:
            self.announce("GM: nobody voted, nobody leaves the village.")

    def run(self) -> Optional[Result]:
        self.announce("GM: the game begins, good luck everyone!")
        rounds = 0
        while not self._finished() and rounds <= self.max_rounds:
            change = self.gm.advance_phase()
            if change.current == Phase.NIGHT_START:
                rounds += 1
                self.announce(f"GM: night {change.night_count} falls on the village.")
            elif change.current == Phase.DAY_ANNOUNCEMENT:
                self._announce_deaths(change.victims, "GM: a peaceful night, nobody died.")
                continue
            self._play_phase(change.current)
        return self.gm.record.result
