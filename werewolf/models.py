"""Core data model definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class Team(str, Enum):
    """Coarse alignment used by the win evaluator."""

    VILLAGE = "village"
    WEREWOLVES = "werewolves"


class RoleId(str, Enum):
    """Closed set of roles a player can hold."""

    WEREWOLF = "werewolf"
    VILLAGER = "villager"
    SEER = "seer"
    WITCH = "witch"
    HUNTER = "hunter"
    CUPID = "cupid"
    LITTLE_GIRL = "little_girl"


class Phase(str, Enum):
    """Steps of the day/night cycle."""

    LOBBY = "lobby"
    ROLE_REVEAL = "role_reveal"
    NIGHT_START = "night_start"
    NIGHT_CUPID = "night_cupid"
    NIGHT_WEREWOLVES = "night_werewolves"
    NIGHT_SEER = "night_seer"
    NIGHT_WITCH = "night_witch"
    DAY_ANNOUNCEMENT = "day_announcement"
    DAY_DISCUSSION = "day_discussion"
    DAY_VOTE = "day_vote"
    VOTE_RESULT = "vote_result"
    FINISHED = "finished"


class DeathReason(str, Enum):
    DEVOURED = "devoured"
    POISONED = "poisoned"
    HEARTBREAK = "heartbreak"
    VOTED = "voted"
    HUNTER = "hunter"
    ELIMINATED = "eliminated"


DEATH_CAUSE_TEXT: Dict[DeathReason, str] = {
    DeathReason.DEVOURED: "devoured by the werewolves",
    DeathReason.POISONED: "poisoned by the witch",
    DeathReason.HEARTBREAK: "died of a broken heart",
    DeathReason.VOTED: "eliminated by the village vote",
    DeathReason.HUNTER: "shot by the hunter",
    DeathReason.ELIMINATED: "eliminated by the moderator",
}


class GameStatus(str, Enum):
    LOBBY = "lobby"
    ROLES_DISTRIBUTED = "roles_distributed"
    PLAYING = "playing"
    FINISHED = "finished"


class WitchAction(str, Enum):
    SAVE = "save"
    KILL = "kill"
    NOTHING = "nothing"


class VoteStatus(str, Enum):
    ELIMINATED = "eliminated"
    TIE = "tie"
    NO_VOTES = "no_votes"


@dataclass(frozen=True)
class Role:
    """Immutable catalog entry."""

    id: RoleId
    name: str
    team: Team
    description: str
    power: str
    wake_order: Optional[int] = None
    action_phase: Optional[Phase] = None
    one_time_use: bool = False


@dataclass(slots=True)
class Player:
    """Runtime player record."""

    id: str
    name: str
    role: Optional[RoleId] = None
    bonus_role: Optional[RoleId] = None
    is_alive: bool = True
    death_reason: Optional[DeathReason] = None
    death_night: Optional[int] = None
    is_moderator: bool = False
    has_used_life_potion: bool = False
    has_used_death_potion: bool = False

    def holds(self, role_id: RoleId) -> bool:
        return not self.is_moderator and self.role == role_id

    @property
    def in_play(self) -> bool:
        """Alive and not the moderator."""
        return self.is_alive and not self.is_moderator

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "role": self.role.value if self.role else None,
            "bonus_role": self.bonus_role.value if self.bonus_role else None,
            "is_alive": self.is_alive,
            "death_reason": self.death_reason.value if self.death_reason else None,
            "death_night": self.death_night,
            "is_moderator": self.is_moderator,
            "has_used_life_potion": self.has_used_life_potion,
            "has_used_death_potion": self.has_used_death_potion,
        }


@dataclass(slots=True)
class GameState:
    """Phase/counter record plus presentation-owned timer fields."""

    current_phase: Phase = Phase.LOBBY
    night_count: int = 0
    is_paused: bool = False
    timer: Optional[int] = None
    timer_duration: Optional[int] = None
    timer_running: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "current_phase": self.current_phase.value,
            "night_count": self.night_count,
            "is_paused": self.is_paused,
            "timer": self.timer,
            "timer_duration": self.timer_duration,
            "timer_running": self.timer_running,
        }


@dataclass(slots=True)
class NightActions:
    """Actions recorded during a single night."""

    werewolf_target: Optional[str] = None
    seer_target: Optional[str] = None
    witch_action: Optional[WitchAction] = None
    witch_saved: bool = False
    witch_kill_target: Optional[str] = None
    cupid_lover1: Optional[str] = None
    cupid_lover2: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "werewolf_target": self.werewolf_target,
            "seer_target": self.seer_target,
            "witch_action": self.witch_action.value if self.witch_action else None,
            "witch_saved": self.witch_saved,
            "witch_kill_target": self.witch_kill_target,
            "cupid_lover1": self.cupid_lover1,
            "cupid_lover2": self.cupid_lover2,
        }


@dataclass(frozen=True)
class LoversPair:
    player1: str
    player2: str

    def partner_of(self, player_id: str) -> Optional[str]:
        if player_id == self.player1:
            return self.player2
        if player_id == self.player2:
            return self.player1
        return None


@dataclass(frozen=True)
class Result:
    """Terminal game outcome."""

    winner: Team
    message: str


@dataclass(frozen=True)
class Victim:
    player_id: str
    name: str
    cause: DeathReason
    cause_text: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "player_id": self.player_id,
            "name": self.name,
            "cause": self.cause.value,
            "cause_text": self.cause_text,
        }


@dataclass(slots=True)
class VoteOutcome:
    """Result of resolving one vote round."""

    status: VoteStatus
    tally: Dict[str, int] = field(default_factory=dict)
    max_votes: int = 0
    tied: List[str] = field(default_factory=list)
    eliminated: Optional[str] = None
    victims: List[Victim] = field(default_factory=list)

    @property
    def decided(self) -> bool:
        return self.status == VoteStatus.ELIMINATED

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status.value,
            "tally": dict(self.tally),
            "max_votes": self.max_votes,
            "tied": list(self.tied),
            "eliminated": self.eliminated,
            "victims": [victim.to_dict() for victim in self.victims],
        }


@dataclass(slots=True)
class ChronicleEntry:
    message: str
    kind: str = "system"


@dataclass(slots=True)
class GameRecord:
    """Everything the moderator session owns for one game."""

    code: str
    status: GameStatus = GameStatus.LOBBY
    players: Dict[str, Player] = field(default_factory=dict)
    role_config: Dict[RoleId, int] = field(default_factory=dict)
    state: GameState = field(default_factory=GameState)
    night_actions: Dict[int, NightActions] = field(default_factory=dict)
    votes: Dict[str, str] = field(default_factory=dict)
    lovers: Optional[LoversPair] = None
    result: Optional[Result] = None
    last_night_victims: Dict[int, List[Victim]] = field(default_factory=dict)
    last_elimination: Optional[str] = None
    chronicle: Dict[int, List[ChronicleEntry]] = field(default_factory=dict)

    @property
    def moderators(self) -> List[Player]:
        return [p for p in self.players.values() if p.is_moderator]

    @property
    def participants(self) -> List[Player]:
        return [p for p in self.players.values() if not p.is_moderator]

    def actions_for(self, night: int) -> NightActions:
        if night not in self.night_actions:
            self.night_actions[night] = NightActions()
        return self.night_actions[night]

    def to_tree(self) -> Dict[str, object]:
        """Store representation; keys are the store path segments."""
        return {
            "config": {
                "status": self.status.value,
                "role_config": {role.value: count for role, count in self.role_config.items()},
            },
            "players": {pid: player.to_dict() for pid, player in self.players.items()},
            "game_state": {
                **self.state.to_dict(),
                "last_eliminated_id": self.last_elimination,
            },
            "actions": {
                f"night-{night}": actions.to_dict()
                for night, actions in self.night_actions.items()
            },
            "victims": {
                f"night-{night}": [victim.to_dict() for victim in victims]
                for night, victims in self.last_night_victims.items()
            },
            "votes": dict(self.votes),
            "lovers": (
                {"player1": self.lovers.player1, "player2": self.lovers.player2}
                if self.lovers
                else None
            ),
            "result": (
                {"winner": self.result.winner.value, "message": self.result.message}
                if self.result
                else None
            ),
            "chronicle": {
                f"night-{night}": [{"message": e.message, "type": e.kind} for e in entries]
                for night, entries in self.chronicle.items()
            },
        }
