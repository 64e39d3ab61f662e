"""Game master: the authoritative moderator session for one game.

Every intent runs against a working copy of the game record. The copy is
diffed against the last published tree and written to the shared store in a
single atomic update; only then does it replace the in-memory record. A
rejected intent or a failed store write therefore leaves nothing behind.
"""

from __future__ import annotations

import copy
import logging
import random
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Set, Union

from .assignment import assign_roles
from .chronicle import Chronicle
from .codes import format_game_code, unique_game_code
from .config import Settings
from .errors import (
    GameFinishedError,
    PreconditionError,
    StoreUnavailableError,
    UnknownPlayerError,
)
from .models import (
    DeathReason,
    GameRecord,
    GameStatus,
    LoversPair,
    NightActions,
    Phase,
    Player,
    Result,
    RoleId,
    Victim,
    VoteOutcome,
    WitchAction,
)
from .phases import PHASE_TABLE, next_valid_phase, valid_phases
from .resolution import apply_victims, collect_deaths, evaluate_winner, resolve_night, resolve_vote
from .roles import default_role_distribution, get_role, present_roles, to_role_id
from .store import SharedStateStore, diff_trees

logger = logging.getLogger(__name__)

GAMES_ROOT = "games"

# phases in which the current night is over and may be resolved
DAYTIME_PHASES = (Phase.DAY_ANNOUNCEMENT, Phase.DAY_DISCUSSION, Phase.DAY_VOTE, Phase.VOTE_RESULT)


def _coerce(enum_type, value, label: str):
    try:
        return enum_type(value)
    except ValueError:
        raise PreconditionError(f"unknown {label}: {value!r}") from None


@dataclass
class PhaseChange:
    previous: Phase
    current: Phase
    night_count: int
    victims: List[Victim] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "previous": self.previous.value,
            "current": self.current.value,
            "night_count": self.night_count,
            "victims": [victim.to_dict() for victim in self.victims],
        }


class GameMaster:
    """Owns one game record and exposes the moderator and participant intents."""

    def __init__(
        self,
        record: GameRecord,
        store: SharedStateStore,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.record = record
        self.store = store
        self.settings = settings or Settings()
        self.rng = rng or random.Random()
        self.path = f"{GAMES_ROOT}/{record.code}"
        self._published: Dict[str, object] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ setup --
    @classmethod
    def create(
        cls,
        store: SharedStateStore,
        moderator_name: str,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
        code: Optional[str] = None,
    ) -> "GameMaster":
        """Open a new lobby with the moderator as its first player."""
        rng = rng or random.Random()
        settings = settings or Settings()
        if code is None:
            code = unique_game_code(lambda c: store.exists(f"{GAMES_ROOT}/{c}"), rng)
        code = format_game_code(code)
        record = GameRecord(code=code)
        record.state.timer_duration = settings.timer_seconds
        record.state.timer = settings.timer_seconds
        gm = cls(record=record, store=store, settings=settings, rng=rng)
        with gm._transaction() as working:
            moderator = gm._new_player(working, moderator_name, is_moderator=True)
            gm._chronicle(working).log(0, f"Game {code} created by {moderator.name}", "system")
        logger.info("Game created | game=%s moderator=%s", code, moderator.id)
        return gm

    def _new_player(self, working: GameRecord, name: str, is_moderator: bool = False) -> Player:
        name = (name or "").strip()
        if not name:
            raise PreconditionError("player name cannot be empty")
        player_id = f"player_{self.rng.getrandbits(32):08x}"
        while player_id in working.players:
            player_id = f"player_{self.rng.getrandbits(32):08x}"
        player = Player(id=player_id, name=name, is_moderator=is_moderator)
        working.players[player_id] = player
        return player

    # ------------------------------------------------------------ transaction --
    @contextmanager
    def _transaction(self) -> Iterator[GameRecord]:
        with self._lock:
            working = copy.deepcopy(self.record)
            yield working
            self._commit(working)

    def _commit(self, working: GameRecord) -> None:
        tree = working.to_tree()
        changes = diff_trees(self._published, tree, prefix=self.path)
        try:
            self.store.update(changes)
        except StoreUnavailableError:
            logger.warning("Store write failed | game=%s paths=%s", self.record.code, len(changes))
            raise
        self.record = working
        self._published = tree

    @staticmethod
    def _chronicle(working: GameRecord) -> Chronicle:
        return Chronicle(nights=working.chronicle)

    # ----------------------------------------------------------------- guards --
    @staticmethod
    def _require_lobby(working: GameRecord) -> None:
        if working.status != GameStatus.LOBBY:
            raise PreconditionError(f"game is not in the lobby (status={working.status.value})")

    @staticmethod
    def _require_active(working: GameRecord) -> None:
        if working.result is not None or working.status == GameStatus.FINISHED:
            raise GameFinishedError("the game is over")
        if working.status == GameStatus.LOBBY:
            raise PreconditionError("roles have not been assigned yet")

    @staticmethod
    def _require_phase(working: GameRecord, phase: Phase) -> None:
        if working.state.current_phase != phase:
            raise PreconditionError(
                f"expected phase {phase.value}, current phase is {working.state.current_phase.value}"
            )

    @staticmethod
    def _require_open_night(working: GameRecord) -> int:
        night = working.state.night_count
        if night in working.last_night_victims:
            raise PreconditionError(f"night {night} has already been resolved")
        return night

    @staticmethod
    def _player(working: GameRecord, player_id: str) -> Player:
        player = working.players.get(player_id)
        if player is None:
            raise UnknownPlayerError(player_id)
        return player

    def _living_target(self, working: GameRecord, player_id: str) -> Player:
        target = self._player(working, player_id)
        if target.is_moderator:
            raise PreconditionError("the moderator cannot be targeted")
        if not target.is_alive:
            raise PreconditionError(f"{target.name} is already dead")
        return target

    def _actor(self, working: GameRecord, actor_id: str, role_id: RoleId) -> Player:
        actor = self._player(working, actor_id)
        if not actor.holds(role_id):
            raise PreconditionError(f"{actor.name} is not the {get_role(role_id).name}")
        if not actor.is_alive:
            raise PreconditionError(f"{actor.name} is dead and cannot act")
        return actor

    # ---------------------------------------------------------------- queries --
    @property
    def code(self) -> str:
        return self.record.code

    @property
    def phase(self) -> Phase:
        return self.record.state.current_phase

    @property
    def night_count(self) -> int:
        return self.record.state.night_count

    def player(self, player_id: str) -> Player:
        return self._player(self.record, player_id)

    def alive_players(self) -> List[Player]:
        return [p for p in self.record.players.values() if p.in_play]

    def players_with_role(self, role_id: RoleId, alive_only: bool = True) -> List[Player]:
        return [
            p
            for p in self.record.players.values()
            if p.holds(role_id) and (p.is_alive or not alive_only)
        ]

    def present_roles(self) -> Set[RoleId]:
        return present_roles(self.record.players.values())

    def current_actions(self) -> NightActions:
        return copy.deepcopy(self.record.night_actions.get(self.night_count, NightActions()))

    def preview_next_phase(self) -> Phase:
        return next_valid_phase(
            self.phase,
            self.present_roles(),
            self.night_count,
            max_hops=self.settings.max_phase_hops,
        )

    def selectable_phases(self) -> List[Phase]:
        return valid_phases(self.present_roles(), self.night_count)

    def snapshot(self) -> Dict[str, object]:
        return self.record.to_tree()

    def chronicle(self) -> Chronicle:
        return Chronicle(nights=copy.deepcopy(self.record.chronicle))

    # ------------------------------------------------------------------ lobby --
    def join(self, name: str) -> Player:
        with self._transaction() as working:
            self._require_lobby(working)
            if len(working.players) >= self.settings.max_players:
                raise PreconditionError(f"the game is full ({self.settings.max_players} players max)")
            player = self._new_player(working, name)
            self._chronicle(working).log(0, f"{player.name} joined the game", "lobby")
        logger.info("Player joined | game=%s player=%s", self.code, player.id)
        return copy.deepcopy(player)

    def remove_player(self, player_id: str) -> None:
        with self._transaction() as working:
            self._require_lobby(working)
            player = self._player(working, player_id)
            if player.is_moderator:
                raise PreconditionError("the moderator cannot leave their own game")
            del working.players[player_id]
            self._chronicle(working).log(0, f"{player.name} left the game", "lobby")

    def assign_roles(self, config: Optional[Mapping[Union[RoleId, str], int]] = None) -> Dict[str, RoleId]:
        """Deal roles to every non-moderator player and open the role reveal."""
        with self._transaction() as working:
            self._require_lobby(working)
            moderators = working.moderators
            if len(moderators) != 1:
                raise PreconditionError(f"exactly one moderator is required, found {len(moderators)}")
            participants = working.participants
            if config is None:
                config = default_role_distribution(len(participants))
                if config is None:
                    raise PreconditionError(f"not enough players for a game ({len(participants)})")
            dealt = assign_roles(participants, config, self.rng)
            for player in dealt:
                working.players[player.id] = player
            working.role_config = {}
            for role_id, count in config.items():
                role_id = to_role_id(role_id)
                working.role_config[role_id] = working.role_config.get(role_id, 0) + count
            working.status = GameStatus.ROLES_DISTRIBUTED
            working.state.current_phase = Phase.ROLE_REVEAL
            working.state.night_count = 0
            working.night_actions = {}
            working.votes = {}
            working.lovers = None
            working.result = None
            working.last_night_victims = {}
            working.last_elimination = None
            self._chronicle(working).log(0, f"Roles dealt to {len(dealt)} players", "system")
        logger.info("Roles assigned | game=%s players=%s", self.code, len(dealt))
        return {player.id: player.role for player in dealt}

    def set_bonus_role(self, player_id: str, role_id: Union[RoleId, str, None]) -> None:
        with self._transaction() as working:
            self._require_active(working)
            player = self._player(working, player_id)
            if player.is_moderator:
                raise PreconditionError("the moderator cannot hold a bonus role")
            player.bonus_role = to_role_id(role_id) if role_id is not None else None
            if player.bonus_role is not None:
                name = get_role(player.bonus_role).name
                self._chronicle(working).log(
                    working.state.night_count, f"{player.name} received the bonus role {name}", "bonus"
                )

    # ----------------------------------------------------------------- phases --
    def advance_phase(self) -> PhaseChange:
        """Move to the next playable phase and apply the transition's side effects."""
        with self._transaction() as working:
            self._require_active(working)
            previous = working.state.current_phase
            nxt = next_valid_phase(
                previous,
                present_roles(working.players.values()),
                working.state.night_count,
                max_hops=self.settings.max_phase_hops,
            )
            if nxt == Phase.NIGHT_START and previous != Phase.ROLE_REVEAL:
                working.state.night_count += 1
            working.state.current_phase = nxt
            victims: List[Victim] = []
            if nxt == Phase.DAY_ANNOUNCEMENT:
                victims = self._resolve_current_night(working)
            if nxt == Phase.DAY_VOTE and previous != Phase.DAY_VOTE:
                working.votes = {}
            if working.status == GameStatus.ROLES_DISTRIBUTED:
                working.status = GameStatus.PLAYING
            working.state.timer = working.state.timer_duration
            working.state.timer_running = False
            self._chronicle(working).log(
                working.state.night_count,
                f"Phase: {PHASE_TABLE[previous].name} -> {PHASE_TABLE[nxt].name}",
                "phase",
            )
            change = PhaseChange(previous, nxt, working.state.night_count, victims)
        logger.info(
            "Phase advanced | game=%s from=%s to=%s night=%s",
            self.code,
            previous.value,
            nxt.value,
            change.night_count,
        )
        return change

    def force_phase(self, phase: Union[Phase, str]) -> PhaseChange:
        """Jump straight to ``phase``; counters and skip rules are left alone."""
        try:
            phase = Phase(phase)
        except ValueError:
            raise PreconditionError(f"unknown phase: {phase!r}") from None
        if phase == Phase.LOBBY:
            raise PreconditionError("use replay() to return to the lobby")
        with self._transaction() as working:
            self._require_active(working)
            previous = working.state.current_phase
            working.state.current_phase = phase
            if phase == Phase.FINISHED:
                working.status = GameStatus.FINISHED
            elif working.status == GameStatus.ROLES_DISTRIBUTED:
                working.status = GameStatus.PLAYING
            self._chronicle(working).log(
                working.state.night_count, f"Phase forced: {PHASE_TABLE[phase].name}", "phase"
            )
            change = PhaseChange(previous, phase, working.state.night_count)
        logger.info("Phase forced | game=%s from=%s to=%s", self.code, previous.value, phase.value)
        return change

    # ---------------------------------------------------------- night actions --
    def record_werewolf_target(self, actor_id: str, target_id: str) -> None:
        with self._transaction() as working:
            self._require_active(working)
            self._require_phase(working, Phase.NIGHT_WEREWOLVES)
            self._actor(working, actor_id, RoleId.WEREWOLF)
            night = self._require_open_night(working)
            target = self._living_target(working, target_id)
            working.actions_for(night).werewolf_target = target.id
            self._chronicle(working).log(night, f"The werewolves chose {target.name}", "werewolf")
        logger.info("Werewolf target | game=%s night=%s target=%s", self.code, night, target_id)

    def record_seer_target(self, actor_id: str, target_id: str) -> RoleId:
        """Record the seer's look and return the role she saw."""
        with self._transaction() as working:
            self._require_active(working)
            self._require_phase(working, Phase.NIGHT_SEER)
            seer = self._actor(working, actor_id, RoleId.SEER)
            target = self._living_target(working, target_id)
            if target.id == seer.id:
                raise PreconditionError("the seer cannot look at herself")
            night = self._require_open_night(working)
            working.actions_for(night).seer_target = target.id
            self._chronicle(working).log(night, f"The seer looked at {target.name}", "seer")
        return target.role

    def record_witch_action(
        self,
        actor_id: str,
        action: Union[WitchAction, str],
        target_id: Optional[str] = None,
    ) -> NightActions:
        action = _coerce(WitchAction, action, "witch action")
        with self._transaction() as working:
            self._require_active(working)
            self._require_phase(working, Phase.NIGHT_WITCH)
            witch = self._actor(working, actor_id, RoleId.WITCH)
            night = self._require_open_night(working)
            actions = working.actions_for(night)
            if actions.witch_action is not None:
                raise PreconditionError("the witch has already decided tonight")
            chronicle = self._chronicle(working)
            if action == WitchAction.SAVE:
                if witch.has_used_life_potion:
                    raise PreconditionError("the life potion has already been used")
                if actions.werewolf_target is None:
                    raise PreconditionError("nobody was attacked tonight")
                actions.witch_saved = True
                witch.has_used_life_potion = True
                chronicle.log(night, "The witch used her life potion", "witch_life")
            elif action == WitchAction.KILL:
                if witch.has_used_death_potion:
                    raise PreconditionError("the death potion has already been used")
                if target_id is None:
                    raise PreconditionError("a target is required for the death potion")
                target = self._living_target(working, target_id)
                actions.witch_kill_target = target.id
                witch.has_used_death_potion = True
                chronicle.log(night, f"The witch poisoned {target.name}", "witch_death")
            else:
                chronicle.log(night, "The witch did nothing", "witch_nothing")
            actions.witch_action = action
            recorded = copy.deepcopy(actions)
        logger.info("Witch action | game=%s night=%s action=%s", self.code, night, action.value)
        return recorded

    def record_cupid_lovers(self, actor_id: str, lover1_id: str, lover2_id: str) -> LoversPair:
        with self._transaction() as working:
            self._require_active(working)
            night = working.state.night_count
            if night != 0:
                raise PreconditionError(f"cupid only acts on the first night (night {night})")
            self._require_phase(working, Phase.NIGHT_CUPID)
            self._actor(working, actor_id, RoleId.CUPID)
            self._require_open_night(working)
            if working.lovers is not None:
                raise PreconditionError("the lovers have already been chosen")
            if lover1_id == lover2_id:
                raise PreconditionError("cupid needs two different players")
            lover1 = self._living_target(working, lover1_id)
            lover2 = self._living_target(working, lover2_id)
            actions = working.actions_for(night)
            actions.cupid_lover1 = lover1.id
            actions.cupid_lover2 = lover2.id
            working.lovers = LoversPair(player1=lover1.id, player2=lover2.id)
            self._chronicle(working).log(
                night, f"Cupid bound {lover1.name} and {lover2.name}", "cupid"
            )
            pair = working.lovers
        logger.info("Lovers formed | game=%s lovers=%s,%s", self.code, lover1_id, lover2_id)
        return pair

    def submit_action(self, role: Union[RoleId, str], actor_id: str, payload: Mapping[str, object]) -> object:
        """Dispatch a participant's night request to the matching intent."""
        role_id = to_role_id(role)

        def required(key: str) -> str:
            value = payload.get(key)
            if value is None or value == "":
                raise PreconditionError(f"missing field: {key}")
            return str(value)

        if role_id == RoleId.WEREWOLF:
            return self.record_werewolf_target(actor_id, required("target_id"))
        if role_id == RoleId.SEER:
            return self.record_seer_target(actor_id, required("target_id"))
        if role_id == RoleId.WITCH:
            action = required("action")
            target = payload.get("target_id")
            return self.record_witch_action(actor_id, action, str(target) if target else None)
        if role_id == RoleId.CUPID:
            return self.record_cupid_lovers(actor_id, required("lover1_id"), required("lover2_id"))
        raise PreconditionError(f"the {get_role(role_id).name} has no night action")

    # --------------------------------------------------------------- resolving --
    def _resolve_current_night(self, working: GameRecord) -> List[Victim]:
        night = working.state.night_count
        if night in working.last_night_victims:
            return list(working.last_night_victims[night])
        victims = resolve_night(working.night_actions.get(night), working.players, working.lovers)
        applied = apply_victims(working.players, victims, night)
        working.last_night_victims[night] = applied
        chronicle = self._chronicle(working)
        if not applied:
            chronicle.log(night, "Nobody died tonight", "death")
        for victim in applied:
            chronicle.log(night, f"{victim.name} was {victim.cause_text}", "death")
        return list(applied)

    def resolve_night(self) -> List[Victim]:
        """Resolve the current night; repeated calls return the same victims."""
        with self._transaction() as working:
            self._require_active(working)
            if working.state.current_phase not in DAYTIME_PHASES:
                raise PreconditionError(
                    f"the night cannot be resolved during {working.state.current_phase.value}"
                )
            victims = self._resolve_current_night(working)
        logger.info(
            "Night resolved | game=%s night=%s victims=%s",
            self.code,
            self.night_count,
            [v.player_id for v in victims],
        )
        return victims

    def record_vote(self, voter_id: str, target_id: str) -> None:
        with self._transaction() as working:
            self._require_active(working)
            self._require_phase(working, Phase.DAY_VOTE)
            voter = self._player(working, voter_id)
            if not voter.in_play:
                raise PreconditionError(f"{voter.name} cannot vote")
            target = self._living_target(working, target_id)
            working.votes[voter.id] = target.id

    def resolve_vote(self, tie_break: Optional[str] = None) -> VoteOutcome:
        """Tally the ballots; a tie without ``tie_break`` stays undecided."""
        with self._transaction() as working:
            self._require_active(working)
            self._require_phase(working, Phase.DAY_VOTE)
            night = working.state.night_count
            outcome = resolve_vote(working.votes, working.players, working.lovers, tie_break)
            chronicle = self._chronicle(working)
            if outcome.decided:
                outcome.victims = apply_victims(working.players, outcome.victims, night)
                working.votes = {}
                working.last_elimination = outcome.eliminated
                if working.state.current_phase == Phase.DAY_VOTE:
                    working.state.current_phase = Phase.VOTE_RESULT
                for victim in outcome.victims:
                    chronicle.log(night, f"{victim.name} was {victim.cause_text}", "death")
            elif outcome.tied:
                chronicle.log(night, f"Tie between {len(outcome.tied)} players", "vote")
            else:
                chronicle.log(night, "No ballots were cast", "vote")
        logger.info(
            "Vote resolved | game=%s status=%s eliminated=%s",
            self.code,
            outcome.status.value,
            outcome.eliminated,
        )
        return outcome

    def eliminate_player(
        self, player_id: str, reason: Union[DeathReason, str] = DeathReason.ELIMINATED
    ) -> List[Victim]:
        """Moderator elimination outside of the night/vote flow (hunter shot and the like)."""
        reason = _coerce(DeathReason, reason, "death reason")
        with self._transaction() as working:
            self._require_active(working)
            target = self._living_target(working, player_id)
            night = working.state.night_count
            victims = collect_deaths([(target.id, reason)], working.players, working.lovers)
            applied = apply_victims(working.players, victims, night)
            chronicle = self._chronicle(working)
            for victim in applied:
                chronicle.log(night, f"{victim.name} was {victim.cause_text}", "death")
        return applied

    # ---------------------------------------------------------------- victory --
    def check_victory(self) -> Optional[Result]:
        return evaluate_winner(self.record.players.values())

    def declare_winner(self, result: Optional[Result] = None) -> Result:
        """Write the terminal result; defaults to the evaluator's verdict."""
        with self._transaction() as working:
            self._require_active(working)
            result = result or evaluate_winner(working.players.values())
            if result is None:
                raise PreconditionError("no side has won yet")
            working.result = result
            working.status = GameStatus.FINISHED
            working.state.current_phase = Phase.FINISHED
            working.state.timer_running = False
            self._chronicle(working).log(
                working.state.night_count, f"Game over: {result.winner.value} wins", "result"
            )
        logger.info("Game finished | game=%s winner=%s", self.code, result.winner.value)
        return result

    def end_game(self) -> None:
        with self._transaction() as working:
            if working.status == GameStatus.FINISHED:
                raise GameFinishedError("the game is already over")
            working.status = GameStatus.FINISHED
            working.state.current_phase = Phase.FINISHED
            working.state.timer_running = False
            self._chronicle(working).log(working.state.night_count, "Game ended by the moderator", "result")
        logger.info("Game ended | game=%s", self.code)

    def replay(self) -> None:
        """Back to the lobby with the same players."""
        with self._transaction() as working:
            for player in working.players.values():
                player.role = None
                player.bonus_role = None
                player.is_alive = True
                player.death_reason = None
                player.death_night = None
                player.has_used_life_potion = False
                player.has_used_death_potion = False
            working.status = GameStatus.LOBBY
            working.state.current_phase = Phase.LOBBY
            working.state.night_count = 0
            working.state.is_paused = False
            working.state.timer = working.state.timer_duration
            working.state.timer_running = False
            working.role_config = {}
            working.night_actions = {}
            working.votes = {}
            working.lovers = None
            working.result = None
            working.last_night_victims = {}
            working.last_elimination = None
            working.chronicle = {}
        logger.info("Game reset for replay | game=%s", self.code)

    # ------------------------------------------------------------ pause/timer --
    def toggle_pause(self) -> bool:
        with self._transaction() as working:
            self._require_active(working)
            working.state.is_paused = not working.state.is_paused
            if working.state.is_paused:
                working.state.timer_running = False
            message = "Game paused" if working.state.is_paused else "Game resumed"
            self._chronicle(working).log(working.state.night_count, message, "system")
            paused = working.state.is_paused
        return paused

    def set_timer(self, duration: Optional[int]) -> None:
        if duration is not None and (isinstance(duration, bool) or not isinstance(duration, int)):
            raise PreconditionError(f"timer duration must be an integer, got {duration!r}")
        if duration is not None and duration <= 0:
            raise PreconditionError("timer duration must be positive")
        with self._transaction() as working:
            working.state.timer_duration = duration
            working.state.timer = duration
            working.state.timer_running = False

    def start_timer(self) -> None:
        with self._transaction() as working:
            if working.state.timer_duration is None:
                return
            if not working.state.timer:
                working.state.timer = working.state.timer_duration
            working.state.timer_running = True

    def stop_timer(self, remaining: Optional[int] = None) -> None:
        if remaining is not None and (isinstance(remaining, bool) or not isinstance(remaining, int)):
            raise PreconditionError(f"remaining time must be an integer, got {remaining!r}")
        with self._transaction() as working:
            if remaining is not None:
                working.state.timer = max(0, remaining)
            working.state.timer_running = False
