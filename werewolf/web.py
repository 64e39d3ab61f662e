"""HTTP interface exposing the moderator and participant intents."""

from __future__ import annotations

import logging
import random
import threading
from typing import Dict, Optional

from flask import Flask, jsonify, request

from .codes import format_game_code
from .config import configure_logging, load_settings
from .errors import (
    GameFinishedError,
    PreconditionError,
    StoreUnavailableError,
    StuckPhaseError,
    UnknownPlayerError,
)
from .gm import GameMaster
from .models import GameStatus, LoversPair, NightActions, Player, RoleId
from .store import SharedStateStore

logger = logging.getLogger(__name__)


class GameNotFound(LookupError):
    pass


app = Flask(__name__)
app.json.ensure_ascii = False

settings = load_settings()
store = SharedStateStore()

# One authoritative game master per game code, all sharing one store.
_games: Dict[str, GameMaster] = {}
_games_lock = threading.Lock()


def _get_gm(code: str) -> GameMaster:
    gm = _games.get(format_game_code(code))
    if gm is None:
        raise GameNotFound(code)
    return gm


def _body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise PreconditionError("request body must be a JSON object")
    return data


def _serialize_player(player: Player) -> dict:
    return {"id": player.id, **player.to_dict()}


def _serialize_status(gm: GameMaster) -> dict:
    record = gm.record
    alive = gm.alive_players()
    result = gm.check_victory()
    try:
        next_phase: Optional[str] = gm.preview_next_phase().value
    except (PreconditionError, StuckPhaseError):
        next_phase = None
    return {
        "code": gm.code,
        "status": record.status.value,
        "phase": record.state.current_phase.value,
        "night_count": record.state.night_count,
        "is_paused": record.state.is_paused,
        "next_phase": next_phase,
        "selectable_phases": [phase.value for phase in gm.selectable_phases()],
        "alive_players": [p.id for p in alive],
        "werewolves_alive": len([p for p in alive if p.role == RoleId.WEREWOLF]),
        "villagers_alive": len([p for p in alive if p.role is not None and p.role != RoleId.WEREWOLF]),
        "result": (
            {"winner": record.result.winner.value, "message": record.result.message}
            if record.result
            else None
        ),
        "pending_result": (
            {"winner": result.winner.value, "message": result.message}
            if result and record.result is None and record.status != GameStatus.LOBBY
            else None
        ),
    }


# ------------------------------------------------------------ error mapping --
@app.errorhandler(GameNotFound)
def _not_found(exc: GameNotFound):
    return jsonify({"error": f"game {exc.args[0]} does not exist"}), 404


@app.errorhandler(UnknownPlayerError)
def _unknown_player(exc: UnknownPlayerError):
    return jsonify({"error": str(exc)}), 404


@app.errorhandler(GameFinishedError)
def _finished(exc: GameFinishedError):
    return jsonify({"error": str(exc)}), 409


@app.errorhandler(PreconditionError)
def _rejected(exc: PreconditionError):
    logger.warning("Intent rejected | path=%s error=%s", request.path, exc)
    return jsonify({"error": str(exc)}), 400


@app.errorhandler(StuckPhaseError)
def _stuck(exc: StuckPhaseError):
    logger.error("Phase walk stuck | path=%s error=%s", request.path, exc)
    return jsonify({"error": str(exc), "last_phase": exc.last}), 500


@app.errorhandler(StoreUnavailableError)
def _store_down(exc: StoreUnavailableError):
    logger.warning("Store unavailable | path=%s error=%s", request.path, exc)
    return jsonify({"error": f"store unavailable: {exc}"}), 503


# ------------------------------------------------------------------- routes --
@app.route("/", methods=["GET"])
def index():
    return jsonify({
        "name": "Werewolf moderator engine",
        "version": "1.0.0",
        "endpoints": {
            "POST /games": "create a game (lobby)",
            "GET /games": "list games",
            "GET /games/<code>": "full game tree",
            "GET /games/<code>/status": "phase and counters",
            "POST /games/<code>/players": "join the lobby",
            "POST /games/<code>/roles": "assign roles",
            "POST /games/<code>/phase/advance": "next playable phase",
            "POST /games/<code>/phase/force": "jump to a phase",
            "POST /games/<code>/actions/<role>": "record a night action",
            "POST /games/<code>/votes": "cast a ballot",
            "POST /games/<code>/night/resolve": "resolve the current night",
            "POST /games/<code>/vote/resolve": "resolve the current vote",
            "GET /games/<code>/victory": "evaluate the win condition",
            "POST /games/<code>/victory": "declare the winner",
        },
    })


@app.route("/games", methods=["POST"])
def create_game():
    data = _body()
    seed = data.get("seed")
    rng = random.Random(seed)
    with _games_lock:
        gm = GameMaster.create(
            store,
            data.get("moderator_name", "Moderator"),
            settings=settings,
            rng=rng,
        )
        _games[gm.code] = gm
    moderator = gm.record.moderators[0]
    return jsonify({
        "code": gm.code,
        "moderator_id": moderator.id,
        "status": gm.record.status.value,
    }), 201


@app.route("/games", methods=["GET"])
def list_games():
    return jsonify({
        "games": [
            {
                "code": gm.code,
                "status": gm.record.status.value,
                "phase": gm.phase.value,
                "players": len(gm.record.players),
            }
            for gm in _games.values()
        ]
    })


@app.route("/games/<code>", methods=["GET"])
def get_game(code: str):
    gm = _get_gm(code)
    return jsonify({"code": gm.code, **gm.snapshot()})


@app.route("/games/<code>/status", methods=["GET"])
def get_status(code: str):
    return jsonify(_serialize_status(_get_gm(code)))


@app.route("/games/<code>/players", methods=["POST"])
def join_game(code: str):
    gm = _get_gm(code)
    player = gm.join(_body().get("name", ""))
    return jsonify(_serialize_player(player)), 201


@app.route("/games/<code>/players/<player_id>", methods=["DELETE"])
def leave_game(code: str, player_id: str):
    _get_gm(code).remove_player(player_id)
    return jsonify({"removed": player_id})


@app.route("/games/<code>/roles", methods=["POST"])
def assign_roles(code: str):
    gm = _get_gm(code)
    dealt = gm.assign_roles(_body().get("config"))
    return jsonify({
        "phase": gm.phase.value,
        "roles": {player_id: role.value for player_id, role in dealt.items()},
    })


@app.route("/games/<code>/phase/advance", methods=["POST"])
def advance_phase(code: str):
    return jsonify(_get_gm(code).advance_phase().to_dict())


@app.route("/games/<code>/phase/force", methods=["POST"])
def force_phase(code: str):
    phase = _body().get("phase")
    if not phase:
        raise PreconditionError("missing field: phase")
    return jsonify(_get_gm(code).force_phase(phase).to_dict())


@app.route("/games/<code>/actions/<role>", methods=["POST"])
def record_action(code: str, role: str):
    gm = _get_gm(code)
    data = _body()
    actor_id = data.get("actor_id")
    if not actor_id:
        raise PreconditionError("missing field: actor_id")
    outcome = gm.submit_action(role, actor_id, data)
    payload: dict = {"recorded": True, "night": gm.night_count}
    if isinstance(outcome, RoleId):
        payload["role"] = outcome.value
    elif isinstance(outcome, NightActions):
        payload["actions"] = outcome.to_dict()
    elif isinstance(outcome, LoversPair):
        payload["lovers"] = {"player1": outcome.player1, "player2": outcome.player2}
    return jsonify(payload)


@app.route("/games/<code>/votes", methods=["POST"])
def record_vote(code: str):
    data = _body()
    voter_id, target_id = data.get("voter_id"), data.get("target_id")
    if not voter_id or not target_id:
        raise PreconditionError("voter_id and target_id are required")
    _get_gm(code).record_vote(voter_id, target_id)
    return jsonify({"recorded": True})


@app.route("/games/<code>/night/resolve", methods=["POST"])
def resolve_night(code: str):
    gm = _get_gm(code)
    victims = gm.resolve_night()
    return jsonify({"night": gm.night_count, "victims": [v.to_dict() for v in victims]})


@app.route("/games/<code>/vote/resolve", methods=["POST"])
def resolve_vote(code: str):
    outcome = _get_gm(code).resolve_vote(_body().get("tie_break"))
    return jsonify(outcome.to_dict())


@app.route("/games/<code>/victory", methods=["GET"])
def check_victory(code: str):
    result = _get_gm(code).check_victory()
    if result is None:
        return jsonify({"winner": None, "message": "The game goes on."})
    return jsonify({"winner": result.winner.value, "message": result.message})


@app.route("/games/<code>/victory", methods=["POST"])
def declare_victory(code: str):
    result = _get_gm(code).declare_winner()
    return jsonify({"winner": result.winner.value, "message": result.message})


@app.route("/games/<code>/pause", methods=["POST"])
def toggle_pause(code: str):
    return jsonify({"is_paused": _get_gm(code).toggle_pause()})


@app.route("/games/<code>/timer", methods=["POST"])
def timer(code: str):
    gm = _get_gm(code)
    data = _body()
    action = data.get("action", "start")
    if action == "set":
        gm.set_timer(data.get("duration"))
    elif action == "start":
        gm.start_timer()
    elif action == "stop":
        gm.stop_timer(data.get("remaining"))
    else:
        raise PreconditionError(f"unknown timer action: {action!r}")
    state = gm.record.state
    return jsonify({
        "timer": state.timer,
        "timer_duration": state.timer_duration,
        "timer_running": state.timer_running,
    })


@app.route("/games/<code>/eliminate", methods=["POST"])
def eliminate(code: str):
    data = _body()
    player_id = data.get("player_id")
    if not player_id:
        raise PreconditionError("missing field: player_id")
    victims = _get_gm(code).eliminate_player(player_id, data.get("reason", "eliminated"))
    return jsonify({"victims": [v.to_dict() for v in victims]})


@app.route("/games/<code>/bonus", methods=["POST"])
def bonus_role(code: str):
    data = _body()
    player_id = data.get("player_id")
    if not player_id:
        raise PreconditionError("missing field: player_id")
    gm = _get_gm(code)
    gm.set_bonus_role(player_id, data.get("role"))
    return jsonify(_serialize_player(gm.player(player_id)))


@app.route("/games/<code>/end", methods=["POST"])
def end_game(code: str):
    gm = _get_gm(code)
    gm.end_game()
    return jsonify({"status": gm.record.status.value, "phase": gm.phase.value})


@app.route("/games/<code>/replay", methods=["POST"])
def replay(code: str):
    gm = _get_gm(code)
    gm.replay()
    return jsonify({"status": gm.record.status.value, "phase": gm.phase.value})


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: Optional[bool] = None) -> None:
    configure_logging(settings.log_level)
    app.run(
        host=host or settings.host,
        port=port or settings.port,
        debug=settings.debug if debug is None else debug,
    )


if __name__ == "__main__":
    run_server()
