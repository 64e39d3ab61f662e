import pytest

from conftest import make_players
from werewolf.errors import PreconditionError
from werewolf.models import (
    DeathReason,
    LoversPair,
    NightActions,
    Player,
    RoleId,
    Team,
    VoteStatus,
    WitchAction,
)
from werewolf.resolution import (
    apply_victims,
    collect_deaths,
    evaluate_winner,
    resolve_night,
    resolve_vote,
    tally_votes,
)

W, V, S, T = RoleId.WEREWOLF, RoleId.VILLAGER, RoleId.SEER, RoleId.WITCH


# ------------------------------------------------------------------ night --
def test_quiet_night():
    players = make_players(W, V, V)
    assert resolve_night(None, players, None) == []
    assert resolve_night(NightActions(), players, None) == []


def test_werewolf_victim_is_devoured():
    players = make_players(W, V, V)
    victims = resolve_night(NightActions(werewolf_target="p1"), players, None)
    assert [(v.player_id, v.cause) for v in victims] == [("p1", DeathReason.DEVOURED)]
    assert victims[0].cause_text == "devoured by the werewolves"


def test_witch_save_cancels_the_attack():
    players = make_players(W, V, T)
    actions = NightActions(werewolf_target="p1", witch_action=WitchAction.SAVE, witch_saved=True)
    assert resolve_night(actions, players, None) == []


def test_witch_poison_adds_a_second_victim():
    players = make_players(W, V, V, T)
    actions = NightActions(werewolf_target="p1", witch_action=WitchAction.KILL, witch_kill_target="p0")
    victims = resolve_night(actions, players, None)
    assert [(v.player_id, v.cause) for v in victims] == [
        ("p1", DeathReason.DEVOURED),
        ("p0", DeathReason.POISONED),
    ]


def test_same_target_dies_once_with_the_first_cause():
    players = make_players(W, V, T)
    actions = NightActions(werewolf_target="p1", witch_kill_target="p1")
    victims = resolve_night(actions, players, None)
    assert [(v.player_id, v.cause) for v in victims] == [("p1", DeathReason.DEVOURED)]


def test_lover_dies_of_heartbreak():
    players = make_players(W, V, V, S)
    lovers = LoversPair("p1", "p3")
    victims = resolve_night(NightActions(werewolf_target="p1"), players, lovers)
    assert [(v.player_id, v.cause) for v in victims] == [
        ("p1", DeathReason.DEVOURED),
        ("p3", DeathReason.HEARTBREAK),
    ]


def test_both_lovers_killed_directly_keep_their_causes():
    players = make_players(W, V, V, T)
    lovers = LoversPair("p1", "p2")
    actions = NightActions(werewolf_target="p1", witch_kill_target="p2")
    victims = resolve_night(actions, players, lovers)
    assert [v.cause for v in victims] == [DeathReason.DEVOURED, DeathReason.POISONED]


def test_dead_or_unknown_targets_are_ignored():
    players = make_players(W, V, V)
    players["p1"].is_alive = False
    victims = collect_deaths([("p1", DeathReason.VOTED), ("ghost", DeathReason.VOTED)], players, None)
    assert victims == []


def test_apply_victims_is_idempotent():
    players = make_players(W, V, V)
    victims = resolve_night(NightActions(werewolf_target="p2"), players, None)
    assert apply_victims(players, victims, 3) == victims
    assert players["p2"].death_reason == DeathReason.DEVOURED
    assert players["p2"].death_night == 3
    assert apply_victims(players, victims, 4) == []
    assert players["p2"].death_night == 3


# ------------------------------------------------------------------- votes --
def test_majority_is_eliminated():
    players = make_players(W, V, V)
    outcome = resolve_vote({"p0": "p2", "p1": "p2", "p2": "p0"}, players, None)
    assert outcome.status == VoteStatus.ELIMINATED
    assert outcome.eliminated == "p2"
    assert outcome.max_votes == 2
    assert [v.cause for v in outcome.victims] == [DeathReason.VOTED]


def test_tie_needs_the_moderator():
    players = make_players(W, V, V)
    votes = {"p0": "p2", "p2": "p0"}
    outcome = resolve_vote(votes, players, None)
    assert outcome.status == VoteStatus.TIE
    assert sorted(outcome.tied) == ["p0", "p2"]
    assert outcome.victims == []

    decided = resolve_vote(votes, players, None, tie_break="p0")
    assert decided.eliminated == "p0"


def test_tie_break_outside_the_leaders():
    players = make_players(W, V, V)
    with pytest.raises(PreconditionError):
        resolve_vote({"p0": "p2", "p2": "p0"}, players, None, tie_break="p1")


def test_no_ballots():
    outcome = resolve_vote({}, make_players(W, V, V), None)
    assert outcome.status == VoteStatus.NO_VOTES
    assert not outcome.decided


def test_ballots_from_the_dead_do_not_count():
    players = make_players(W, V, V, V)
    players["p3"].is_alive = False
    players["m"] = Player(id="m", name="M", is_moderator=True)
    tally = tally_votes({"p0": "p1", "p3": "p2", "m": "p2", "p1": "p3"}, players)
    assert tally == {"p1": 1}


def test_voted_lover_takes_the_partner():
    players = make_players(W, V, V)
    outcome = resolve_vote({"p0": "p1", "p1": "p0", "p2": "p1"}, players, LoversPair("p1", "p2"))
    assert [(v.player_id, v.cause) for v in outcome.victims] == [
        ("p1", DeathReason.VOTED),
        ("p2", DeathReason.HEARTBREAK),
    ]


# ----------------------------------------------------------------- victory --
@pytest.mark.parametrize(
    "roles, winner",
    [
        ((W,), Team.WEREWOLVES),
        ((V, V, V), Team.VILLAGE),
        ((W, W, V, V, V), None),
        ((W, V), Team.WEREWOLVES),
        ((W, S, T), None),
    ],
)
def test_win_condition(roles, winner):
    result = evaluate_winner(make_players(*roles).values())
    assert (result.winner if result else None) == winner


def test_moderator_is_not_counted():
    players = make_players(V, V)
    players["m"] = Player(id="m", name="M", role=W, is_moderator=True)
    result = evaluate_winner(players.values())
    assert result.winner == Team.VILLAGE
    assert "village" in result.message.lower()


def test_dead_werewolves_do_not_count():
    players = make_players(W, W, V)
    players["p0"].is_alive = False
    players["p1"].is_alive = False
    assert evaluate_winner(players.values()).winner == Team.VILLAGE
