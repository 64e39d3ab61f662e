import random

import pytest

from werewolf.autoplay import AutoplayDirector, RuleBasedParticipant, RuleBasedTable
from werewolf.cli import build_demo_game, run_cli
from werewolf.errors import PreconditionError
from werewolf.models import GameStatus, NightActions, Player, RoleId, WitchAction
from werewolf.store import SharedStateStore


def _play(seed, players=8):
    rng = random.Random(seed)
    gm = build_demo_game(SharedStateStore(), players, rng)
    lines = []
    result = AutoplayDirector(gm, RuleBasedTable(rng=rng), announce=lines.append).run()
    return gm, result, lines


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_cli_plays_a_full_game(seed, capsys):
    winner = run_cli(["--seed", str(seed), "--players", "8", "--log-level", "WARNING"])
    out = capsys.readouterr().out
    assert winner in {"village", "werewolves", None}
    assert "the game begins" in out


@pytest.mark.parametrize("players", [4, 10, 15])
def test_director_reaches_a_verdict(players):
    gm, result, lines = _play(seed=players, players=players)
    if result is not None:
        assert gm.record.status == GameStatus.FINISHED
        assert gm.check_victory() == result
    assert lines[0].startswith("GM: the game begins")


def test_same_seed_same_story():
    _, first, first_lines = _play(seed=11)
    _, second, second_lines = _play(seed=11)
    assert first == second
    assert first_lines == second_lines


def test_demo_needs_enough_players():
    with pytest.raises(PreconditionError):
        build_demo_game(SharedStateStore(), 3, random.Random(0))
    with pytest.raises(ValueError):
        build_demo_game(SharedStateStore(), 16, random.Random(0))


def test_witch_saves_herself():
    witch = Player(id="w", name="Witch", role=RoleId.WITCH)
    participant = RuleBasedParticipant(player=witch, rng=random.Random(0))
    action, target = participant.choose_witch_action(NightActions(werewolf_target="w"), [witch])
    assert action == WitchAction.SAVE
    assert target is None


def test_seer_prefers_unknown_players():
    seer = Player(id="s", name="Seer", role=RoleId.SEER)
    alive = [seer, Player(id="a", name="A"), Player(id="b", name="B")]
    participant = RuleBasedParticipant(player=seer, rng=random.Random(0))
    participant.remember("a", RoleId.VILLAGER)
    assert participant.choose_seer_target(alive) == "b"


def test_villager_votes_for_a_known_werewolf():
    voter = Player(id="v", name="V", role=RoleId.SEER)
    alive = [voter, Player(id="a", name="A"), Player(id="b", name="B"), Player(id="c", name="C")]
    participant = RuleBasedParticipant(player=voter, rng=random.Random(4))
    participant.remember("c", RoleId.WEREWOLF)
    assert participant.choose_vote(alive) == "c"
