import pytest

from werewolf.store import SharedStateStore, diff_trees, flatten


def test_nested_paths():
    store = SharedStateStore()
    store.set("games/ABC123/config/status", "lobby")
    assert store.get("games/ABC123") == {"config": {"status": "lobby"}}
    assert store.exists("/games/ABC123/config/")
    assert store.get("games/ZZZ999") is None


def test_reads_are_copies():
    store = SharedStateStore()
    store.set("a/b", {"c": 1})
    store.get("a/b")["c"] = 2
    assert store.get("a/b/c") == 1


def test_update_is_all_or_nothing():
    store = SharedStateStore()
    store.set("a/b", 1)
    with pytest.raises(ValueError):
        store.update({"a/b": 2, "a/c": 3, "/": 4})
    assert store.get("a") == {"b": 1}


def test_none_and_empty_remove_keys():
    store = SharedStateStore()
    store.update({"a/b": 1, "a/c": 2, "d": 3})
    store.update({"a/b": None, "d": {}})
    assert store.get("") == {"a": {"c": 2}}
    store.delete("missing/path")
    assert store.get("missing") is None


def test_subscribers_see_their_subtree():
    store = SharedStateStore()
    seen = []
    unsubscribe = store.subscribe("games/A/state", seen.append)
    assert seen == [None]

    store.set("games/A/state/phase", "night_start")
    store.set("games/B/state/phase", "day_vote")
    store.set("games/A", {"state": {"phase": "day_vote"}})
    assert seen == [None, {"phase": "night_start"}, {"phase": "day_vote"}]

    unsubscribe()
    store.set("games/A/state/phase", "finished")
    assert len(seen) == 3


def test_flatten_and_diff():
    before = {"players": {"p1": {"alive": True}}, "votes": {"p1": "p2"}}
    after = {"players": {"p1": {"alive": False}}, "votes": {}}
    assert flatten(after, "g") == {"g/players/p1/alive": False, "g/votes": {}}
    assert diff_trees(before, after, prefix="g") == {
        "g/players/p1/alive": False,
        "g/votes": {},
        "g/votes/p1": None,
    }


def test_applying_a_diff_reproduces_the_tree():
    store = SharedStateStore()
    before = {"x": {"y": 1, "z": 2}, "w": [1, 2]}
    after = {"x": {"y": 5}, "w": [3]}
    store.update(diff_trees({}, before, prefix="root"))
    store.update(diff_trees(before, after, prefix="root"))
    assert store.get("root") == after
