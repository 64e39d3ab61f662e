import random

import pytest

from werewolf.codes import (
    CODE_LENGTH,
    format_game_code,
    generate_game_code,
    is_valid_game_code,
    unique_game_code,
)


def test_generated_codes_are_valid():
    rng = random.Random(3)
    for _ in range(20):
        code = generate_game_code(rng)
        assert len(code) == CODE_LENGTH
        assert is_valid_game_code(code)


def test_format_and_validate():
    assert format_game_code("  ab12cd ") == "AB12CD"
    assert format_game_code(None) == ""
    assert is_valid_game_code("ab12cd")
    assert not is_valid_game_code("AB12C")
    assert not is_valid_game_code("AB-12C")
    assert not is_valid_game_code(None)


def test_unique_code_skips_taken_codes():
    rng = random.Random(5)
    taken = {generate_game_code(random.Random(5))}
    code = unique_game_code(lambda c: c in taken, rng)
    assert code not in taken


def test_unique_code_gives_up():
    with pytest.raises(RuntimeError):
        unique_game_code(lambda c: True, random.Random(0), attempts=3)
