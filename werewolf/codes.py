"""Game codes shared with participants to join a table."""

from __future__ import annotations

import random
import re
import string
from typing import Callable, Optional

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6
CODE_PATTERN = re.compile(r"^[A-Z0-9]{6}$")


def generate_game_code(rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    return "".join(rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def format_game_code(code: Optional[str]) -> str:
    if not code:
        return ""
    return code.strip().upper()


def is_valid_game_code(code: Optional[str]) -> bool:
    if not code or not isinstance(code, str):
        return False
    return bool(CODE_PATTERN.match(format_game_code(code)))


def unique_game_code(
    taken: Callable[[str], bool],
    rng: Optional[random.Random] = None,
    attempts: int = 50,
) -> str:
    """Draw codes until ``taken`` rejects none of them."""
    rng = rng or random.Random()
    for _ in range(attempts):
        code = generate_game_code(rng)
        if not taken(code):
            return code
    raise RuntimeError(f"no free game code after {attempts} attempts")
