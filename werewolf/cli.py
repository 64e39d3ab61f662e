"""Command line entry point: a fully automatic demo game."""

from __future__ import annotations

import argparse
import random
import sys
from typing import List, Optional

from .autoplay import AutoplayDirector, RuleBasedTable
from .config import configure_logging, load_settings
from .gm import GameMaster
from .store import SharedStateStore


DEFAULT_NAMES: List[str] = [
    "Alice",
    "Bastien",
    "Chloe",
    "Damien",
    "Elise",
    "Fabien",
    "Gaelle",
    "Hugo",
    "Ines",
    "Jules",
    "Karim",
    "Lea",
    "Maxime",
    "Nora",
    "Oscar",
]


def build_demo_game(
    store: SharedStateStore,
    player_count: int,
    rng: random.Random,
    moderator_name: str = "Moderator",
) -> GameMaster:
    if player_count > len(DEFAULT_NAMES):
        raise ValueError(f"at most {len(DEFAULT_NAMES)} demo players are available")
    settings = load_settings()
    settings.max_players = max(settings.max_players, player_count + 1)
    gm = GameMaster.create(store, moderator_name, settings=settings, rng=rng)
    for name in DEFAULT_NAMES[:player_count]:
        gm.join(name)
    gm.assign_roles()
    return gm


def run_cli(argv: List[str] | None = None) -> Optional[str]:
    parser = argparse.ArgumentParser(description="Automatic werewolf game run by the moderator engine")
    parser.add_argument("--seed", type=int, default=None, help="random seed for a reproducible game")
    parser.add_argument("--players", type=int, default=8, help="number of players besides the moderator")
    parser.add_argument("--max-rounds", type=int, default=20, help="stop after this many nights")
    parser.add_argument("--log-level", default=None, help="logging level (defaults to WEREWOLF_LOG_LEVEL)")
    args = parser.parse_args(argv)

    if hasattr(sys.stdout, "reconfigure"):
        try:
            sys.stdout.reconfigure(encoding="utf-8")
        except ValueError:
            pass

    settings = load_settings()
    configure_logging(args.log_level or settings.log_level)

    rng = random.Random(args.seed)
    store = SharedStateStore()
    gm = build_demo_game(store, args.players, rng)
    for player in gm.record.participants:
        print(f"{player.name}: {player.role.value}")

    director = AutoplayDirector(gm, RuleBasedTable(rng=rng), max_rounds=args.max_rounds)
    result = director.run()
    if result is None:
        print("Game stopped without a winner.")
        return None
    print(f"Game over, winner: {result.winner.value}.")
    return result.winner.value


def main() -> None:
    run_cli()


__all__ = ["run_cli", "build_demo_game", "main"]
