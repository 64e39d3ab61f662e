"""Runtime settings read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    host: str = "127.0.0.1"
    port: int = 3001
    debug: bool = False
    log_level: str = "INFO"
    timer_seconds: Optional[int] = 120
    max_phase_hops: int = 10
    max_players: int = 15


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build settings from ``WEREWOLF_*`` variables, reading ``.env`` first."""
    load_dotenv(env_file)
    timer = _env_int("WEREWOLF_TIMER_SECONDS", 120)
    return Settings(
        host=os.getenv("WEREWOLF_HOST", "127.0.0.1"),
        port=_env_int("WEREWOLF_PORT", 3001),
        debug=_env_bool("WEREWOLF_DEBUG", False),
        log_level=os.getenv("WEREWOLF_LOG_LEVEL", "INFO").upper(),
        timer_seconds=timer if timer > 0 else None,
        max_phase_hops=_env_int("WEREWOLF_MAX_PHASE_HOPS", 10),
        max_players=_env_int("WEREWOLF_MAX_PLAYERS", 15),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
