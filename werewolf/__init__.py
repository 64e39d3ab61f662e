"""Moderator engine for the Werewolf party game."""

from .gm import GameMaster, PhaseChange
from .store import SharedStateStore

__all__ = ["GameMaster", "PhaseChange", "SharedStateStore"]
