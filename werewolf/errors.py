"""Exceptions raised by the moderator engine."""

from __future__ import annotations


class WerewolfError(Exception):
    """Base class for every engine failure."""


class PreconditionError(WerewolfError, ValueError):
    """An intent was rejected before any state changed."""


class UnknownRoleError(PreconditionError, KeyError):
    def __str__(self) -> str:
        return f"unknown role: {self.args[0]!r}"


class UnknownPlayerError(PreconditionError, KeyError):
    def __str__(self) -> str:
        return f"unknown player: {self.args[0]!r}"


class GameFinishedError(PreconditionError):
    """The game already has a result; transitions are no longer meaningful."""


class StuckPhaseError(WerewolfError, RuntimeError):
    """The phase walk exhausted its hop bound without reaching a playable phase."""

    def __init__(self, start: str, last: str, hops: int) -> None:
        super().__init__(f"phase walk from {start} stuck on {last} after {hops} hops")
        self.start = start
        self.last = last
        self.hops = hops


class StoreUnavailableError(WerewolfError):
    """The shared state store rejected a read or write."""
