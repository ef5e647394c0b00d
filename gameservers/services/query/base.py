"""Uniform contract shared by every per-game query driver."""
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Online:
    current_players: int
    max_players: int
    current_map: Optional[str] = None


@dataclass(frozen=True)
class Offline:
    pass


ProbeResult = Union[Online, Offline]

OFFLINE = Offline()


class QueryError(Exception):
    """Raised by a driver when a response cannot be understood."""


class GameQueryDriver:
    """One subclass per game family (wire protocol).

    ``query`` performs a single attempt and is allowed to raise; timeouts,
    retries and the mapping of failures to :data:`OFFLINE` are handled by
    :func:`gameservers.services.query.probe`.
    """

    name = "base"

    async def query(self, host: str, port: int, timeout: float) -> Online:
        raise NotImplementedError


class OfflineDriver(GameQueryDriver):
    """Fallback for game codes without a driver."""

    name = "offline"

    async def query(self, host: str, port: int, timeout: float) -> Online:
        raise QueryError("no query driver for this game")


def to_int(value, default: int = 0) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return default
