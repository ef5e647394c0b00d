"""Live status probes for remote game servers.

:func:`probe` is the only entry point the rest of the application uses. It
picks the driver for a game code, bounds every attempt with a timeout and
never raises: whatever goes wrong, the caller gets :data:`OFFLINE`.
"""
import asyncio
import logging
from typing import Dict, Optional

import a2s
import aiohttp

from gameservers.core.config import settings
from gameservers.services.query.base import (
    OFFLINE, GameQueryDriver, Offline, OfflineDriver, Online, ProbeResult, QueryError,
)
from gameservers.services.query.fivem import FiveMDriver
from gameservers.services.query.minecraft import MinecraftDriver
from gameservers.services.query.source import SourceDriver

logger = logging.getLogger(__name__)

DRIVERS: Dict[str, GameQueryDriver] = {
    "cs2": SourceDriver(),
    "rust": SourceDriver(),
    "valheim": SourceDriver(query_port_offset=1),
    "gta5": FiveMDriver(),
    "minecraft": MinecraftDriver(),
}

_fallback = OfflineDriver()

# an unreachable or misbehaving server, not a bug on our side
EXPECTED_FAILURES = (
    asyncio.TimeoutError,
    asyncio.IncompleteReadError,
    OSError,
    QueryError,
    aiohttp.ClientError,
    a2s.BrokenMessageError,
    a2s.BufferExhaustedError,
)


def driver_for(game: str) -> GameQueryDriver:
    return DRIVERS.get(game, _fallback)


async def probe(
    game: str,
    host: str,
    port: int,
    timeout: Optional[float] = None,
    attempts: Optional[int] = None,
) -> ProbeResult:
    timeout = settings.QUERY_TIMEOUT_SECONDS if timeout is None else timeout
    attempts = settings.QUERY_MAX_ATTEMPTS if attempts is None else attempts

    driver = driver_for(game)
    if isinstance(driver, OfflineDriver):
        logger.warning("Unknown game type %r for %s:%s", game, host, port)
        return OFFLINE

    for attempt in range(1, max(1, attempts) + 1):
        try:
            return await asyncio.wait_for(driver.query(host, port, timeout), timeout)
        except asyncio.CancelledError:
            raise
        except EXPECTED_FAILURES as exc:
            logger.debug("%s probe %s:%s attempt %d/%d failed: %r",
                         driver.name, host, port, attempt, attempts, exc)
        except Exception:
            logger.warning("%s probe %s:%s raised unexpectedly", driver.name, host, port, exc_info=True)
    return OFFLINE


__all__ = [
    "DRIVERS",
    "GameQueryDriver",
    "OFFLINE",
    "Offline",
    "Online",
    "ProbeResult",
    "driver_for",
    "probe",
]
