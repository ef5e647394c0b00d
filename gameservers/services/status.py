"""Merges live probe results into listing records."""
import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Awaitable, Callable, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from gameservers.models.listing import Listing
from gameservers.services import listings as listing_repo
from gameservers.services.query import Online, ProbeResult, probe

logger = logging.getLogger(__name__)

Prober = Callable[[str, str, int], Awaitable[ProbeResult]]


@dataclass(frozen=True)
class StatusUpdate:
    """The four status fields; always written together."""

    is_online: bool
    current_players: int
    max_players: int
    current_map: Optional[str]

    @classmethod
    def offline(cls) -> "StatusUpdate":
        return cls(is_online=False, current_players=0, max_players=0, current_map=None)

    @classmethod
    def from_probe(cls, result: ProbeResult) -> "StatusUpdate":
        if isinstance(result, Online):
            return cls(
                is_online=True,
                current_players=result.current_players,
                max_players=result.max_players,
                current_map=result.current_map,
            )
        return cls.offline()

    def as_fields(self) -> dict:
        return asdict(self)


async def refresh(listing: Listing, prober: Prober = probe) -> StatusUpdate:
    try:
        result = await prober(listing.game, listing.ip, listing.port)
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.warning("Probe for server %s (%s:%s) failed", listing.id, listing.ip, listing.port, exc_info=True)
        return StatusUpdate.offline()
    return StatusUpdate.from_probe(result)


async def refresh_all(listings: Iterable[Listing], prober: Prober = probe) -> Dict[int, StatusUpdate]:
    """Probe every listing concurrently; one slow server only costs its own timeout."""
    listings = list(listings)
    outcomes = await asyncio.gather(
        *(refresh(listing, prober) for listing in listings),
        return_exceptions=True,
    )

    results: Dict[int, StatusUpdate] = {}
    for listing, outcome in zip(listings, outcomes):
        if isinstance(outcome, StatusUpdate):
            results[listing.id] = outcome
        else:
            logger.warning("Refresh of server %s ended with %r", listing.id, outcome)
            results[listing.id] = StatusUpdate.offline()
    return results


def apply_status(db: Session, listing_id: int, update: StatusUpdate) -> Optional[Listing]:
    return listing_repo.update_listing(db, listing_id, **update.as_fields())


def get_prober() -> Prober:
    """FastAPI dependency; tests override it with a fake prober."""
    return probe
