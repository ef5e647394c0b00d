# gameservers/services/listings.py

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gameservers.models.listing import Listing, MAX_PORT, MIN_PORT, REGIONS
from gameservers.models.vote import Vote
from gameservers.services import games as game_catalog
from gameservers.services.ranking import ListingFilters, run_query

logger = logging.getLogger(__name__)

# user_id and created_at are fixed at creation
UPDATABLE_FIELDS = {
    "name", "description", "game", "ip", "port", "region",
    "is_approved", "is_featured",
    "is_online", "current_players", "max_players", "current_map",
}


class ListingValidationError(ValueError):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _check_port(port: int) -> None:
    if not isinstance(port, int) or isinstance(port, bool) or not MIN_PORT <= port <= MAX_PORT:
        raise ListingValidationError(f"Port must be between {MIN_PORT} and {MAX_PORT}")


def _check_game(db: Session, game: str) -> None:
    if game_catalog.get_game_by_short_name(db, game) is None:
        raise ListingValidationError(f"Unknown game: {game}")


def _check_region(region: str) -> None:
    if region not in REGIONS:
        raise ListingValidationError(f"Region must be one of {', '.join(REGIONS)}")


def get_listing(db: Session, listing_id: int) -> Optional[Listing]:
    return db.get(Listing, listing_id)


def create_listing(
    db: Session,
    user_id: int,
    name: str,
    description: str,
    game: str,
    ip: str,
    port: int,
    region: str,
) -> Listing:
    _check_port(port)
    _check_region(region)
    _check_game(db, game)

    now = _now()
    listing = Listing(
        user_id=user_id,
        name=name,
        description=description,
        game=game,
        ip=ip,
        port=port,
        region=region,
        is_approved=False,
        is_featured=False,
        is_online=False,
        current_players=0,
        max_players=0,
        current_map=None,
        created_at=now,
        last_updated=now,
    )
    db.add(listing)
    db.commit()
    db.refresh(listing)
    logger.info("Server %s submitted by user %s (pending approval)", listing.id, user_id)
    return listing


def update_listing(db: Session, listing_id: int, **fields) -> Optional[Listing]:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ListingValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
    if "port" in fields:
        _check_port(fields["port"])
    if "region" in fields:
        _check_region(fields["region"])
    if "game" in fields:
        _check_game(db, fields["game"])

    listing = db.get(Listing, listing_id)
    if listing is None:
        return None

    for key, value in fields.items():
        setattr(listing, key, value)
    listing.last_updated = _now()

    db.commit()
    db.refresh(listing)
    return listing


def delete_listing(db: Session, listing_id: int) -> bool:
    listing = db.get(Listing, listing_id)
    if listing is None:
        return False
    db.delete(listing)
    db.commit()
    return True


def query_listings(db: Session, filters: ListingFilters) -> Tuple[List[Listing], int]:
    return run_query(db, filters)


def pending_listings(db: Session) -> List[Listing]:
    q = select(Listing).where(Listing.is_approved.is_(False)).order_by(Listing.created_at.desc(), Listing.id.desc())
    return list(db.execute(q).scalars().all())


def approved_listings(db: Session) -> List[Listing]:
    q = select(Listing).where(Listing.is_approved.is_(True)).order_by(Listing.id)
    return list(db.execute(q).scalars().all())


def listings_by_user(db: Session, user_id: int) -> List[Listing]:
    q = select(Listing).where(Listing.user_id == user_id).order_by(Listing.created_at.desc(), Listing.id.desc())
    return list(db.execute(q).scalars().all())


# ---------- votes ----------
def _delete_vote(db: Session, user_id: int, listing_id: int) -> bool:
    result = db.execute(
        delete(Vote).where(Vote.user_id == user_id, Vote.server_id == listing_id)
    )
    return result.rowcount > 0


def toggle_vote(db: Session, user_id: int, listing_id: int) -> bool:
    """Remove the user's vote if present, add it otherwise. Returns ``voted``.

    The unique constraint on (user_id, server_id) decides races: when a
    concurrent toggle inserts first, our insert fails and we delete instead,
    so each call flips the state exactly once. Not safe to retry blindly.
    """
    try:
        if _delete_vote(db, user_id, listing_id):
            db.commit()
            return False

        try:
            with db.begin_nested():
                db.add(Vote(user_id=user_id, server_id=listing_id))
                db.flush()
        except IntegrityError:
            if not _delete_vote(db, user_id, listing_id):
                raise
            db.commit()
            return False

        db.commit()
        return True
    except Exception:
        db.rollback()
        raise


def has_voted(db: Session, user_id: int, listing_id: int) -> bool:
    q = select(Vote.id).where(Vote.user_id == user_id, Vote.server_id == listing_id)
    return db.execute(q).first() is not None


def vote_count(db: Session, listing_id: int) -> int:
    return db.scalar(select(func.count(Vote.id)).where(Vote.server_id == listing_id)) or 0


def vote_counts(db: Session, listing_ids: Iterable[int]) -> Dict[int, int]:
    ids = list(listing_ids)
    if not ids:
        return {}
    rows = db.execute(
        select(Vote.server_id, func.count(Vote.id))
        .where(Vote.server_id.in_(ids))
        .group_by(Vote.server_id)
    ).all()
    counts = {listing_id: 0 for listing_id in ids}
    counts.update({server_id: count for server_id, count in rows})
    return counts


def voted_ids(db: Session, user_id: Optional[int], listing_ids: Iterable[int]) -> Set[int]:
    ids = list(listing_ids)
    if user_id is None or not ids:
        return set()
    return set(
        db.execute(
            select(Vote.server_id).where(Vote.user_id == user_id, Vote.server_id.in_(ids))
        ).scalars().all()
    )
