"""Filter, sort and paginate approved listings."""
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from gameservers.models.listing import Listing
from gameservers.models.vote import Vote

SORTS = ("votes", "players", "newest", "name")
STATUSES = ("online", "featured")

FEATURED_LIMIT = 3


@dataclass
class ListingFilters:
    search: Optional[str] = None
    game: Optional[str] = None
    region: Optional[str] = None
    status: Optional[str] = None
    sort: str = "votes"
    is_featured: Optional[bool] = None
    page: int = 1
    # None means "no pagination"
    limit: Optional[int] = None

    def __post_init__(self):
        if self.sort not in SORTS:
            raise ValueError(f"sort must be one of {', '.join(SORTS)}")
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.limit is not None and self.limit < 1:
            raise ValueError("limit must be >= 1")


def featured_filters() -> ListingFilters:
    return ListingFilters(is_featured=True, limit=FEATURED_LIMIT)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def filtered(filters: ListingFilters) -> Select:
    # not overridable: unapproved listings never reach a public query
    q = select(Listing).where(Listing.is_approved.is_(True))

    if filters.search:
        like = f"%{_escape_like(filters.search)}%"
        q = q.where(or_(
            Listing.name.ilike(like, escape="\\"),
            Listing.description.ilike(like, escape="\\"),
            Listing.ip.ilike(like, escape="\\"),
        ))
    if filters.game:
        q = q.where(Listing.game == filters.game)
    if filters.region:
        q = q.where(Listing.region == filters.region)

    if filters.status == "online":
        q = q.where(Listing.is_online.is_(True))
    elif filters.status == "featured":
        q = q.where(Listing.is_featured.is_(True))

    if filters.is_featured is not None:
        q = q.where(Listing.is_featured.is_(filters.is_featured))
    return q


def vote_totals():
    return (
        select(Vote.server_id.label("server_id"), func.count(Vote.id).label("vote_count"))
        .group_by(Vote.server_id)
        .subquery("vote_totals")
    )


def ordered(q: Select, sort: str) -> Select:
    # id is the last key everywhere so paging is deterministic on ties
    if sort == "votes":
        totals = vote_totals()
        q = q.outerjoin(totals, totals.c.server_id == Listing.id)
        return q.order_by(func.coalesce(totals.c.vote_count, 0).desc(), Listing.id.asc())
    if sort == "players":
        return q.order_by(Listing.current_players.desc(), Listing.id.asc())
    if sort == "newest":
        return q.order_by(Listing.created_at.desc(), Listing.id.desc())
    return q.order_by(func.lower(Listing.name).asc(), Listing.name.asc(), Listing.id.asc())


def run_query(db: Session, filters: ListingFilters) -> Tuple[List[Listing], int]:
    q = filtered(filters)
    total = db.scalar(select(func.count()).select_from(q.subquery()))

    q = ordered(q, filters.sort)
    if filters.limit is not None:
        q = q.offset((filters.page - 1) * filters.limit).limit(filters.limit)

    rows = db.execute(q).scalars().all()
    return list(rows), total


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
