import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Path, Response, status
from starlette.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gameservers.core.auth import get_current_user, get_current_user_optional
from gameservers.core.db import get_db
from gameservers.models.listing import Listing
from gameservers.models.user import User
from gameservers.schemas.listing import (
    GameOut, PaginationOut, ServerCreateIn, ServerCreatedOut, ServerOut, ServerPageOut, ServerWithVotesOut,
)
from gameservers.services import games as game_catalog
from gameservers.services import listings as listing_repo
from gameservers.services import status as status_service
from gameservers.services.listings import ListingValidationError
from gameservers.services.ranking import ListingFilters, featured_filters, total_pages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/servers", tags=["servers"])

DEFAULT_PAGE_SIZE = 9


# ---------- helpers ----------
def to_server_out(s: Listing, vote_count: int, has_voted: bool) -> ServerWithVotesOut:
    return ServerWithVotesOut(
        **ServerOut.model_validate(s).model_dump(),
        vote_count=vote_count,
        has_voted=has_voted,
    )


def with_votes(db: Session, rows: List[Listing], me: Optional[User]) -> List[ServerWithVotesOut]:
    ids = [s.id for s in rows]
    counts = listing_repo.vote_counts(db, ids)
    mine = listing_repo.voted_ids(db, me.id if me else None, ids)
    return [to_server_out(s, counts.get(s.id, 0), s.id in mine) for s in rows]


# ---------- 1) listing (token optional) ----------
@router.get("", response_model=ServerPageOut)
def list_servers(
    search: Optional[str] = Query(None, max_length=100),
    game: Optional[str] = None,
    region: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(online|featured)?$"),
    sort: str = Query("votes", pattern="^(votes|players|newest|name)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    me: Optional[User] = Depends(get_current_user_optional),
):
    filters = ListingFilters(
        search=search or None,
        game=game or None,
        region=region or None,
        status=status_filter or None,
        sort=sort,
        page=page,
        limit=limit,
    )
    rows, total = listing_repo.query_listings(db, filters)
    return ServerPageOut(
        servers=with_votes(db, rows, me),
        pagination=PaginationOut(total=total, page=page, limit=limit, total_pages=total_pages(total, limit)),
    )


# ---------- 2) featured carousel ----------
@router.get("/featured", response_model=List[ServerWithVotesOut])
def featured_servers(
    db: Session = Depends(get_db),
    me: Optional[User] = Depends(get_current_user_optional),
):
    rows, _ = listing_repo.query_listings(db, featured_filters())
    return with_votes(db, rows, me)


# ---------- 3) my submissions (any approval state) ----------
@router.get("/mine", response_model=List[ServerWithVotesOut])
def my_servers(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return with_votes(db, listing_repo.listings_by_user(db, me.id), me)


# ---------- 4) game catalog ----------
@router.get("/games/list", response_model=List[GameOut])
def list_games(db: Session = Depends(get_db)):
    return game_catalog.list_games(db)


# ---------- 5) detail, with a best-effort live refresh ----------
def _store_and_render(db: Session, s: Listing, update: status_service.StatusUpdate, me: Optional[User]):
    # blocking storage work; callers on the event loop run this in the threadpool
    listing_id = s.id
    try:
        refreshed = status_service.apply_status(db, listing_id, update)
        if refreshed is not None:
            s = refreshed
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not store live status for server %s", listing_id)

    vote_count = listing_repo.vote_count(db, listing_id)
    has_voted = bool(me and listing_repo.has_voted(db, me.id, listing_id))
    return to_server_out(s, vote_count, has_voted)


@router.get("/{server_id}", response_model=ServerWithVotesOut)
async def get_server(
    server_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    me: Optional[User] = Depends(get_current_user_optional),
    prober: status_service.Prober = Depends(status_service.get_prober),
):
    s = await run_in_threadpool(listing_repo.get_listing, db, server_id)
    if not s:
        raise HTTPException(status_code=404, detail="Server not found")

    update = await status_service.refresh(s, prober)
    return await run_in_threadpool(_store_and_render, db, s, update, me)


# ---------- 6) submit ----------
@router.post("", response_model=ServerCreatedOut, status_code=status.HTTP_201_CREATED)
def create_server(
    body: ServerCreateIn,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    try:
        s = listing_repo.create_listing(db, me.id, **body.model_dump())
    except ListingValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return ServerCreatedOut(
        **ServerOut.model_validate(s).model_dump(),
        message="Server submitted successfully and is pending approval",
    )


# ---------- 7) withdraw (owner or admin) ----------
@router.delete("/{server_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_server(
    server_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    s = listing_repo.get_listing(db, server_id)
    if not s:
        raise HTTPException(status_code=404, detail="Server not found")
    if s.user_id != me.id and not me.is_admin:
        raise HTTPException(status_code=403, detail="You can only delete your own servers")

    listing_repo.delete_listing(db, server_id)
    logger.info("Server %s deleted by user %s", server_id, me.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
