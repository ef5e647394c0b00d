from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from sqlalchemy.orm import Session

from gameservers.core.auth import get_current_user, get_current_user_optional
from gameservers.core.db import get_db
from gameservers.models.user import User
from gameservers.schemas.vote import VoteCountOut, VoteToggleOut
from gameservers.services import listings as listing_repo

router = APIRouter(prefix="/api/votes", tags=["votes"])


# ---------- vote toggle ----------
@router.post("/{server_id}", response_model=VoteToggleOut)
def toggle_vote(
    response: Response,
    server_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    if not listing_repo.get_listing(db, server_id):
        raise HTTPException(status_code=404, detail="Server not found")

    voted = listing_repo.toggle_vote(db, me.id, server_id)
    vote_count = listing_repo.vote_count(db, server_id)

    if voted:
        response.status_code = status.HTTP_201_CREATED
        return VoteToggleOut(message="Vote added successfully", voted=True, vote_count=vote_count)
    return VoteToggleOut(message="Vote removed successfully", voted=False, vote_count=vote_count)


@router.get("/{server_id}/count", response_model=VoteCountOut)
def get_vote_count(
    server_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    me: Optional[User] = Depends(get_current_user_optional),
):
    if not listing_repo.get_listing(db, server_id):
        raise HTTPException(status_code=404, detail="Server not found")

    return VoteCountOut(
        vote_count=listing_repo.vote_count(db, server_id),
        has_voted=bool(me and listing_repo.has_voted(db, me.id, server_id)),
    )
