import logging
from typing import Dict, List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Path
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from gameservers.core.auth import require_admin
from gameservers.core.db import get_db
from gameservers.models.user import User
from gameservers.schemas.admin import AdminServerOut, ApproveIn, FeatureIn, RefreshOut, StatusOut
from gameservers.schemas.listing import ServerOut
from gameservers.services import listings as listing_repo
from gameservers.services import status as status_service
from gameservers.services.email import send_server_approval_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/servers/pending", response_model=List[ServerOut])
def pending_servers(db: Session = Depends(get_db)):
    return listing_repo.pending_listings(db)


@router.patch("/servers/{server_id}", response_model=AdminServerOut)
def approve_server(
    body: ApproveIn,
    background: BackgroundTasks,
    server_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
):
    s = listing_repo.update_listing(db, server_id, is_approved=body.approve)
    if s is None:
        raise HTTPException(status_code=404, detail="Server not found")
    logger.info("Server %s %s", s.id, "approved" if body.approve else "rejected")

    owner = db.get(User, s.user_id)
    if owner:
        # runs after the response; a mail failure never fails the action
        background.add_task(send_server_approval_email, owner.email, owner.username, s.name, body.approve)

    return AdminServerOut(
        message=f"Server {'approved' if body.approve else 'rejected'} successfully",
        server=ServerOut.model_validate(s),
    )


@router.patch("/servers/{server_id}/feature", response_model=AdminServerOut)
def feature_server(
    body: FeatureIn,
    server_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
):
    s = listing_repo.update_listing(db, server_id, is_featured=body.featured)
    if s is None:
        raise HTTPException(status_code=404, detail="Server not found")
    logger.info("Server %s %s", s.id, "featured" if body.featured else "unfeatured")

    return AdminServerOut(
        message=f"Server {'featured' if body.featured else 'unfeatured'} successfully",
        server=ServerOut.model_validate(s),
    )


def _apply_all(db: Session, results: Dict[int, status_service.StatusUpdate]) -> None:
    for server_id, update in results.items():
        status_service.apply_status(db, server_id, update)


@router.post("/servers/refresh", response_model=RefreshOut)
async def refresh_servers(
    db: Session = Depends(get_db),
    prober: status_service.Prober = Depends(status_service.get_prober),
):
    rows = await run_in_threadpool(listing_repo.approved_listings, db)
    results = await status_service.refresh_all(rows, prober)
    await run_in_threadpool(_apply_all, db, results)

    online = sum(1 for update in results.values() if update.is_online)
    logger.info("Refreshed %d servers, %d online", len(results), online)
    return RefreshOut(
        refreshed=len(results),
        online=online,
        results={server_id: StatusOut(**update.as_fields()) for server_id, update in results.items()},
    )
