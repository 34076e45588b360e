import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from campusvote.activity import record_activity
from campusvote.dependencies import Services, get_services, require_admin
from campusvote.models.activity_model import (
    ACTION_CANDIDATE_ADDED,
    ACTION_POSITION_CREATED,
    ACTION_POSITION_STATUS_CHANGED,
    ACTION_VERIFIED_IDS_ADDED,
    ACTION_VOTES_RESET,
    ACTION_VOTING_DISABLED,
    ACTION_VOTING_ENABLED,
    ActivityEntry,
)
from campusvote.models.election_model import (
    Candidate,
    CandidateIn,
    Position,
    PositionIn,
    PositionStatusUpdate,
)
from campusvote.models.voter_model import VerifiedIdsIn, Voter
from campusvote.notifications import VOTES_RESET, notify
from campusvote.schemas import VotingStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/election", tags=["Election"])


@router.post("/positions", response_model=Position, status_code=201)
async def create_position(
    position: PositionIn,
    admin: Voter = Depends(require_admin),
    services: Services = Depends(get_services),
):
    try:
        created = await services.catalog.create_position(position)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"{admin.id} created position '{created.name}'")
    await record_activity(
        services.activity, ACTION_POSITION_CREATED, admin.id, f"Created position: {created.name}"
    )
    return created


@router.get("/positions", response_model=List[Position])
async def list_positions(services: Services = Depends(get_services)):
    return await services.catalog.list_positions()


@router.patch("/positions/{position_id}/status", response_model=Position)
async def update_position_status(
    position_id: str,
    status_update: PositionStatusUpdate,
    admin: Voter = Depends(require_admin),
    services: Services = Depends(get_services),
):
    updated = await services.catalog.set_position_open(position_id, status_update.is_open)
    if updated is None:
        raise HTTPException(status_code=404, detail="Position not found.")
    logger.info(f"{admin.id} set position '{updated.name}' open={updated.is_open}")
    await record_activity(
        services.activity,
        ACTION_POSITION_STATUS_CHANGED,
        admin.id,
        f"{'Opened' if updated.is_open else 'Closed'} position: {updated.name}",
    )
    return updated


@router.post("/candidates", response_model=Candidate, status_code=201)
async def create_candidate(
    candidate: CandidateIn,
    admin: Voter = Depends(require_admin),
    services: Services = Depends(get_services),
):
    try:
        created = await services.catalog.create_candidate(candidate)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"{admin.id} added candidate '{created.name}' to position {created.position_id}")
    await record_activity(
        services.activity,
        ACTION_CANDIDATE_ADDED,
        admin.id,
        f"Added candidate {created.name} for position {created.position_id}",
    )
    return created


@router.get("/candidates", response_model=List[Candidate])
async def list_candidates(
    position_id: Optional[str] = None,
    services: Services = Depends(get_services),
):
    return await services.catalog.list_candidates(position_id)


@router.post("/verified-ids")
async def add_verified_ids(
    body: VerifiedIdsIn,
    admin: Voter = Depends(require_admin),
    services: Services = Depends(get_services),
):
    added = await services.directory.add_verified_ids(body.student_ids)
    await record_activity(
        services.activity, ACTION_VERIFIED_IDS_ADDED, admin.id, f"Added {added} verified student IDs"
    )
    return {"added": added, "submitted": len(body.student_ids)}


@router.get("/voting", response_model=VotingStatus)
async def get_voting_status(services: Services = Depends(get_services)):
    return VotingStatus(voting_enabled=await services.settings.is_voting_enabled())


@router.put("/voting", response_model=VotingStatus)
async def set_voting_status(
    status: VotingStatus,
    admin: Voter = Depends(require_admin),
    services: Services = Depends(get_services),
):
    enabled = await services.settings.set_voting_enabled(status.voting_enabled)
    logger.info(f"{admin.id} set voting_enabled={enabled}")
    await record_activity(
        services.activity, ACTION_VOTING_ENABLED if enabled else ACTION_VOTING_DISABLED, admin.id
    )
    return VotingStatus(voting_enabled=enabled)


@router.post("/reset-votes")
async def reset_votes(
    admin: Voter = Depends(require_admin),
    services: Services = Depends(get_services),
):
    await services.ledger.reset_all()
    logger.warning(f"{admin.id} reset all votes")
    await record_activity(services.activity, ACTION_VOTES_RESET, admin.id, "All votes cleared")
    notify(services.bus, VOTES_RESET, {})
    return {"message": "All votes have been reset."}


# ------------------------------
# ACTIVITY LOG
# ------------------------------
@router.get("/activity", response_model=List[ActivityEntry])
async def recent_activity(
    limit: int = Query(10, ge=1, le=200),
    _: Voter = Depends(require_admin),
    services: Services = Depends(get_services),
):
    return await services.activity.recent(limit)
