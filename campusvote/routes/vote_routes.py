from typing import List

from fastapi import APIRouter, Depends, HTTPException

from campusvote.dependencies import Services, get_current_user, get_services
from campusvote.models.vote_model import VoteIn, VoteRecord, VoteStatus
from campusvote.models.voter_model import Voter
from campusvote.schemas import DepartmentParticipation, ElectionStats, ErrorOut, PositionResult

vote_router = APIRouter(prefix="/vote", tags=["Vote"])
results_router = APIRouter(prefix="/results", tags=["Results"])


# ------------------------------
# CAST VOTE
# ------------------------------
CAST_ERRORS = {
    code: {"model": ErrorOut} for code in (400, 403, 404, 409, 503)
}


@vote_router.post("/cast", status_code=201, responses=CAST_ERRORS)
async def cast_vote(
    vote: VoteIn,
    user: Voter = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """
    Casts the caller's vote for one position.
    Rule violations are turned into JSON errors by the app's CastError handler.
    """
    record = await services.guard.attempt_cast_vote(user.id, vote.position_id, vote.candidate_id)
    return {"message": "Vote cast successfully!", "vote": record}


# ------------------------------
# CHECK IF USER HAS ALREADY VOTED
# ------------------------------
@vote_router.get("/check/{position_id}", response_model=VoteStatus)
async def check_vote(
    position_id: str,
    user: Voter = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    # Safe check before retrying a cast that timed out
    existing = await services.ledger.get_vote(user.id, position_id)
    return VoteStatus(
        position_id=position_id,
        has_voted=existing is not None,
        candidate_id=existing.candidate_id if existing else None,
    )


@vote_router.get("/mine", response_model=List[VoteRecord])
async def my_votes(
    user: Voter = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.ledger.votes_of(user.id)


# ------------------------------
# RESULTS
# ------------------------------
@results_router.get("", response_model=List[PositionResult])
async def get_all_results(
    _: Voter = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.reporter.all_results()


@results_router.get("/participation/departments", response_model=List[DepartmentParticipation])
async def get_department_participation(
    _: Voter = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.reporter.department_participation()


@results_router.get("/stats", response_model=ElectionStats)
async def get_stats(
    _: Voter = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.reporter.stats()


@results_router.get("/{position_id}", response_model=PositionResult)
async def get_results(
    position_id: str,
    _: Voter = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    result = await services.reporter.position_results(position_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Position not found.")
    return result
