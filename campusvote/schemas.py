from typing import List
from pydantic import BaseModel


class CandidateTally(BaseModel):
    candidate_id: str
    name: str
    votes: int


class PositionResult(BaseModel):
    position_id: str
    position_name: str
    total_votes: int
    candidates: List[CandidateTally]


class DepartmentParticipation(BaseModel):
    department: str
    registered: int
    percentage: int


class ElectionStats(BaseModel):
    registered_voters: int
    positions: int
    candidates: int
    votes_cast: int


class VotingStatus(BaseModel):
    voting_enabled: bool


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ErrorOut(BaseModel):
    code: str
    detail: str
    retryable: bool = False
