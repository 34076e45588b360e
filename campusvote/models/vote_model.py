from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class VoteIn(BaseModel):
    """Body of a cast request. The voter comes from the bearer token."""
    position_id: str = Field(..., min_length=1, examples=["president"])
    candidate_id: str = Field(..., min_length=1)


class VoteRecord(BaseModel):
    voter_id: str
    position_id: str
    candidate_id: str
    timestamp: datetime


class VoteStatus(BaseModel):
    position_id: str
    has_voted: bool
    candidate_id: Optional[str] = None
