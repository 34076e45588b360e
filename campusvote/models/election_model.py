from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class PositionIn(BaseModel):
    name: str = Field(..., min_length=1, examples=["President"])
    description: str = ""
    is_open: bool = True
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None

    @field_validator("opens_at", "closes_at")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def check_window(self):
        if self.opens_at and self.closes_at and self.closes_at <= self.opens_at:
            raise ValueError("closes_at must be later than opens_at")
        return self


class Position(PositionIn):
    id: str

    def accepts_votes(self, now: datetime) -> bool:
        if not self.is_open:
            return False
        if self.opens_at and now < self.opens_at:
            return False
        if self.closes_at and now >= self.closes_at:
            return False
        return True


class PositionStatusUpdate(BaseModel):
    is_open: bool


class CandidateIn(BaseModel):
    position_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    manifesto: str = ""


class Candidate(CandidateIn):
    id: str
