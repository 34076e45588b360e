from pydantic import BaseModel, Field

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"


class VoterRegistration(BaseModel):
    student_id: str = Field(..., min_length=1, examples=["STU-0042"])
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1, examples=["Computer Science"])
    password: str = Field(..., min_length=6)


class Voter(BaseModel):
    id: str
    first_name: str
    last_name: str
    department: str
    eligible: bool = True
    role: str = ROLE_STUDENT


class VerifiedIdsIn(BaseModel):
    student_ids: list[str] = Field(..., min_length=1)
