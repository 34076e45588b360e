# campusvote/storage.py
"""In-process backends used for development and tests.

Each class mirrors its MongoDB counterpart in ``storage_mongo`` method for
method. Nothing here awaits between reading and writing shared state, so
on the event loop every method body runs as one uninterrupted step.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set

from bson import ObjectId

from campusvote.errors import DirectoryError, DuplicateVote
from campusvote.ledger import utcnow
from campusvote.models.activity_model import ActivityEntry
from campusvote.models.election_model import Candidate, CandidateIn, Position, PositionIn
from campusvote.models.vote_model import VoteRecord
from campusvote.models.voter_model import ROLE_ADMIN, Voter, VoterRegistration

logger = logging.getLogger(__name__)


class MemoryVoteStore:
    def __init__(self):
        self._votes: Dict[tuple, VoteRecord] = {}

    async def insert(self, record: VoteRecord) -> VoteRecord:
        key = (record.voter_id, record.position_id)
        # membership test and assignment must stay in the same step
        if key in self._votes:
            raise DuplicateVote(voter_id=record.voter_id, position_id=record.position_id)
        self._votes[key] = record
        return record

    async def find(self, voter_id: str, position_id: str) -> Optional[VoteRecord]:
        return self._votes.get((voter_id, position_id))

    async def by_voter(self, voter_id: str) -> List[VoteRecord]:
        return [v for (vid, _), v in self._votes.items() if vid == voter_id]

    async def count_by_candidate(self, position_id: str) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for vote in self._votes.values():
            if vote.position_id == position_id:
                counts[vote.candidate_id] = counts.get(vote.candidate_id, 0) + 1
        return counts

    async def voters_with_votes(self, voter_ids: Set[str]) -> Set[str]:
        return {vid for (vid, _) in self._votes if vid in voter_ids}

    async def count(self) -> int:
        return len(self._votes)

    async def clear(self) -> None:
        self._votes = {}


class MemoryCatalog:
    def __init__(self):
        self._positions: Dict[str, Position] = {}
        self._candidates: Dict[str, Candidate] = {}

    async def create_position(self, data: PositionIn) -> Position:
        if any(p.name == data.name for p in self._positions.values()):
            raise ValueError(f"Position '{data.name}' already exists.")
        position = Position(id=str(ObjectId()), **data.model_dump())
        self._positions[position.id] = position
        return position

    async def get_position(self, position_id: str) -> Optional[Position]:
        return self._positions.get(position_id)

    async def list_positions(self) -> List[Position]:
        return list(self._positions.values())

    async def set_position_open(self, position_id: str, is_open: bool) -> Optional[Position]:
        position = self._positions.get(position_id)
        if position is None:
            return None
        updated = position.model_copy(update={"is_open": is_open})
        self._positions[position_id] = updated
        return updated

    async def create_candidate(self, data: CandidateIn) -> Candidate:
        if data.position_id not in self._positions:
            raise ValueError("Position does not exist.")
        candidate = Candidate(id=str(ObjectId()), **data.model_dump())
        self._candidates[candidate.id] = candidate
        return candidate

    async def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        return self._candidates.get(candidate_id)

    async def list_candidates(self, position_id: Optional[str] = None) -> List[Candidate]:
        return [
            c for c in self._candidates.values()
            if position_id is None or c.position_id == position_id
        ]

    async def position_is_open(self, position_id: str, now: datetime) -> bool:
        position = self._positions.get(position_id)
        return position is not None and position.accepts_votes(now)

    async def candidate_belongs_to_position(self, candidate_id: str, position_id: str) -> bool:
        candidate = self._candidates.get(candidate_id)
        return candidate is not None and candidate.position_id == position_id


class MemoryDirectory:
    def __init__(self):
        self._verified: Dict[str, bool] = {}  # student id -> is_registered
        self._voters: Dict[str, Voter] = {}
        self._password_hashes: Dict[str, str] = {}

    async def add_verified_ids(self, student_ids: List[str]) -> int:
        added = 0
        for sid in student_ids:
            if sid not in self._verified:
                self._verified[sid] = False
                added += 1
        return added

    async def register(self, data: VoterRegistration, password_hash: str) -> Voter:
        if data.student_id not in self._verified:
            raise DirectoryError("Student ID is not on the verified list.")
        if self._verified[data.student_id] or data.student_id in self._voters:
            raise DirectoryError("Student ID is already registered.")
        voter = Voter(
            id=data.student_id,
            first_name=data.first_name,
            last_name=data.last_name,
            department=data.department,
        )
        self._verified[data.student_id] = True
        self._voters[voter.id] = voter
        self._password_hashes[voter.id] = password_hash
        return voter

    async def save_admin(self, username: str, password_hash: str) -> Voter:
        existing = self._voters.get(username)
        if existing is not None and existing.role != ROLE_ADMIN:
            raise DirectoryError(f"'{username}' belongs to a registered student.")
        admin = Voter(
            id=username, first_name="Election", last_name="Admin",
            department="administration", eligible=False, role=ROLE_ADMIN,
        )
        self._voters[username] = admin
        self._password_hashes[username] = password_hash
        return admin

    async def get_voter(self, voter_id: str) -> Optional[Voter]:
        return self._voters.get(voter_id)

    async def get_password_hash(self, voter_id: str) -> Optional[str]:
        return self._password_hashes.get(voter_id)

    async def is_eligible(self, voter_id: str) -> bool:
        voter = self._voters.get(voter_id)
        return voter is not None and voter.eligible and voter.role != ROLE_ADMIN

    async def cohort_of(self, voter_id: str) -> Optional[str]:
        voter = self._voters.get(voter_id)
        return voter.department if voter else None

    async def set_eligibility(self, voter_id: str, eligible: bool) -> Optional[Voter]:
        voter = self._voters.get(voter_id)
        if voter is None:
            return None
        voter = voter.model_copy(update={"eligible": eligible})
        self._voters[voter_id] = voter
        return voter

    async def cohort_members(self, cohort: str) -> Set[str]:
        return {
            v.id for v in self._voters.values()
            if v.department == cohort and v.role != ROLE_ADMIN
        }

    async def cohorts(self) -> Dict[str, Set[str]]:
        groups: Dict[str, Set[str]] = {}
        for voter in self._voters.values():
            if voter.role != ROLE_ADMIN:
                groups.setdefault(voter.department, set()).add(voter.id)
        return groups


class MemorySettings:
    def __init__(self, voting_enabled: bool = False):
        self._voting_enabled = voting_enabled

    async def is_voting_enabled(self) -> bool:
        return self._voting_enabled

    async def set_voting_enabled(self, enabled: bool) -> bool:
        self._voting_enabled = enabled
        logger.info(f"Voting {'enabled' if enabled else 'disabled'}")
        return enabled


class MemoryActivityLog:
    def __init__(self, clock=utcnow):
        self._entries: List[ActivityEntry] = []
        self.clock = clock

    async def record(self, action: str, actor_id: Optional[str] = None, details: str = "") -> ActivityEntry:
        entry = ActivityEntry(
            id=str(ObjectId()), action=action, actor_id=actor_id,
            details=details, timestamp=self.clock(),
        )
        self._entries.append(entry)
        return entry

    async def recent(self, limit: int = 10) -> List[ActivityEntry]:
        return list(reversed(self._entries))[:limit]
