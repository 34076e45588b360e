# campusvote/storage_mongo.py
import functools
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from campusvote.config import (
    ACTIVITY_COLLECTION_NAME,
    CANDIDATES_COLLECTION_NAME,
    LEDGER_STATE_COLLECTION_NAME,
    POSITIONS_COLLECTION_NAME,
    SETTINGS_COLLECTION_NAME,
    VERIFIED_IDS_COLLECTION_NAME,
    VOTERS_COLLECTION_NAME,
    VOTES_COLLECTION_NAME,
)
from campusvote.errors import DirectoryError, DuplicateVote, PersistenceError
from campusvote.ledger import utcnow
from campusvote.models.activity_model import ActivityEntry
from campusvote.models.election_model import Candidate, CandidateIn, Position, PositionIn
from campusvote.models.vote_model import VoteRecord
from campusvote.models.voter_model import ROLE_ADMIN, Voter, VoterRegistration

logger = logging.getLogger(__name__)

LEDGER_ID = "votes"
VOTING_ENABLED_KEY = "voting_enabled"


def translate_errors(func):
    """Turn driver failures into PersistenceError; domain errors pass through."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"MongoDB error in {func.__qualname__}: {e}")
            raise PersistenceError(f"Storage failure during {func.__name__}.") from e
    return wrapper


def _to_model(model, doc):
    data = {k: v for k, v in doc.items() if k != "_id"}
    return model(id=str(doc["_id"]), **data)


class MongoVoteStore:
    """Votes live under a ledger epoch.

    The unique index covers (epoch, voter_id, position_id), so the insert
    itself decides duplicates. Resetting bumps the epoch in one document
    update: every reader switches to the empty epoch at once, then the old
    epoch is purged.
    """

    def __init__(self, db):
        self.votes = db[VOTES_COLLECTION_NAME]
        self.state = db[LEDGER_STATE_COLLECTION_NAME]

    @translate_errors
    async def ensure_indexes(self) -> None:
        await self.votes.create_index(
            [("epoch", ASCENDING), ("voter_id", ASCENDING), ("position_id", ASCENDING)],
            unique=True,
            name="one_vote_per_position",
        )
        await self.votes.create_index([("epoch", ASCENDING), ("position_id", ASCENDING)])
        await self.state.update_one(
            {"_id": LEDGER_ID}, {"$setOnInsert": {"epoch": 0}}, upsert=True
        )

    async def _epoch(self) -> int:
        doc = await self.state.find_one({"_id": LEDGER_ID})
        return doc["epoch"] if doc else 0

    @translate_errors
    async def insert(self, record: VoteRecord) -> VoteRecord:
        doc = record.model_dump()
        doc["epoch"] = await self._epoch()
        try:
            await self.votes.insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateVote(voter_id=record.voter_id, position_id=record.position_id)
        return record

    @translate_errors
    async def find(self, voter_id: str, position_id: str) -> Optional[VoteRecord]:
        doc = await self.votes.find_one(
            {"epoch": await self._epoch(), "voter_id": voter_id, "position_id": position_id}
        )
        return VoteRecord(**doc) if doc else None

    @translate_errors
    async def by_voter(self, voter_id: str) -> List[VoteRecord]:
        cursor = self.votes.find({"epoch": await self._epoch(), "voter_id": voter_id})
        return [VoteRecord(**doc) async for doc in cursor]

    @translate_errors
    async def count_by_candidate(self, position_id: str) -> Dict[str, int]:
        pipeline = [
            {"$match": {"epoch": await self._epoch(), "position_id": position_id}},
            {"$group": {"_id": "$candidate_id", "count": {"$sum": 1}}},
        ]
        cursor = self.votes.aggregate(pipeline)
        return {row["_id"]: row["count"] async for row in cursor}

    @translate_errors
    async def voters_with_votes(self, voter_ids: Set[str]) -> Set[str]:
        if not voter_ids:
            return set()
        found = await self.votes.distinct(
            "voter_id", {"epoch": await self._epoch(), "voter_id": {"$in": list(voter_ids)}}
        )
        return set(found)

    @translate_errors
    async def count(self) -> int:
        return await self.votes.count_documents({"epoch": await self._epoch()})

    @translate_errors
    async def clear(self) -> None:
        state = await self.state.find_one_and_update(
            {"_id": LEDGER_ID},
            {"$inc": {"epoch": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        try:
            result = await self.votes.delete_many({"epoch": {"$lt": state["epoch"]}})
            logger.info(f"Ledger moved to epoch {state['epoch']}, purged {result.deleted_count} votes")
        except PyMongoError as e:
            # reset is already visible; leftovers are purged by the next reset
            logger.warning(f"Purging votes older than epoch {state['epoch']} failed: {e}")


class MongoCatalog:
    def __init__(self, db):
        self.positions = db[POSITIONS_COLLECTION_NAME]
        self.candidates = db[CANDIDATES_COLLECTION_NAME]

    @translate_errors
    async def ensure_indexes(self) -> None:
        await self.positions.create_index("name", unique=True)
        await self.candidates.create_index("position_id")

    @translate_errors
    async def create_position(self, data: PositionIn) -> Position:
        doc = data.model_dump()
        doc["_id"] = str(ObjectId())
        try:
            await self.positions.insert_one(doc)
        except DuplicateKeyError:
            raise ValueError(f"Position '{data.name}' already exists.")
        return _to_model(Position, doc)

    @translate_errors
    async def get_position(self, position_id: str) -> Optional[Position]:
        doc = await self.positions.find_one({"_id": position_id})
        return _to_model(Position, doc) if doc else None

    @translate_errors
    async def list_positions(self) -> List[Position]:
        return [_to_model(Position, doc) async for doc in self.positions.find({})]

    @translate_errors
    async def set_position_open(self, position_id: str, is_open: bool) -> Optional[Position]:
        doc = await self.positions.find_one_and_update(
            {"_id": position_id},
            {"$set": {"is_open": is_open}},
            return_document=ReturnDocument.AFTER,
        )
        return _to_model(Position, doc) if doc else None

    @translate_errors
    async def create_candidate(self, data: CandidateIn) -> Candidate:
        if await self.positions.count_documents({"_id": data.position_id}, limit=1) == 0:
            raise ValueError("Position does not exist.")
        doc = data.model_dump()
        doc["_id"] = str(ObjectId())
        await self.candidates.insert_one(doc)
        return _to_model(Candidate, doc)

    @translate_errors
    async def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        doc = await self.candidates.find_one({"_id": candidate_id})
        return _to_model(Candidate, doc) if doc else None

    @translate_errors
    async def list_candidates(self, position_id: Optional[str] = None) -> List[Candidate]:
        query = {} if position_id is None else {"position_id": position_id}
        return [_to_model(Candidate, doc) async for doc in self.candidates.find(query)]

    async def position_is_open(self, position_id: str, now: datetime) -> bool:
        position = await self.get_position(position_id)
        return position is not None and position.accepts_votes(now)

    @translate_errors
    async def candidate_belongs_to_position(self, candidate_id: str, position_id: str) -> bool:
        found = await self.candidates.count_documents(
            {"_id": candidate_id, "position_id": position_id}, limit=1
        )
        return found > 0


class MongoDirectory:
    def __init__(self, db):
        self.verified = db[VERIFIED_IDS_COLLECTION_NAME]
        self.voters = db[VOTERS_COLLECTION_NAME]

    @translate_errors
    async def ensure_indexes(self) -> None:
        await self.voters.create_index("department")

    @translate_errors
    async def add_verified_ids(self, student_ids: List[str]) -> int:
        added = 0
        for sid in student_ids:
            result = await self.verified.update_one(
                {"_id": sid}, {"$setOnInsert": {"is_registered": False}}, upsert=True
            )
            if result.upserted_id is not None:
                added += 1
        return added

    @translate_errors
    async def register(self, data: VoterRegistration, password_hash: str) -> Voter:
        # claiming the verified id is the single step that decides who registers
        claimed = await self.verified.find_one_and_update(
            {"_id": data.student_id, "is_registered": False},
            {"$set": {"is_registered": True}},
        )
        if claimed is None:
            if await self.verified.find_one({"_id": data.student_id}):
                raise DirectoryError("Student ID is already registered.")
            raise DirectoryError("Student ID is not on the verified list.")

        voter = Voter(
            id=data.student_id,
            first_name=data.first_name,
            last_name=data.last_name,
            department=data.department,
        )
        doc = voter.model_dump(exclude={"id"})
        doc["_id"] = voter.id
        doc["hashed_password"] = password_hash
        try:
            await self.voters.insert_one(doc)
        except DuplicateKeyError:
            raise DirectoryError("Student ID is already registered.")
        except PyMongoError:
            # release the claim so a retry can register
            await self.verified.update_one(
                {"_id": data.student_id}, {"$set": {"is_registered": False}}
            )
            raise
        return voter

    @translate_errors
    async def save_admin(self, username: str, password_hash: str) -> Voter:
        admin = Voter(
            id=username, first_name="Election", last_name="Admin",
            department="administration", eligible=False, role=ROLE_ADMIN,
        )
        doc = admin.model_dump(exclude={"id"})
        doc["hashed_password"] = password_hash
        # only an existing admin document may be replaced; a student with this id blocks the seed
        try:
            await self.voters.replace_one({"_id": username, "role": ROLE_ADMIN}, doc, upsert=True)
        except DuplicateKeyError:
            raise DirectoryError(f"'{username}' belongs to a registered student.")
        return admin

    @translate_errors
    async def get_voter(self, voter_id: str) -> Optional[Voter]:
        doc = await self.voters.find_one({"_id": voter_id}, {"hashed_password": 0})
        return _to_model(Voter, doc) if doc else None

    @translate_errors
    async def get_password_hash(self, voter_id: str) -> Optional[str]:
        doc = await self.voters.find_one({"_id": voter_id}, {"hashed_password": 1})
        return doc.get("hashed_password") if doc else None

    async def is_eligible(self, voter_id: str) -> bool:
        voter = await self.get_voter(voter_id)
        return voter is not None and voter.eligible and voter.role != ROLE_ADMIN

    async def cohort_of(self, voter_id: str) -> Optional[str]:
        voter = await self.get_voter(voter_id)
        return voter.department if voter else None

    @translate_errors
    async def set_eligibility(self, voter_id: str, eligible: bool) -> Optional[Voter]:
        doc = await self.voters.find_one_and_update(
            {"_id": voter_id},
            {"$set": {"eligible": eligible}},
            projection={"hashed_password": 0},
            return_document=ReturnDocument.AFTER,
        )
        return _to_model(Voter, doc) if doc else None

    @translate_errors
    async def cohort_members(self, cohort: str) -> Set[str]:
        cursor = self.voters.find(
            {"department": cohort, "role": {"$ne": ROLE_ADMIN}}, {"_id": 1}
        )
        return {doc["_id"] async for doc in cursor}

    @translate_errors
    async def cohorts(self) -> Dict[str, Set[str]]:
        groups: Dict[str, Set[str]] = {}
        cursor = self.voters.find({"role": {"$ne": ROLE_ADMIN}}, {"_id": 1, "department": 1})
        async for doc in cursor:
            groups.setdefault(doc["department"], set()).add(doc["_id"])
        return groups


class MongoSettings:
    def __init__(self, db, voting_enabled_default: bool = False):
        self.settings = db[SETTINGS_COLLECTION_NAME]
        self.voting_enabled_default = voting_enabled_default

    @translate_errors
    async def is_voting_enabled(self) -> bool:
        doc = await self.settings.find_one({"_id": VOTING_ENABLED_KEY})
        return bool(doc["value"]) if doc else self.voting_enabled_default

    @translate_errors
    async def set_voting_enabled(self, enabled: bool) -> bool:
        await self.settings.update_one(
            {"_id": VOTING_ENABLED_KEY}, {"$set": {"value": enabled}}, upsert=True
        )
        logger.info(f"Voting {'enabled' if enabled else 'disabled'}")
        return enabled


class MongoActivityLog:
    def __init__(self, db, clock=utcnow):
        self.logs = db[ACTIVITY_COLLECTION_NAME]
        self.clock = clock

    @translate_errors
    async def ensure_indexes(self) -> None:
        await self.logs.create_index([("timestamp", DESCENDING)])

    @translate_errors
    async def record(self, action: str, actor_id: Optional[str] = None, details: str = "") -> ActivityEntry:
        doc = {
            "_id": str(ObjectId()),
            "action": action,
            "actor_id": actor_id,
            "details": details,
            "timestamp": self.clock(),
        }
        await self.logs.insert_one(doc)
        return _to_model(ActivityEntry, doc)

    @translate_errors
    async def recent(self, limit: int = 10) -> List[ActivityEntry]:
        cursor = self.logs.find(
            {}, sort=[("timestamp", DESCENDING), ("_id", DESCENDING)], limit=limit
        )
        return [_to_model(ActivityEntry, doc) async for doc in cursor]
