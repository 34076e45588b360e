"""The vote ledger: the only writer of vote records.

Uniqueness of (voter, position) is decided by the backing store at insert
time, never by an earlier existence check. Reads are pull queries against
the current store contents; nothing is cached.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple

from campusvote.errors import DuplicateVote
from campusvote.models.vote_model import VoteRecord

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def participation_percentage(voted: int, total: int) -> int:
    """Integer percentage, halves rounded up; an empty cohort is 0."""
    if total <= 0:
        return 0
    return (200 * voted + total) // (2 * total)


class VoteLedger:
    def __init__(self, store, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def cast_vote(self, voter_id: str, position_id: str, candidate_id: str) -> VoteRecord:
        """Record a vote or raise ``DuplicateVote``.

        Storage failures surface as ``PersistenceError``.
        """
        record = VoteRecord(
            voter_id=voter_id,
            position_id=position_id,
            candidate_id=candidate_id,
            timestamp=self.clock(),
        )
        try:
            stored = await self.store.insert(record)
        except DuplicateVote:
            logger.info(f"Duplicate vote rejected: voter={voter_id} position={position_id}")
            raise
        logger.info(f"Vote recorded: voter={voter_id} position={position_id}")
        return stored

    async def has_voted(self, voter_id: str, position_id: str) -> bool:
        return await self.store.find(voter_id, position_id) is not None

    async def get_vote(self, voter_id: str, position_id: str) -> Optional[VoteRecord]:
        return await self.store.find(voter_id, position_id)

    async def votes_of(self, voter_id: str) -> List[VoteRecord]:
        return await self.store.by_voter(voter_id)

    async def get_tally(self, position_id: str) -> List[Tuple[str, int]]:
        counts = await self.store.count_by_candidate(position_id)
        return list(counts.items())

    async def get_participation(self, cohort_members: Iterable[str]) -> int:
        members = set(cohort_members)
        if not members:
            return 0
        voted = await self.store.voters_with_votes(members)
        return participation_percentage(len(voted), len(members))

    async def total_votes(self) -> int:
        return await self.store.count()

    async def reset_all(self) -> bool:
        await self.store.clear()
        logger.warning("All votes have been reset")
        return True
