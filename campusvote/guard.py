"""Ballot guard: the checks every vote passes before reaching the ledger.

The guard keeps no state of its own. Settings, catalog, directory, ledger,
notifier, clock and activity log are all handed in, so a test can build
one from plain in-memory collaborators.
"""
import logging
from datetime import datetime
from typing import Callable

from campusvote.activity import record_activity
from campusvote.errors import (
    CandidateMismatch,
    DuplicateVote,
    PositionUnavailable,
    VoterNotEligible,
    VotingClosed,
)
from campusvote.ledger import VoteLedger, utcnow
from campusvote.models.activity_model import ACTION_VOTE_CAST
from campusvote.models.vote_model import VoteRecord
from campusvote.notifications import VOTE_CAST, EventBus, notify

logger = logging.getLogger(__name__)


class BallotGuard:
    def __init__(
        self,
        settings,
        catalog,
        directory,
        ledger: VoteLedger,
        bus: EventBus,
        clock: Callable[[], datetime] = utcnow,
        activity=None,
    ):
        self.settings = settings
        self.catalog = catalog
        self.directory = directory
        self.ledger = ledger
        self.bus = bus
        self.clock = clock
        self.activity = activity

    async def attempt_cast_vote(self, voter_id: str, position_id: str, candidate_id: str) -> VoteRecord:
        """Validate in order, then record through the ledger.

        Raises the first failing ``CastError``: ``VotingClosed``,
        ``PositionUnavailable``, ``CandidateMismatch``, ``VoterNotEligible``
        or ``DuplicateVote``. The duplicate check here only fails fast; the
        ledger insert remains the arbiter for concurrent attempts.
        """
        if not await self.settings.is_voting_enabled():
            raise VotingClosed()

        if not await self.catalog.position_is_open(position_id, self.clock()):
            raise PositionUnavailable(position_id=position_id)

        if not await self.catalog.candidate_belongs_to_position(candidate_id, position_id):
            logger.warning(
                f"Candidate/position mismatch: voter={voter_id} "
                f"candidate={candidate_id} position={position_id}"
            )
            raise CandidateMismatch(candidate_id=candidate_id, position_id=position_id)

        if not await self.directory.is_eligible(voter_id):
            raise VoterNotEligible(voter_id=voter_id)

        if await self.ledger.has_voted(voter_id, position_id):
            raise DuplicateVote(voter_id=voter_id, position_id=position_id)

        record = await self.ledger.cast_vote(voter_id, position_id, candidate_id)
        # the audit trail never names the chosen candidate
        await record_activity(
            self.activity, ACTION_VOTE_CAST, voter_id, f"Vote cast for position {position_id}"
        )
        notify(self.bus, VOTE_CAST, {"position_id": position_id, "candidate_id": candidate_id})
        return record
