"""Domain errors for vote casting.

Every cast attempt ends either in a ``VoteRecord`` or in one of the
``CastError`` subclasses below. They are ordinary outcomes, not crashes:
the HTTP layer turns each into a specific status and message.

``PersistenceError`` is kept outside the ``CastError`` family because it
is the only failure a caller may retry automatically.
"""


class CastError(Exception):
    code = "cast_error"
    status_code = 400
    retryable = False
    default_message = "Vote could not be cast."

    def __init__(self, message=None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class VotingClosed(CastError):
    code = "voting_closed"
    status_code = 403
    default_message = "Voting is currently closed."


class PositionUnavailable(CastError):
    code = "position_unavailable"
    status_code = 404
    default_message = "Position does not exist or is not open for voting."


class CandidateMismatch(CastError):
    code = "candidate_mismatch"
    status_code = 400
    default_message = "Invalid candidate for this position."


class VoterNotEligible(CastError):
    code = "voter_not_eligible"
    status_code = 403
    default_message = "You are not registered to vote. Complete registration first."


class DuplicateVote(CastError):
    code = "duplicate_vote"
    status_code = 409
    default_message = "You have already voted for this position."


class PersistenceError(Exception):
    """Storage failure unrelated to the voting rules."""

    code = "persistence_error"
    status_code = 503
    retryable = True

    def __init__(self, message="Storage is temporarily unavailable.", **context):
        self.message = message
        self.context = context
        super().__init__(message)


class DirectoryError(Exception):
    """Registration/login problems raised by the user directory."""
