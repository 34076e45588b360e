from datetime import datetime
from typing import Optional
from pydantic import BaseModel

ACTION_VOTE_CAST = "Vote Cast"
ACTION_VOTES_RESET = "Votes Reset"
ACTION_VOTING_ENABLED = "Voting Enabled"
ACTION_VOTING_DISABLED = "Voting Disabled"
ACTION_POSITION_CREATED = "Position Created"
ACTION_POSITION_STATUS_CHANGED = "Position Status Changed"
ACTION_CANDIDATE_ADDED = "Candidate Added"
ACTION_VERIFIED_IDS_ADDED = "Verified IDs Added"
ACTION_VOTER_REGISTERED = "Voter Registered"


class ActivityEntry(BaseModel):
    id: str
    action: str
    actor_id: Optional[str] = None
    details: str = ""
    timestamp: datetime
