# campusvote/activity.py
import logging
from typing import Optional

from campusvote.errors import PersistenceError

logger = logging.getLogger(__name__)


async def record_activity(log, action: str, actor_id: Optional[str] = None, details: str = "") -> None:
    """Append to the audit trail without failing the action being audited.

    Callers run this after their own write has succeeded, so a storage
    failure here is logged rather than raised.
    """
    if log is None:
        return
    try:
        await log.record(action, actor_id=actor_id, details=details)
    except PersistenceError as e:
        logger.error(f"Could not record activity '{action}' for {actor_id}: {e.message}")
