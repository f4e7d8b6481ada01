"""
Best-effort activity logging.

Entries are written in their own session after the core mutation has been
committed, normally from a FastAPI background task. A failure here is
logged and dropped; it never reaches the caller.
"""
from typing import Any, Optional

from sqlalchemy.orm import Session

from models.ActivityLog import ActivityLog
from utils.logger import setup_api_logger

logger = setup_api_logger()

CREATE = "CREATE"
UPDATE = "UPDATE"
DELETE = "DELETE"
PUBLISH = "PUBLISH"
UNPUBLISH = "UNPUBLISH"
ASSIGN = "ASSIGN"
UNASSIGN = "UNASSIGN"
ATTEND = "ATTEND"
UNATTEND = "UNATTEND"
APPROVE = "APPROVE"
DEACTIVATE = "DEACTIVATE"
REACTIVATE = "REACTIVATE"


def record_activity(
    bind,
    actor_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: int,
    details: Optional[dict[str, Any]] = None,
) -> bool:
    """Persist one activity entry. Returns False instead of raising on failure."""
    try:
        with Session(bind=bind) as db:
            db.add(ActivityLog(
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details,
            ))
            db.commit()
        return True
    except Exception:
        logger.exception("Could not record activity %s on %s %s by %s", action, entity_type, entity_id, actor_id)
        return False
