"""
Domain activity records (job_created, job_status_changed, ...)
Feeds the workshop activity feed; never part of the status history.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Activity

logger = logging.getLogger(__name__)


def get_activity_description(
    activity_type: str, entity_type: str, entity_id: int, metadata: Optional[dict] = None
) -> str:
    """Get formatted activity description based on type"""
    meta = metadata or {}
    job_ref = meta.get("jobCode") or entity_id
    customer_suffix = f" for {meta['customerName']}" if meta.get("customerName") else ""

    if activity_type == "job_created":
        return f"Created new job {job_ref}{customer_suffix}"
    if activity_type == "job_updated":
        changes = f" - {meta['changes']}" if meta.get("changes") else ""
        return f"Updated job {job_ref}{changes}"
    if activity_type == "job_status_changed":
        return f'Changed job {job_ref} status from "{meta.get("oldStatus")}" to "{meta.get("newStatus")}"'
    if activity_type == "job_completed":
        return f"Completed job {job_ref}{customer_suffix}"
    if activity_type == "job_deleted":
        return f"Deleted job {job_ref}{customer_suffix}"

    return f"{activity_type.replace('_', ' ')} - {entity_type} {entity_id}"


def record_activity(
    db: Session,
    business_id: int,
    activity_type: str,
    description: str,
    user_id: Optional[int] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[dict] = None,
) -> Activity:
    """Insert an activity row and commit; errors propagate to the caller"""
    activity = Activity(
        business_id=business_id,
        user_id=user_id,
        activity_type=activity_type,
        description=description,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
    )
    db.add(activity)
    db.commit()
    return activity
