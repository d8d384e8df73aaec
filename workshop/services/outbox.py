"""
Transactional outbox for job side effects

Job mutations record their side effects (activity records, staff notifications,
customer emails) as OutboxEvent rows in the same transaction as the mutation.
After commit the request makes one inline delivery attempt; anything still
pending is retried by the arq worker (see worker.dispatch_outbox_task).
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..config import OUTBOX_BATCH_SIZE, OUTBOX_MAX_ATTEMPTS
from ..models import OutboxEvent
from .activity_service import record_activity
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

# Event types
ACTIVITY = "activity"
JOB_ASSIGNED = "job_assigned"
JOB_REASSIGNED = "job_reassigned"
JOB_BOOKED_EMAIL = "job_booked_email"
READY_FOR_PICKUP_EMAIL = "ready_for_pickup_email"


def enqueue_event(db: Session, business_id: int, event_type: str, payload: dict) -> OutboxEvent:
    """Add an event to the caller's transaction; nothing is sent until it commits"""
    event = OutboxEvent(
        business_id=business_id,
        event_type=event_type,
        payload=payload,
        status="pending",
        attempts=0,
    )
    db.add(event)
    return event


class OutboxDispatcher:
    """Runs outbox events one by one; a failing event never stops the others"""

    def __init__(self, db: Session, notifier=None):
        self.db = db
        self.notifier = notifier or NotificationService(db)
        self._handlers = {
            ACTIVITY: self._record_activity,
            JOB_ASSIGNED: self._notify_assignment,
            JOB_REASSIGNED: self._notify_reassignment,
            JOB_BOOKED_EMAIL: self._send_job_booked_email,
            READY_FOR_PICKUP_EMAIL: self._send_ready_for_pickup_email,
        }

    async def dispatch_events(self, events: list[OutboxEvent]) -> dict:
        """Attempt delivery of the given events, returning a sent/pending/failed summary"""
        summary = {"sent": 0, "pending": 0, "failed": 0}
        for event in events:
            status = await self._dispatch(event)
            summary[status] += 1
        return summary

    async def dispatch_pending(self, limit: int = OUTBOX_BATCH_SIZE) -> dict:
        """Retry pending events, oldest first"""
        events = (
            self.db.query(OutboxEvent)
            .filter(OutboxEvent.status == "pending")
            .order_by(OutboxEvent.id.asc())
            .limit(limit)
            .all()
        )
        if not events:
            return {"sent": 0, "pending": 0, "failed": 0}

        logger.info(f"📤 Dispatching {len(events)} pending outbox events")
        return await self.dispatch_events(events)

    async def _dispatch(self, event: OutboxEvent) -> str:
        event_id = event.id
        event_type = event.event_type
        payload = event.payload or {}
        handler = self._handlers.get(event_type)

        try:
            if handler is None:
                raise ValueError(f"Unknown outbox event type '{event_type}'")
            await handler(event.business_id, payload)
        except Exception as e:
            # A handler may leave the session mid-transaction
            self.db.rollback()
            event = self.db.get(OutboxEvent, event_id)
            event.attempts = (event.attempts or 0) + 1
            event.last_error = str(e)[:1000]
            if event.attempts >= OUTBOX_MAX_ATTEMPTS:
                event.status = "failed"
                event.processed_at = datetime.utcnow()
                logger.error(
                    f"❌ Outbox event {event_id} ({event_type}) for job {payload.get('jobCode')} "
                    f"failed permanently after {event.attempts} attempts: {e}"
                )
            else:
                logger.error(
                    f"❌ Outbox event {event_id} ({event_type}) for job {payload.get('jobCode')} "
                    f"failed (attempt {event.attempts}/{OUTBOX_MAX_ATTEMPTS}): {e}"
                )
            self.db.commit()
            return event.status

        event = self.db.get(OutboxEvent, event_id)
        event.attempts = (event.attempts or 0) + 1
        event.status = "sent"
        event.processed_at = datetime.utcnow()
        event.last_error = None
        self.db.commit()
        return "sent"

    async def _record_activity(self, business_id: int, payload: dict) -> None:
        record_activity(
            self.db,
            business_id=business_id,
            activity_type=payload["activityType"],
            description=payload["description"],
            user_id=payload.get("userId"),
            entity_type=payload.get("entityType", "job"),
            entity_id=payload.get("entityId"),
            metadata=payload.get("metadata"),
        )

    async def _notify_assignment(self, business_id: int, payload: dict) -> None:
        await self.notifier.notify_job_assignment(
            job_id=payload["jobId"],
            job_code=payload["jobCode"],
            assigned_to=payload["assignedTo"],
            business_id=business_id,
            description=payload.get("description"),
        )

    async def _notify_reassignment(self, business_id: int, payload: dict) -> None:
        await self.notifier.notify_job_reassignment(
            job_id=payload["jobId"],
            job_code=payload["jobCode"],
            previous_assignee=payload.get("previousAssignee"),
            new_assignee=payload.get("newAssignee"),
            business_id=business_id,
            description=payload.get("description"),
        )

    async def _send_job_booked_email(self, business_id: int, payload: dict) -> None:
        await self.notifier.send_job_booked_email(
            customer_email=payload["customerEmail"],
            job=payload["job"],
            business_id=business_id,
            customer_name=payload.get("customerName") or "there",
            business_name=payload.get("businessName") or "Workshop",
        )

    async def _send_ready_for_pickup_email(self, business_id: int, payload: dict) -> None:
        await self.notifier.send_ready_for_pickup_email(
            customer_email=payload["customerEmail"],
            job=payload["job"],
            customer_name=payload.get("customerName") or "there",
            business_name=payload.get("businessName") or "Workshop",
        )


async def dispatch_after_commit(db: Session, events: list[OutboxEvent], notifier=None) -> Optional[dict]:
    """Single inline attempt for the events a request just committed"""
    if not events:
        return None
    return await OutboxDispatcher(db, notifier).dispatch_events(events)
