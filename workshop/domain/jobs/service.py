"""Job service - Lifecycle, status history and side effects for workshop jobs"""

import logging
from datetime import datetime
from typing import Callable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...models import ActivityLogEntry, Business, Job, OutboxEvent, StatusChangeEvent, User
from ...services.activity_service import get_activity_description
from ...services.outbox import (
    ACTIVITY,
    JOB_ASSIGNED,
    JOB_BOOKED_EMAIL,
    JOB_REASSIGNED,
    READY_FOR_PICKUP_EMAIL,
    dispatch_after_commit,
    enqueue_event,
)
from .repository import JobRepository
from .schemas import (
    JobCreate,
    JobNoteCreate,
    JobNoteResponse,
    JobResponse,
    JobUpdate,
    JobWithTimeInStatus,
    PublicTrackerResponse,
    StatusChange,
    StatusTimelineEntry,
)
from .status import (
    CANCELLED,
    COMPLETED,
    READY_FOR_PICKUP,
    format_status,
    initial_status,
    resolve_auto_advance,
    validate_status_transition,
)
from .status_parser import collect_status_changes, is_status_change_note
from .timeline import format_duration, reconstruct_timeline, time_in_status

logger = logging.getLogger(__name__)

# JobUpdate field -> Job column
UPDATABLE_FIELDS = {
    "description": "description",
    "customerId": "customer_id",
    "assignedTo": "assigned_to",
    "equipmentDescription": "equipment_description",
    "taskDetails": "task_details",
    "estimatedHours": "estimated_hours",
    "actualHours": "actual_hours",
}

CONFLICT_DETAIL = "Job was modified by another request. Reload it and try again."


def job_to_response(job: Job) -> JobResponse:
    return JobResponse(
        id=job.id,
        jobCode=job.job_code,
        status=job.status,
        description=job.description,
        customerId=job.customer_id,
        assignedTo=job.assigned_to,
        equipmentDescription=job.equipment_description,
        taskDetails=job.task_details,
        estimatedHours=job.estimated_hours,
        actualHours=job.actual_hours,
        createdAt=job.created_at,
        updatedAt=job.updated_at,
        completedAt=job.completed_at,
        version=job.version,
    )


def note_to_response(entry: ActivityLogEntry) -> JobNoteResponse:
    return JobNoteResponse(
        id=entry.id,
        jobId=entry.entity_id,
        note=entry.note,
        isPublic=entry.is_public,
        createdBy=entry.created_by,
        createdAt=entry.created_at,
    )


def job_snapshot(job: Job) -> dict:
    """JSON-safe copy of the fields emails and notifications need"""
    return {
        "id": job.id,
        "jobCode": job.job_code,
        "status": job.status,
        "description": job.description,
        "equipmentDescription": job.equipment_description,
    }


def status_change_from_event(event: StatusChangeEvent) -> StatusChange:
    return StatusChange(
        fromStatus=event.from_status,
        toStatus=event.to_status,
        fromLabel=format_status(event.from_status),
        toLabel=format_status(event.to_status),
        at=event.created_at,
        source="event",
        sourceId=event.id,
    )


class JobLifecycleService:
    """Service layer for job lifecycle business logic"""

    def __init__(self, db: Session, notifier=None, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.repo = JobRepository()
        self.notifier = notifier
        self.clock = clock or datetime.utcnow

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_status_changes(self, job: Job) -> list[StatusChange]:
        """
        Status history for a job.

        Structured events are authoritative. Notes rendered for an event are
        skipped; any other note in the status-change format is a legacy record
        and is parsed.
        """
        events = self.repo.list_status_events(self.db, job.id, job.business_id)
        linked_entry_ids = {e.activity_entry_id for e in events if e.activity_entry_id}

        changes = [status_change_from_event(e) for e in events]

        entries = self.repo.list_activity_by_job(self.db, job.id, job.business_id)
        legacy_entries = [e for e in entries if e.id not in linked_entry_ids]
        changes.extend(collect_status_changes(legacy_entries))
        return changes

    def with_time_in_status(self, job: Job, now: Optional[datetime] = None) -> JobWithTimeInStatus:
        now = now or self.clock()
        days, entry_time = time_in_status(job, self.load_status_changes(job), now)
        return JobWithTimeInStatus(
            **job_to_response(job).model_dump(),
            timeInStatusDays=days,
            statusEntryTime=entry_time,
        )

    def list_jobs(
        self,
        business_id: int,
        customer_id: Optional[int] = None,
        assigned_to: Optional[int] = None,
    ) -> list[JobWithTimeInStatus]:
        """Jobs for the tenant, newest first, each with time in its current status"""
        now = self.clock()
        jobs = self.repo.get_jobs(self.db, business_id, customer_id, assigned_to)
        return [self.with_time_in_status(job, now) for job in jobs]

    def find_job(self, job_ref: str, business_id: int) -> Optional[Job]:
        """Look a job up by numeric id or by job code"""
        job_ref = str(job_ref).strip()
        if job_ref.isdigit():
            job = self.repo.get_job_by_id(self.db, int(job_ref), business_id)
            if job:
                return job
        return self.repo.get_job_by_code(self.db, job_ref, business_id)

    def get_job_with_timeline(self, job_ref: str, business_id: int) -> Optional[JobWithTimeInStatus]:
        job = self.find_job(job_ref, business_id)
        if not job:
            return None
        return self.with_time_in_status(job)

    def get_status_timeline(self, job_id: int, business_id: int) -> Optional[list[StatusTimelineEntry]]:
        job = self.repo.get_job_by_id(self.db, job_id, business_id)
        if not job:
            return None
        return reconstruct_timeline(job, self.load_status_changes(job), self.clock())

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _require_customer(self, customer_id: Optional[int], business_id: int):
        if customer_id is None:
            return None
        customer = self.repo.get_customer(self.db, customer_id, business_id)
        if not customer:
            raise HTTPException(status_code=422, detail=f"Customer {customer_id} not found")
        return customer

    def _require_assignee(self, user_id: Optional[int], business_id: int) -> Optional[User]:
        if user_id is None:
            return None
        assignee = self.repo.get_user(self.db, user_id, business_id)
        if not assignee:
            raise HTTPException(status_code=422, detail=f"User {user_id} not found")
        return assignee

    def _business_name(self, business_id: int) -> str:
        business = self.db.get(Business, business_id)
        return business.name if business else "Workshop"

    def _enqueue_activity(
        self,
        job: Job,
        activity_type: str,
        user: User,
        metadata: Optional[dict] = None,
        description_suffix: str = "",
    ):
        meta = {"jobCode": job.job_code, **(metadata or {})}
        description = get_activity_description(activity_type, "job", job.id, meta) + description_suffix
        return enqueue_event(
            self.db,
            job.business_id,
            ACTIVITY,
            {
                "activityType": activity_type,
                "description": description,
                "userId": user.id,
                "entityType": "job",
                "entityId": job.id,
                "jobCode": job.job_code,
                "metadata": meta,
            },
        )

    def _enqueue_customer_email(self, job: Job, event_type: str) -> Optional[OutboxEvent]:
        customer = self.repo.get_customer(self.db, job.customer_id, job.business_id)
        if not customer or not customer.email:
            logger.warning(f"⚠️ Job {job.job_code} has no customer email, skipping {event_type}")
            return None
        return enqueue_event(
            self.db,
            job.business_id,
            event_type,
            {
                "jobCode": job.job_code,
                "customerEmail": customer.email,
                "customerName": customer.name,
                "businessName": self._business_name(job.business_id),
                "job": job_snapshot(job),
            },
        )

    async def _dispatch(self, events: list) -> None:
        events = [e for e in events if e is not None]
        await dispatch_after_commit(self.db, events, self.notifier)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_job(self, data: JobCreate, user: User) -> JobWithTimeInStatus:
        """Create a job; an assigned job that has not been assessed starts in progress"""
        business_id = user.business_id
        logger.info(f"📥 Creating job for business_id: {business_id}")

        customer = self._require_customer(data.customerId, business_id)
        self._require_assignee(data.assignedTo, business_id)

        status = initial_status(data.status, data.assignedTo)
        if status in (COMPLETED, CANCELLED):
            raise HTTPException(
                status_code=422, detail=f"A job cannot be created as {format_status(status)}"
            )

        if data.jobCode:
            job_code = data.jobCode.strip()
            if self.repo.get_job_by_code(self.db, job_code, business_id):
                raise HTTPException(status_code=409, detail=f"Job code {job_code} already exists")
        else:
            job_code = self.repo.next_job_code(self.db, business_id)

        now = self.clock()
        job = Job(
            business_id=business_id,
            job_code=job_code,
            customer_id=data.customerId,
            assigned_to=data.assignedTo,
            status=status,
            description=data.description,
            equipment_description=data.equipmentDescription,
            task_details=data.taskDetails,
            estimated_hours=data.estimatedHours,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_job(self.db, job)

        events = [
            self._enqueue_activity(
                job, "job_created", user, {"customerName": customer.name if customer else None}
            )
        ]
        if job.assigned_to:
            events.append(
                enqueue_event(
                    self.db,
                    business_id,
                    JOB_ASSIGNED,
                    {
                        "jobId": job.id,
                        "jobCode": job.job_code,
                        "assignedTo": job.assigned_to,
                        "description": job.description,
                    },
                )
            )
        if customer:
            events.append(self._enqueue_customer_email(job, JOB_BOOKED_EMAIL))

        self.db.commit()
        self.db.refresh(job)
        logger.info(f"✅ Job {job.job_code} created with status {job.status}")

        await self._dispatch(events)
        return self.with_time_in_status(job)

    async def update_job(self, job_id: int, data: JobUpdate, user: User) -> Optional[JobWithTimeInStatus]:
        """
        Apply a partial update.

        Returns None when the job does not exist for this business. Invalid
        input raises 422, a stale version raises 409. Side effects are recorded
        in the outbox with the change and delivered after commit.
        """
        business_id = user.business_id
        job = self.repo.get_job_by_id(self.db, job_id, business_id)
        if not job:
            return None

        fields = data.model_dump(exclude_unset=True)

        expected_version = fields.pop("version", None)
        if expected_version is not None and expected_version != job.version:
            logger.warning(
                f"⚠️ Version conflict on job {job.job_code}: expected {expected_version}, found {job.version}"
            )
            raise HTTPException(status_code=409, detail=CONFLICT_DETAIL)

        requested_status = fields.pop("status", None)

        if "description" in fields:
            description = (fields["description"] or "").strip()
            if not description:
                raise HTTPException(status_code=422, detail="Description is required")
            fields["description"] = description

        assignee_provided = "assignedTo" in fields
        if assignee_provided:
            self._require_assignee(fields["assignedTo"], business_id)
        if fields.get("customerId") is not None:
            self._require_customer(fields["customerId"], business_id)

        old_status = job.status
        old_assignee = job.assigned_to
        new_status = resolve_auto_advance(
            old_status, old_assignee, requested_status, fields.get("assignedTo"), assignee_provided
        )
        status_changed = new_status is not None and new_status != old_status

        if status_changed and not validate_status_transition(old_status, new_status):
            raise HTTPException(
                status_code=422,
                detail=f"Invalid status transition from {old_status} to {new_status}",
            )

        now = self.clock()
        events = []

        # Duration in the outgoing status is measured before anything is written
        if status_changed:
            days_in_previous, _ = time_in_status(job, self.load_status_changes(job), now)

        changed_fields = [
            name for name, value in fields.items() if getattr(job, UPDATABLE_FIELDS[name]) != value
        ]
        self.repo.apply_updates(job, **{UPDATABLE_FIELDS[name]: fields[name] for name in changed_fields})

        if status_changed:
            duration_text = format_duration(days_in_previous)
            old_label = format_status(old_status)
            new_label = format_status(new_status)

            job.status = new_status
            if new_status == COMPLETED:
                job.completed_at = now

            entry = self.repo.append_activity(
                self.db,
                business_id=business_id,
                job_id=job.id,
                note=f'Status changed from "{old_label}" to "{new_label}" (was in "{old_label}" for {duration_text})',
                created_by=user.id,
                is_public=True,
                created_at=now,
            )
            self.repo.append_status_event(
                self.db,
                StatusChangeEvent(
                    business_id=business_id,
                    job_id=job.id,
                    from_status=old_status,
                    to_status=new_status,
                    changed_by=user.id,
                    activity_entry_id=entry.id,
                    created_at=now,
                ),
            )

            events.append(
                self._enqueue_activity(
                    job,
                    "job_status_changed",
                    user,
                    {"oldStatus": old_label, "newStatus": new_label, "durationInPreviousStatus": duration_text},
                    description_suffix=f" (was in previous status for {duration_text})",
                )
            )
            if new_status == COMPLETED:
                events.append(self._enqueue_activity(job, "job_completed", user))
            if new_status == READY_FOR_PICKUP:
                events.append(self._enqueue_customer_email(job, READY_FOR_PICKUP_EMAIL))

            logger.info(f"🔄 Job {job.job_code}: {old_status} → {new_status}")

        if assignee_provided and job.assigned_to != old_assignee:
            events.append(
                enqueue_event(
                    self.db,
                    business_id,
                    JOB_REASSIGNED,
                    {
                        "jobId": job.id,
                        "jobCode": job.job_code,
                        "previousAssignee": old_assignee,
                        "newAssignee": job.assigned_to,
                        "description": job.description,
                    },
                )
            )

        if changed_fields:
            events.append(
                self._enqueue_activity(job, "job_updated", user, {"changes": ", ".join(changed_fields)})
            )

        if not status_changed and not changed_fields:
            logger.info(f"Job {job.job_code}: nothing to update")
            return self.with_time_in_status(job, now)

        job.updated_at = now
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning(f"⚠️ Concurrent update detected on job {job_id}")
            raise HTTPException(status_code=409, detail=CONFLICT_DETAIL)

        self.db.refresh(job)
        await self._dispatch(events)
        return self.with_time_in_status(job)

    async def delete_job(self, job_id: int, user: User) -> Optional[dict]:
        """Delete a job; its notes stay in the append-only log"""
        job = self.repo.get_job_by_id(self.db, job_id, user.business_id)
        if not job:
            return None

        customer = self.repo.get_customer(self.db, job.customer_id, job.business_id)
        events = [
            self._enqueue_activity(
                job, "job_deleted", user, {"customerName": customer.name if customer else None}
            )
        ]
        job_code = job.job_code
        self.repo.delete_job(self.db, job)
        self.db.commit()
        logger.info(f"🗑️ Job {job_code} deleted")

        await self._dispatch(events)
        return {"message": "Job deleted"}

    def generate_next_job_code(self, business_id: int) -> dict:
        """Reserve the next job code so the front end can show it before saving"""
        job_code = self.repo.next_job_code(self.db, business_id)
        self.db.commit()
        return {"jobId": job_code}

    # ------------------------------------------------------------------
    # Operator notes
    # ------------------------------------------------------------------

    def list_notes(self, job_id: int, business_id: int, public_only: bool = False) -> Optional[list[JobNoteResponse]]:
        job = self.repo.get_job_by_id(self.db, job_id, business_id)
        if not job:
            return None
        entries = self.repo.list_activity_by_job(self.db, job.id, business_id, public_only)
        return [note_to_response(e) for e in entries]

    def add_note(self, job_id: int, data: JobNoteCreate, user: User) -> Optional[JobNoteResponse]:
        job = self.repo.get_job_by_id(self.db, job_id, user.business_id)
        if not job:
            return None

        # Status history is only written by status changes
        if is_status_change_note(data.note):
            raise HTTPException(
                status_code=422, detail="Notes cannot use the status change format; update the status instead"
            )

        entry = self.repo.append_activity(
            self.db,
            business_id=user.business_id,
            job_id=job.id,
            note=data.note,
            created_by=user.id,
            is_public=data.isPublic,
            created_at=self.clock(),
        )
        self.db.commit()
        self.db.refresh(entry)
        return note_to_response(entry)

    # ------------------------------------------------------------------
    # Public tracker
    # ------------------------------------------------------------------

    def get_public_tracker(self, job_code: str, email: str, business_id: int) -> PublicTrackerResponse:
        """Customer view of a job, gated on the email address on file"""
        email = (email or "").strip().lower()
        if not email:
            raise HTTPException(status_code=400, detail="Email is required")

        job = self.repo.get_job_by_code(self.db, job_code.strip(), business_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")

        customer = self.repo.get_customer(self.db, job.customer_id, business_id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")

        # A customer with no email on file cannot use the tracker
        if not customer.email or customer.email.strip().lower() != email:
            logger.warning(f"⚠️ Tracker email mismatch for job {job.job_code}")
            raise HTTPException(status_code=403, detail="Email does not match our records")

        updates = self.repo.list_activity_by_job(self.db, job.id, business_id, public_only=True)
        return PublicTrackerResponse(
            job={
                "jobCode": job.job_code,
                "status": job.status,
                "statusLabel": format_status(job.status),
                "description": job.description,
                "equipmentDescription": job.equipment_description,
                "createdAt": job.created_at,
                "completedAt": job.completed_at,
            },
            customer={"name": customer.name, "email": customer.email},
            updates=[note_to_response(e) for e in updates],
            timeline=reconstruct_timeline(job, self.load_status_changes(job), self.clock()),
        )
