"""Job repository - Database operations for jobs, notes and status events"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...config import JOB_CODE_START
from ...models import ActivityLogEntry, Customer, Job, JobCounter, StatusChangeEvent, User


class JobRepository:
    """Repository for job database operations"""

    @staticmethod
    def get_jobs(
        db: Session,
        business_id: int,
        customer_id: Optional[int] = None,
        assigned_to: Optional[int] = None,
    ) -> list[Job]:
        """Get all jobs for a business; every user of the business sees every job"""
        query = db.query(Job).filter(Job.business_id == business_id)

        if customer_id is not None:
            query = query.filter(Job.customer_id == customer_id)

        if assigned_to is not None:
            query = query.filter(Job.assigned_to == assigned_to)

        return query.order_by(Job.created_at.desc(), Job.id.desc()).all()

    @staticmethod
    def get_job_by_id(db: Session, job_id: int, business_id: int) -> Optional[Job]:
        """Get a specific job by ID"""
        return db.query(Job).filter(Job.id == job_id, Job.business_id == business_id).first()

    @staticmethod
    def get_job_by_code(db: Session, job_code: str, business_id: int) -> Optional[Job]:
        """Get a job by its human readable code (e.g. B1-WS-1000)"""
        return (
            db.query(Job)
            .filter(Job.job_code == job_code, Job.business_id == business_id)
            .first()
        )

    @staticmethod
    def next_job_code(db: Session, business_id: int) -> str:
        """
        Allocate the next job code for a business.
        The counter row is updated in the caller's transaction and committed with the job.
        """
        counter = (
            db.query(JobCounter)
            .filter(JobCounter.business_id == business_id)
            .with_for_update()
            .first()
        )
        if not counter:
            counter = JobCounter(business_id=business_id, current_number=JOB_CODE_START)
            db.add(counter)

        counter.current_number += 1
        db.flush()
        return f"B{business_id}-WS-{counter.current_number}"

    @staticmethod
    def add_job(db: Session, job: Job) -> Job:
        db.add(job)
        db.flush()
        return job

    @staticmethod
    def apply_updates(job: Job, **updates) -> None:
        """Set the provided fields (None is a real value here, e.g. unassigning)"""
        for key, value in updates.items():
            if hasattr(job, key):
                setattr(job, key, value)

    @staticmethod
    def delete_job(db: Session, job: Job) -> None:
        db.query(StatusChangeEvent).filter(StatusChangeEvent.job_id == job.id).delete(
            synchronize_session=False
        )
        db.delete(job)

    # Activity log (job notes)
    @staticmethod
    def list_activity_by_job(
        db: Session, job_id: int, business_id: int, public_only: bool = False
    ) -> list[ActivityLogEntry]:
        """Notes for a job, oldest first"""
        query = db.query(ActivityLogEntry).filter(
            ActivityLogEntry.entity_type == "job",
            ActivityLogEntry.entity_id == job_id,
            ActivityLogEntry.business_id == business_id,
        )
        if public_only:
            query = query.filter(ActivityLogEntry.is_public.is_(True))
        return query.order_by(ActivityLogEntry.created_at.asc(), ActivityLogEntry.id.asc()).all()

    @staticmethod
    def append_activity(
        db: Session,
        business_id: int,
        job_id: int,
        note: str,
        created_by: Optional[int] = None,
        is_public: bool = True,
        created_at: Optional[datetime] = None,
    ) -> ActivityLogEntry:
        entry = ActivityLogEntry(
            business_id=business_id,
            entity_type="job",
            entity_id=job_id,
            note=note,
            created_by=created_by,
            is_public=is_public,
            created_at=created_at or datetime.utcnow(),
        )
        db.add(entry)
        db.flush()
        return entry

    # Status change events
    @staticmethod
    def list_status_events(db: Session, job_id: int, business_id: int) -> list[StatusChangeEvent]:
        return (
            db.query(StatusChangeEvent)
            .filter(
                StatusChangeEvent.job_id == job_id,
                StatusChangeEvent.business_id == business_id,
            )
            .order_by(StatusChangeEvent.created_at.asc(), StatusChangeEvent.id.asc())
            .all()
        )

    @staticmethod
    def append_status_event(db: Session, event: StatusChangeEvent) -> StatusChangeEvent:
        db.add(event)
        db.flush()
        return event

    # Read-only lookups used to enrich descriptions
    @staticmethod
    def get_customer(db: Session, customer_id: Optional[int], business_id: int) -> Optional[Customer]:
        if not customer_id:
            return None
        return (
            db.query(Customer)
            .filter(Customer.id == customer_id, Customer.business_id == business_id)
            .first()
        )

    @staticmethod
    def get_user(db: Session, user_id: Optional[int], business_id: int) -> Optional[User]:
        if not user_id:
            return None
        return db.query(User).filter(User.id == user_id, User.business_id == business_id).first()
