"""Job router - FastAPI endpoints for workshop jobs"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...services.notification_service import NotificationService
from .schemas import (
    JobCreate,
    JobNoteCreate,
    JobNoteResponse,
    JobUpdate,
    JobWithTimeInStatus,
    PublicTrackerResponse,
    StatusTimelineEntry,
)
from .service import JobLifecycleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])

JOB_NOT_FOUND = "Job not found"


def get_notifier(db: Session = Depends(get_db)) -> NotificationService:
    """Dependency injection for the notification collaborator"""
    return NotificationService(db)


def get_job_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
) -> JobLifecycleService:
    """Dependency injection for JobLifecycleService"""
    return JobLifecycleService(db, notifier)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[JobWithTimeInStatus])
async def get_jobs(
    customerId: Optional[int] = Query(None),
    assignedTo: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: JobLifecycleService = Depends(get_job_service),
):
    """Get all jobs for the business, each with time in its current status"""
    return service.list_jobs(current_user.business_id, customerId, assignedTo)


@router.post("", response_model=JobWithTimeInStatus, status_code=201)
async def create_job(
    data: JobCreate,
    current_user: User = Depends(get_current_user),
    service: JobLifecycleService = Depends(get_job_service),
):
    """Create a new job"""
    return await service.create_job(data, current_user)


@router.get("/generate-job-id")
async def generate_job_id(
    current_user: User = Depends(get_current_user),
    service: JobLifecycleService = Depends(get_job_service),
):
    """Reserve the next sequential job code"""
    return service.generate_next_job_code(current_user.business_id)


@router.get("/public/tracker", response_model=PublicTrackerResponse)
async def get_public_tracker(
    jobId: str = Query(..., description="Job code, e.g. B1-WS-1000"),
    email: str = Query(...),
    businessId: int = Query(...),
    service: JobLifecycleService = Depends(get_job_service),
):
    """Customer job tracker (no login, gated on the customer's email)"""
    return service.get_public_tracker(jobId, email, businessId)


@router.get("/{job_ref}", response_model=JobWithTimeInStatus)
async def get_job(
    job_ref: str,
    current_user: User = Depends(get_current_user),
    service: JobLifecycleService = Depends(get_job_service),
):
    """Get a job by ID or job code"""
    job = service.get_job_with_timeline(job_ref, current_user.business_id)
    if not job:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND)
    return job


@router.put("/{job_id}", response_model=JobWithTimeInStatus)
@router.patch("/{job_id}", response_model=JobWithTimeInStatus)
async def update_job(
    job_id: int,
    data: JobUpdate,
    current_user: User = Depends(get_current_user),
    service: JobLifecycleService = Depends(get_job_service),
):
    """Update a job; status changes are validated and recorded in the job history"""
    job = await service.update_job(job_id, data, current_user)
    if not job:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND)
    return job


@router.delete("/{job_id}")
async def delete_job(
    job_id: int,
    current_user: User = Depends(get_current_user),
    service: JobLifecycleService = Depends(get_job_service),
):
    """Delete a job"""
    result = await service.delete_job(job_id, current_user)
    if not result:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND)
    return result


# ============================================================================
# STATUS HISTORY AND NOTES
# ============================================================================


@router.get("/{job_id}/timeline", response_model=list[StatusTimelineEntry])
async def get_job_timeline(
    job_id: int,
    current_user: User = Depends(get_current_user),
    service: JobLifecycleService = Depends(get_job_service),
):
    """How long the job spent in each status, oldest first"""
    timeline = service.get_status_timeline(job_id, current_user.business_id)
    if timeline is None:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND)
    return timeline


@router.get("/{job_id}/updates", response_model=list[JobNoteResponse])
async def get_job_updates(
    job_id: int,
    publicOnly: bool = Query(False),
    current_user: User = Depends(get_current_user),
    service: JobLifecycleService = Depends(get_job_service),
):
    """Notes on a job, oldest first"""
    notes = service.list_notes(job_id, current_user.business_id, publicOnly)
    if notes is None:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND)
    return notes


@router.post("/{job_id}/updates", response_model=JobNoteResponse, status_code=201)
async def add_job_update(
    job_id: int,
    data: JobNoteCreate,
    current_user: User = Depends(get_current_user),
    service: JobLifecycleService = Depends(get_job_service),
):
    """Add an operator note to a job"""
    note = service.add_note(job_id, data, current_user)
    if not note:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND)
    return note
