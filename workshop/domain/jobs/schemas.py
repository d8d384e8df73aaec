"""Job domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from .status import JOB_STATUSES, is_valid_status


def _check_status(v):
    if v is not None and not is_valid_status(v):
        raise ValueError(f"Invalid status '{v}'. Must be one of: {', '.join(JOB_STATUSES)}")
    return v


class JobCreate(BaseModel):
    """Schema for creating a new job"""

    description: str
    jobCode: Optional[str] = None
    customerId: Optional[int] = None
    assignedTo: Optional[int] = None
    status: Optional[str] = None
    equipmentDescription: Optional[str] = None
    taskDetails: Optional[str] = None
    estimatedHours: Optional[int] = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        if not v or not v.strip():
            raise ValueError("Description is required")
        return v.strip()

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


class JobUpdate(BaseModel):
    """
    Schema for updating an existing job.

    Only fields present in the request body are applied, so an explicit
    "assignedTo": null unassigns the job while omitting it leaves it alone.
    """

    description: Optional[str] = None
    customerId: Optional[int] = None
    assignedTo: Optional[int] = None
    status: Optional[str] = None
    equipmentDescription: Optional[str] = None
    taskDetails: Optional[str] = None
    estimatedHours: Optional[int] = None
    actualHours: Optional[int] = None
    version: Optional[int] = None  # Last version the caller read; mismatches are rejected

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


class JobResponse(BaseModel):
    """Schema for job response"""

    id: int
    jobCode: str
    status: str
    description: str
    customerId: Optional[int] = None
    assignedTo: Optional[int] = None
    equipmentDescription: Optional[str] = None
    taskDetails: Optional[str] = None
    estimatedHours: Optional[int] = None
    actualHours: Optional[int] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    version: int


class JobWithTimeInStatus(JobResponse):
    """Job enriched with how long it has been in its current status"""

    timeInStatusDays: float
    statusEntryTime: Optional[datetime] = None


class StatusChange(BaseModel):
    """One status transition, read from the event log or parsed from a legacy note"""

    fromStatus: str
    toStatus: str
    fromLabel: str
    toLabel: str
    at: Any = None  # datetime or raw stored value; unparseable values resolve to "now"
    source: str = "event"  # event, note
    sourceId: Optional[int] = None


class StatusTimelineEntry(BaseModel):
    """Derived interval a job spent in one status (never persisted)"""

    status: str
    label: str
    startTime: datetime
    endTime: Optional[datetime] = None
    durationDays: float
    isCurrent: bool


class JobNoteCreate(BaseModel):
    """Schema for adding an operator note to a job"""

    note: str
    isPublic: bool = True

    @field_validator("note")
    @classmethod
    def validate_note(cls, v):
        if not v or not v.strip():
            raise ValueError("Note is required")
        return v.strip()


class JobNoteResponse(BaseModel):
    id: int
    jobId: int
    note: str
    isPublic: bool
    createdBy: Optional[int] = None
    createdAt: Optional[datetime] = None


class PublicTrackerResponse(BaseModel):
    """Customer-facing job tracker payload"""

    job: dict
    customer: dict
    updates: list[JobNoteResponse]
    timeline: list[StatusTimelineEntry]
