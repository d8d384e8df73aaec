"""
Job status vocabulary and transition rules

Job statuses: waiting_assessment → in_progress → on_hold / ready_for_pickup → completed
on_hold and ready_for_pickup can also go back to in_progress.
cancelled is terminal and cannot be reached through an update.
"""

from typing import Optional

WAITING_ASSESSMENT = "waiting_assessment"
IN_PROGRESS = "in_progress"
ON_HOLD = "on_hold"
READY_FOR_PICKUP = "ready_for_pickup"
COMPLETED = "completed"
CANCELLED = "cancelled"

JOB_STATUSES = (
    WAITING_ASSESSMENT,
    IN_PROGRESS,
    ON_HOLD,
    READY_FOR_PICKUP,
    COMPLETED,
    CANCELLED,
)

STATUS_LABELS = {
    WAITING_ASSESSMENT: "Waiting Assessment",
    IN_PROGRESS: "In Progress",
    ON_HOLD: "On Hold",
    READY_FOR_PICKUP: "Ready for Pickup",
    COMPLETED: "Completed",
    CANCELLED: "Cancelled",
}

VALID_TRANSITIONS = {
    WAITING_ASSESSMENT: [IN_PROGRESS],
    IN_PROGRESS: [ON_HOLD, READY_FOR_PICKUP],
    ON_HOLD: [IN_PROGRESS, COMPLETED],
    READY_FOR_PICKUP: [IN_PROGRESS, COMPLETED],
    COMPLETED: [],  # Terminal state
    CANCELLED: [],  # Terminal state
}

# Assigning a mechanic never moves a job that is already this far along
AUTO_ADVANCE_EXEMPT = (IN_PROGRESS, READY_FOR_PICKUP, COMPLETED, CANCELLED)


def format_status(status: str) -> str:
    """Render a status code as the label used in notes ("in_progress" → "In Progress")"""
    if status in STATUS_LABELS:
        return STATUS_LABELS[status]
    return " ".join(word.capitalize() for word in status.replace("_", " ").split())


def is_valid_status(status: Optional[str]) -> bool:
    return status in JOB_STATUSES


def validate_status_transition(current_status: str, new_status: str) -> bool:
    """
    Validate if a job status transition is allowed

    Args:
        current_status: Current job status
        new_status: Desired new status

    Returns:
        bool: True if transition is valid, False otherwise
    """
    # Allow same status (no-op)
    if current_status == new_status:
        return True

    return new_status in VALID_TRANSITIONS.get(current_status, [])


def resolve_auto_advance(
    current_status: str,
    current_assignee: Optional[int],
    requested_status: Optional[str],
    requested_assignee: Optional[int],
    assignee_provided: bool,
) -> Optional[str]:
    """
    Work begins when someone takes ownership of the job.

    Returns the status the update should carry: the explicit one when the caller
    set it, in_progress when a new assignee picks up a job that has not started,
    otherwise None (status untouched).
    """
    if requested_status is not None:
        return requested_status

    assignment_changed = assignee_provided and requested_assignee != current_assignee
    if not assignment_changed or requested_assignee is None:
        return None

    if current_status in AUTO_ADVANCE_EXEMPT:
        return None

    return IN_PROGRESS


def initial_status(requested_status: Optional[str], assigned_to: Optional[int]) -> str:
    """Status for a new job; an assigned job that has not been assessed starts in progress"""
    if assigned_to and (not requested_status or requested_status == WAITING_ASSESSMENT):
        return IN_PROGRESS
    return requested_status or WAITING_ASSESSMENT
