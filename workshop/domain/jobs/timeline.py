"""
Status timeline reconstruction

Derives how long a job spent in each status from its ordered status changes.
Nothing here is stored: the timeline is rebuilt from the log on every read,
so it always reflects notes appended out of band.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from .schemas import StatusChange, StatusTimelineEntry
from .status import format_status
from .status_parser import collect_status_changes

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 60 * 60 * 24


def coerce_datetime(value, fallback: datetime) -> datetime:
    """Naive-UTC datetime for a stored timestamp; anything unparseable becomes the fallback"""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"Unparseable timestamp {value!r}, using fallback")
            return fallback
        return coerce_datetime(parsed, fallback)

    return fallback


def duration_days(start: datetime, end: Optional[datetime], now: datetime) -> float:
    """Fractional days between start and end (or now), never negative, two decimals"""
    delta = ((end or now) - start).total_seconds() / SECONDS_PER_DAY
    return max(0.0, round(delta, 2))


def format_duration(days: float) -> str:
    """Human readable duration used in status-change notes ("3 hours", "1 week 2.5 days")"""
    if days < 1:
        hours = round(days * 24)
        if hours < 1:
            minutes = round(days * 24 * 60)
            return f"{minutes} minute{'s' if minutes != 1 else ''}"
        return f"{hours} hour{'s' if hours != 1 else ''}"

    if days < 7:
        rounded = round(days, 1)
        return f"{rounded:g} day{'s' if rounded != 1 else ''}"

    weeks = int(days // 7)
    remaining_days = round(days % 7, 1)
    week_text = f"{weeks} week{'s' if weeks != 1 else ''}"
    if remaining_days == 0:
        return week_text
    return f"{week_text} {remaining_days:g} day{'s' if remaining_days != 1 else ''}"


def _job_value(job, name: str, camel_name: str):
    if isinstance(job, dict):
        return job.get(name, job.get(camel_name))
    return getattr(job, name, None)


def sort_changes(changes: list[StatusChange], now: datetime) -> list[tuple[datetime, StatusChange]]:
    """Chronological order; sorted() is stable so equal timestamps keep document order"""
    timed = [(coerce_datetime(change.at, now), change) for change in changes]
    return sorted(timed, key=lambda item: item[0])


def reconstruct_timeline(
    job, changes: list[StatusChange], now: Optional[datetime] = None
) -> list[StatusTimelineEntry]:
    """
    Build the ordered status timeline for a job.

    Each change closes the interval of the status it left, starting where the
    previous interval ended (job creation for the first one). The job's current
    status gets a final open-ended interval marked current.
    """
    now = now or datetime.utcnow()
    created_at = coerce_datetime(_job_value(job, "created_at", "createdAt"), now)
    current_status = _job_value(job, "status", "status")

    entries = []
    cursor = created_at

    for changed_at, change in sort_changes(changes, now):
        entries.append(
            StatusTimelineEntry(
                status=change.fromStatus,
                label=change.fromLabel or format_status(change.fromStatus),
                startTime=cursor,
                endTime=changed_at,
                durationDays=duration_days(cursor, changed_at, now),
                isCurrent=False,
            )
        )
        cursor = changed_at

    entries.append(
        StatusTimelineEntry(
            status=current_status,
            label=format_status(current_status),
            startTime=cursor,
            endTime=None,
            durationDays=duration_days(cursor, None, now),
            isCurrent=True,
        )
    )
    return entries


def reconstruct(job, activity_entries, now: Optional[datetime] = None) -> list[StatusTimelineEntry]:
    """Timeline straight from raw activity entries; non status-change notes are ignored"""
    return reconstruct_timeline(job, collect_status_changes(activity_entries), now)


def find_status_entry_time(
    changes: list[StatusChange], target_label: str, now: Optional[datetime] = None
) -> Optional[datetime]:
    """
    When did the job enter target_label?

    A change "to" the label opens a candidate; a later change "from" the label
    closes every open one. The earliest candidate still open wins, ties going
    to document order. None means no open candidate exists.
    """
    now = now or datetime.utcnow()
    target = target_label.strip()
    open_candidates = []

    for changed_at, change in sort_changes(changes, now):
        if change.fromLabel.strip() == target:
            open_candidates.clear()
        if change.toLabel.strip() == target:
            open_candidates.append(changed_at)

    return open_candidates[0] if open_candidates else None


def time_in_status(job, changes: list[StatusChange], now: Optional[datetime] = None) -> tuple[float, datetime]:
    """(days in current status, entry time); falls back to creation time when no change matches"""
    now = now or datetime.utcnow()
    created_at = coerce_datetime(_job_value(job, "created_at", "createdAt"), now)
    status = _job_value(job, "status", "status")

    entry_time = find_status_entry_time(changes, format_status(status), now) or created_at
    return duration_days(entry_time, None, now), entry_time
