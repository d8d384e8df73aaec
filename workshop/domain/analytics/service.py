"""
Analytics service - Dashboard aggregates for jobs and callbacks

The aggregate functions are pure: they take already-loaded rows (ORM objects
or anything with the same attributes) so they can be tested without a database.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...models import User
from ..jobs.status import CANCELLED, COMPLETED, JOB_STATUSES, format_status
from .repository import AnalyticsRepository

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 60 * 60
SECONDS_PER_DAY = SECONDS_PER_HOUR * 24
TREND_WINDOW_DAYS = 30
PRIORITIES = ("low", "medium", "high", "urgent")
CALLBACK_STATUSES = ("pending", "completed", "archived")


def elapsed(start: Optional[datetime], end: Optional[datetime], unit_seconds: int) -> Optional[float]:
    """Elapsed time in the given unit; None when either end is missing or the span is negative"""
    if start is None or end is None:
        return None
    value = (end - start).total_seconds() / unit_seconds
    if value < 0:
        return None
    return value


def rounded_average(values: list[float]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def rounded_max(values: list[float]) -> Optional[float]:
    if not values:
        return None
    return round(max(values), 2)


def completion_rate(completed: int, total: int) -> float:
    """Percentage, two decimals"""
    if total == 0:
        return 0.0
    return round(completed / total * 100, 2)


def summarize_jobs(jobs, total_customers: int, now: datetime) -> dict:
    """Headline numbers for the workshop dashboard"""
    one_week_ago = now - timedelta(days=7)

    active_jobs = [j for j in jobs if j.status not in (COMPLETED, CANCELLED)]
    completed_jobs = [j for j in jobs if j.status == COMPLETED and j.completed_at]
    completed_this_week = [j for j in completed_jobs if j.completed_at >= one_week_ago]

    # Negative spans (bad clocks, back-dated rows) are discarded before averaging
    repair_days = [
        days
        for days in (elapsed(j.created_at, j.completed_at, SECONDS_PER_DAY) for j in completed_jobs)
        if days is not None
    ]

    return {
        "activeJobs": len(active_jobs),
        "totalCustomers": total_customers,
        "completedThisWeek": len(completed_this_week),
        "avgRepairTimeDays": rounded_average(repair_days) or 0.0,
        "jobsByStatus": [
            {
                "status": status,
                "name": format_status(status),
                "count": sum(1 for j in jobs if j.status == status),
            }
            for status in JOB_STATUSES
        ],
    }


def daily_trends(callbacks, today: date, days: int = TREND_WINDOW_DAYS) -> list[dict]:
    """Created vs completed counts per day over the trailing window ending today"""
    start = today - timedelta(days=days - 1)
    created = defaultdict(int)
    completed = defaultdict(int)

    for callback in callbacks:
        if callback.requested_at is not None:
            created[callback.requested_at.date()] += 1
        if callback.completed_at is not None:
            completed[callback.completed_at.date()] += 1

    trends = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        trends.append({"date": day.isoformat(), "created": created[day], "completed": completed[day]})
    return trends


def _priority_counts(callbacks) -> dict:
    counts = {priority: 0 for priority in PRIORITIES}
    for callback in callbacks:
        if callback.priority in counts:
            counts[callback.priority] += 1
    return counts


def _completion_hours(callbacks) -> list[float]:
    hours = (
        elapsed(c.requested_at, c.completed_at, SECONDS_PER_HOUR)
        for c in callbacks
        if c.status == "completed"
    )
    return [h for h in hours if h is not None]


def callback_analytics(
    callbacks,
    users,
    now: datetime,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> dict:
    """
    Callback performance report.

    Completion time is completed_at - requested_at in hours. Staff are ordered
    by how many callbacks they were assigned.
    """
    names = {u.id: u.full_name for u in users}
    by_staff = defaultdict(list)
    for callback in callbacks:
        by_staff[callback.assigned_to].append(callback)

    staff_performance = []
    for staff_id, staff_callbacks in by_staff.items():
        completed = [c for c in staff_callbacks if c.status == "completed"]
        pending = [c for c in staff_callbacks if c.status == "pending"]
        hours = _completion_hours(staff_callbacks)
        staff_performance.append(
            {
                "staffId": staff_id,
                "staffName": names.get(staff_id, "Unknown"),
                "totalCallbacks": len(staff_callbacks),
                "completedCallbacks": len(completed),
                "pendingCallbacks": len(pending),
                "completionRate": completion_rate(len(completed), len(staff_callbacks)),
                "avgCompletionTimeHours": rounded_average(hours),
                "longestCompletionTimeHours": rounded_max(hours),
                "priorityBreakdown": _priority_counts(staff_callbacks),
            }
        )
    staff_performance.sort(key=lambda s: (-s["totalCallbacks"], s["staffName"]))

    all_hours = _completion_hours(callbacks)
    status_breakdown = {status: sum(1 for c in callbacks if c.status == status) for status in CALLBACK_STATUSES}

    return {
        "summary": {
            "totalCallbacks": len(callbacks),
            "totalCompleted": status_breakdown["completed"],
            "totalPending": status_breakdown["pending"],
            "overallAvgCompletionTimeHours": rounded_average(all_hours),
            "overallLongestCompletionTimeHours": rounded_max(all_hours),
            "completionRate": completion_rate(status_breakdown["completed"], len(callbacks)),
        },
        "staffPerformance": staff_performance,
        "statusBreakdown": status_breakdown,
        "priorityDistribution": _priority_counts(callbacks),
        "dailyTrends": daily_trends(callbacks, now.date()),
        "dateRange": {
            "from": from_date.isoformat() if from_date else None,
            "to": to_date.isoformat() if to_date else None,
        },
    }


class AnalyticsService:
    """Service layer for dashboard analytics"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.repo = AnalyticsRepository()
        self.clock = clock or datetime.utcnow

    def get_summary(self, user: User) -> dict:
        jobs = self.repo.get_jobs(self.db, user.business_id)
        total_customers = self.repo.count_customers(self.db, user.business_id)
        return summarize_jobs(jobs, total_customers, self.clock())

    def get_callback_analytics(
        self, user: User, from_date: Optional[date] = None, to_date: Optional[date] = None
    ) -> dict:
        """Callback report; the date range is inclusive and filters on request time"""
        range_start = datetime.combine(from_date, datetime.min.time()) if from_date else None
        range_end = datetime.combine(to_date, datetime.min.time()) + timedelta(days=1) if to_date else None

        callbacks = self.repo.get_callbacks(self.db, user.business_id, range_start, range_end)
        users = self.repo.get_users(self.db, user.business_id)
        logger.info(f"📊 Building callback analytics for business {user.business_id} ({len(callbacks)} callbacks)")

        return callback_analytics(callbacks, users, self.clock(), from_date, to_date)
