"""
Tests for status timeline reconstruction and time-in-status
"""
from datetime import datetime, timedelta, timezone

from workshop.domain.jobs.schemas import StatusChange
from workshop.domain.jobs.status_parser import collect_status_changes
from workshop.domain.jobs.timeline import (
    coerce_datetime,
    duration_days,
    find_status_entry_time,
    format_duration,
    reconstruct,
    reconstruct_timeline,
    time_in_status,
)

CREATED = datetime(2024, 1, 1, 9, 0, 0)
NOW = datetime(2024, 1, 11, 9, 0, 0)


def note(note_id, text, at):
    return {"id": note_id, "note": text, "createdAt": at}


def change_note(note_id, old, new, at):
    return note(note_id, f'Status changed from "{old}" to "{new}"', at)


def test_no_changes_gives_single_open_entry():
    job = {"createdAt": CREATED, "status": "waiting_assessment"}
    timeline = reconstruct(job, [note(1, "Booked in", CREATED)], NOW)

    assert len(timeline) == 1
    entry = timeline[0]
    assert entry.status == "waiting_assessment"
    assert entry.startTime == CREATED
    assert entry.endTime is None
    assert entry.isCurrent is True
    assert entry.durationDays == 10.0


def test_n_changes_give_n_plus_one_contiguous_entries():
    t1 = CREATED + timedelta(days=1)
    t2 = CREATED + timedelta(days=3)
    t3 = CREATED + timedelta(days=4, hours=12)
    entries = [
        change_note(1, "Waiting Assessment", "In Progress", t1),
        note(2, "Ordered a carburettor", t1 + timedelta(hours=1)),
        change_note(3, "In Progress", "On Hold", t2),
        change_note(4, "On Hold", "In Progress", t3),
    ]
    job = {"createdAt": CREATED, "status": "in_progress"}

    timeline = reconstruct(job, entries, NOW)

    assert len(timeline) == 4
    assert [e.status for e in timeline] == ["waiting_assessment", "in_progress", "on_hold", "in_progress"]
    assert [e.isCurrent for e in timeline] == [False, False, False, True]
    for previous, following in zip(timeline, timeline[1:]):
        assert previous.endTime == following.startTime, "Intervals must be contiguous"
    assert timeline[0].startTime == CREATED
    assert timeline[0].durationDays == 1.0
    assert timeline[1].durationDays == 2.0
    assert timeline[2].durationDays == 1.5
    assert timeline[2].label == "On Hold"


def test_reconstruction_is_idempotent():
    entries = [change_note(1, "Waiting Assessment", "In Progress", CREATED + timedelta(hours=5))]
    job = {"createdAt": CREATED, "status": "in_progress"}
    assert reconstruct(job, entries, NOW) == reconstruct(job, entries, NOW)


def test_out_of_order_entries_are_sorted_and_ties_keep_document_order():
    t1 = CREATED + timedelta(days=1)
    entries = [
        change_note(1, "In Progress", "Ready for Pickup", CREATED + timedelta(days=2)),
        change_note(2, "Waiting Assessment", "In Progress", t1),
        change_note(3, "Ready for Pickup", "Completed", CREATED + timedelta(days=2)),
    ]
    job = {"createdAt": CREATED, "status": "completed"}

    timeline = reconstruct(job, entries, NOW)

    assert [e.status for e in timeline] == ["waiting_assessment", "in_progress", "ready_for_pickup", "completed"]
    assert timeline[2].durationDays == 0.0


def test_structured_changes_and_iso_strings():
    changes = [
        StatusChange(
            fromStatus="waiting_assessment",
            toStatus="in_progress",
            fromLabel="Waiting Assessment",
            toLabel="In Progress",
            at="2024-01-02T09:00:00Z",
        )
    ]
    job = {"created_at": "2024-01-01T09:00:00+00:00", "status": "in_progress"}
    timeline = reconstruct_timeline(job, changes, NOW)
    assert timeline[0].startTime == CREATED
    assert timeline[0].endTime == datetime(2024, 1, 2, 9, 0, 0)


def test_unparseable_created_at_is_treated_as_now():
    job = {"createdAt": "not a date", "status": "on_hold"}
    timeline = reconstruct(job, [], NOW)
    assert timeline[0].startTime == NOW
    assert timeline[0].durationDays == 0.0


def test_future_dated_entry_is_clamped_to_zero():
    future = NOW + timedelta(days=2)
    job = {"createdAt": CREATED, "status": "in_progress"}
    timeline = reconstruct(job, [change_note(1, "Waiting Assessment", "In Progress", future)], NOW)
    assert timeline[-1].startTime == future
    assert timeline[-1].durationDays == 0.0


def test_timezone_aware_values_are_normalized_to_utc():
    aware = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone(timedelta(hours=1)))
    assert coerce_datetime(aware, NOW) == CREATED
    assert coerce_datetime(None, NOW) == NOW


def test_duration_rounds_to_two_decimals():
    assert duration_days(CREATED, CREATED + timedelta(hours=8), NOW) == 0.33
    assert duration_days(CREATED, None, NOW) == 10.0


def test_entry_time_uses_latest_reentry_after_oscillation():
    t1 = CREATED + timedelta(days=1)
    t3 = CREATED + timedelta(days=5)
    entries = [
        change_note(1, "Waiting Assessment", "In Progress", t1),
        change_note(2, "In Progress", "On Hold", CREATED + timedelta(days=2)),
        change_note(3, "On Hold", "In Progress", t3),
    ]
    job = {"createdAt": CREATED, "status": "in_progress"}

    days, entry_time = time_in_status(job, collect_status_changes(entries), NOW)
    assert entry_time == t3
    assert days == 5.0


def test_leaving_a_status_drops_duplicate_entries():
    reentry = CREATED + timedelta(days=4)
    entries = [
        change_note(1, "Waiting Assessment", "In Progress", CREATED + timedelta(days=1)),
        change_note(2, "Waiting Assessment", "In Progress", CREATED + timedelta(days=2)),
        change_note(3, "In Progress", "On Hold", CREATED + timedelta(days=3)),
        change_note(4, "On Hold", "In Progress", reentry),
    ]
    assert find_status_entry_time(collect_status_changes(entries), "In Progress", NOW) == reentry


def test_duplicate_entries_without_exit_keep_the_earliest():
    first = CREATED + timedelta(days=1)
    entries = [
        change_note(1, "Waiting Assessment", "In Progress", first),
        change_note(2, "Waiting Assessment", "In Progress", CREATED + timedelta(days=2)),
    ]
    assert find_status_entry_time(collect_status_changes(entries), "In Progress", NOW) == first


def test_entry_time_falls_back_to_creation():
    job = {"createdAt": CREATED, "status": "waiting_assessment"}
    days, entry_time = time_in_status(job, [], NOW)
    assert entry_time == CREATED
    assert days == 10.0


def test_find_status_entry_time_without_match():
    assert find_status_entry_time([], "In Progress", NOW) is None


def test_format_duration():
    assert format_duration(0) == "0 minutes"
    assert format_duration(1 / 1440) == "1 minute"
    assert format_duration(0.125) == "3 hours"
    assert format_duration(1 / 24) == "1 hour"
    assert format_duration(1) == "1 day"
    assert format_duration(2.5) == "2.5 days"
    assert format_duration(7) == "1 week"
    assert format_duration(10) == "1 week 3 days"
    assert format_duration(14) == "2 weeks"
