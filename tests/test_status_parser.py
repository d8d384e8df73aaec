"""
Tests for status-change note parsing
"""
from datetime import datetime

from workshop.domain.jobs.status_parser import (
    collect_status_changes,
    is_status_change_note,
    parse_labels,
    parse_status_change,
    status_from_label,
)


def test_parses_canonical_note():
    change = parse_status_change(
        'Status changed from "Waiting Assessment" to "In Progress"', datetime(2024, 1, 1), 7
    )
    assert change is not None
    assert change.fromStatus == "waiting_assessment"
    assert change.toStatus == "in_progress"
    assert change.fromLabel == "Waiting Assessment"
    assert change.toLabel == "In Progress"
    assert change.source == "note"
    assert change.sourceId == 7


def test_duration_suffix_is_ignored():
    note = 'Status changed from "On Hold" to "Ready for Pickup" (was in "On Hold" for 1 week 2 days)'
    assert parse_labels(note) == ("On Hold", "Ready for Pickup")


def test_unquoted_note_is_not_a_status_change():
    assert parse_status_change("Status changed from X to", datetime(2024, 1, 1)) is None
    assert not is_status_change_note("Status changed from In Progress to Completed")


def test_trigger_without_closing_quotes_is_ordinary_note():
    assert parse_labels('Status changed from "In Progress to Completed') is None
    assert parse_labels('Status changed from "In Progress" to "Completed') is None


def test_empty_and_missing_notes():
    assert parse_labels("") is None
    assert parse_labels(None) is None
    assert parse_labels("Replaced spark plug, customer informed") is None


def test_label_mapping_is_case_insensitive_substring():
    assert status_from_label("IN PROGRESS") == "in_progress"
    assert status_from_label("  on hold ") == "on_hold"
    assert status_from_label("Ready for Pickup") == "ready_for_pickup"
    assert status_from_label("Completed") == "completed"
    assert status_from_label("Cancelled") == "cancelled"
    assert status_from_label("Waiting Assessment") == "waiting_assessment"


def test_unknown_label_falls_back_to_slug():
    assert status_from_label("Awaiting  Parts") == "awaiting_parts"
    assert status_from_label("Parts Ordered") == "parts_ordered"


def test_collect_keeps_document_order_and_skips_other_notes():
    entries = [
        {"id": 1, "note": "Booked in", "createdAt": "2024-01-01T09:00:00"},
        {"id": 2, "note": 'Status changed from "In Progress" to "On Hold"', "createdAt": "2024-01-03T09:00:00"},
        {"id": 3, "note": 'Status changed from "Waiting Assessment" to "In Progress"', "created_at": "2024-01-02T09:00:00"},
        {"id": 4, "note": "Status changed from nowhere", "createdAt": "2024-01-04T09:00:00"},
    ]
    changes = collect_status_changes(entries)
    assert [c.sourceId for c in changes] == [2, 3], "Only status-change notes, in the order given"
    assert changes[1].at == "2024-01-02T09:00:00"
