"""
Status-change note parsing

Legacy status history lives in job notes of the form
    Status changed from "On Hold" to "In Progress" (was in "On Hold" for 2 days)
The parenthesised duration is informational and never re-parsed.
"""

import re
from typing import Optional

from .schemas import StatusChange

STATUS_CHANGE_TRIGGER = 'Status changed from "'

# Non-greedy: each label stops at the first closing quote
STATUS_CHANGE_PATTERN = re.compile(r'Status changed from "([^"]+?)" to "([^"]+?)"')

# Checked in order, first substring hit wins
_LABEL_VOCABULARY = (
    ("waiting assessment", "waiting_assessment"),
    ("in progress", "in_progress"),
    ("on hold", "on_hold"),
    ("ready for pickup", "ready_for_pickup"),
    ("completed", "completed"),
    ("cancelled", "cancelled"),
)


def status_from_label(label: str) -> str:
    """
    Map a note label back to a status code.

    Unknown labels become a slug ("Awaiting Parts" → "awaiting_parts") so that
    labels added later still produce a usable timeline.
    """
    label_lower = label.strip().lower()
    for fragment, status in _LABEL_VOCABULARY:
        if fragment in label_lower:
            return status
    return re.sub(r"\s+", "_", label_lower)


def is_status_change_note(note: Optional[str]) -> bool:
    return parse_labels(note) is not None


def parse_labels(note: Optional[str]) -> Optional[tuple[str, str]]:
    """Return the (from, to) labels of a status-change note, or None for any other note"""
    if not note or STATUS_CHANGE_TRIGGER not in note:
        return None
    match = STATUS_CHANGE_PATTERN.search(note)
    if not match:
        return None
    return match.group(1), match.group(2)


def parse_status_change(note: Optional[str], created_at, source_id: Optional[int] = None) -> Optional[StatusChange]:
    """Build a StatusChange from one note; malformed notes yield None, never an exception"""
    labels = parse_labels(note)
    if labels is None:
        return None

    from_label, to_label = labels
    return StatusChange(
        fromStatus=status_from_label(from_label),
        toStatus=status_from_label(to_label),
        fromLabel=from_label.strip(),
        toLabel=to_label.strip(),
        at=created_at,
        source="note",
        sourceId=source_id,
    )


def collect_status_changes(entries) -> list[StatusChange]:
    """
    Parse status changes out of activity entries.

    Entries may be ORM rows or dicts with note / created_at (createdAt is also accepted).
    Document order is kept; the timeline does the chronological sort.
    """
    changes = []
    for entry in entries:
        if isinstance(entry, dict):
            note = entry.get("note")
            created_at = entry.get("created_at", entry.get("createdAt"))
            entry_id = entry.get("id")
        else:
            note = getattr(entry, "note", None)
            created_at = getattr(entry, "created_at", None)
            entry_id = getattr(entry, "id", None)

        change = parse_status_change(note, created_at, entry_id)
        if change is not None:
            changes.append(change)
    return changes
