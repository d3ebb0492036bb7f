"""Embedded subtask checklist — pure list operations, no I/O.

A subtask list is an ordered list of ``{"id", "title", "completed"}`` dicts
stored on ``Task.subtasks``. Every function returns a NEW list so the JSON
column is reassigned (and change-tracked) by the caller.
"""
import uuid


def add(subtasks, title):
    """Append an uncompleted subtask; returns the new list."""
    item = {"id": str(uuid.uuid4()), "title": title.strip(), "completed": False}
    return [dict(s) for s in (subtasks or [])] + [item]


def toggle(subtasks, subtask_id, completed):
    """Set ``completed`` on the matching subtask; unknown ids leave the list unchanged."""
    return [
        {**s, "completed": bool(completed)} if s.get("id") == subtask_id else dict(s)
        for s in (subtasks or [])
    ]


def remove(subtasks, subtask_id):
    return [dict(s) for s in (subtasks or []) if s.get("id") != subtask_id]


def progress(subtasks):
    """Percentage of completed subtasks, rounded; 0 for an empty list."""
    if not subtasks:
        return 0
    done = sum(1 for s in subtasks if s.get("completed"))
    # half-up, not banker's rounding: 1 of 8 → 13
    return int(100 * done / len(subtasks) + 0.5)
