# history.py
"""Append-only task history (the taskHistory collection)."""
from pymongo import DESCENDING

from ..models.models import HISTORY_ACTIONS, create_history_entry


def record_history(db, task_id, actor_id, actor_name, action, old_status=None,
                   new_status=None, note=None, metadata=None):
    """
    Append one history record and return it (with its ``_id``).
    Entries are never updated or deleted afterwards.
    """
    if action not in HISTORY_ACTIONS:
        raise ValueError(f"Unknown history action: {action}")
    if not actor_id or not actor_name:
        raise ValueError("History entries need the acting user's id and name")

    entry = create_history_entry(
        task_id, actor_id, actor_name, action,
        old_status=old_status, new_status=new_status, note=note, metadata=metadata,
    )
    result = db.taskHistory.insert_one(entry)
    entry["_id"] = result.inserted_id
    return entry


def list_history(db, task_id):
    cursor = db.taskHistory.find({"taskId": str(task_id)}).sort([("timestamp", DESCENDING), ("_id", DESCENDING)])
    return list(cursor)


def format_status(status):
    if not status:
        return ""
    return " ".join(word.capitalize() for word in status.split("_"))


def describe_entry(entry):
    action = entry.get("action")
    metadata = entry.get("metadata") or {}
    if action == "created":
        return "created this task"
    if action == "assigned":
        return f"assigned this task to {metadata.get('assignedToName') or 'someone'}"
    if action == "unassigned":
        return f"unassigned {metadata.get('unassignedFromName') or 'a user'} from this task"
    if action == "completed":
        return "marked this task as complete"
    if action == "approved":
        return "approved this task"
    if action == "reopened":
        return "reopened this task"
    if action == "status_changed":
        return (
            f"changed status from {format_status(entry.get('oldStatus'))} "
            f"to {format_status(entry.get('newStatus'))}"
        )
    if action == "edited":
        return "edited this task"
    return "updated this task"
