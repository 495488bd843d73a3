# tasks.py
"""
Task handlers: each one validates, writes the task, then appends history.

A task write followed by a failed history append is undone with a
compensating update before the error propagates. History entries already
written in that step are removed too, so neither side keeps a change the
other does not show.
"""
import logging
from contextlib import contextmanager

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from ..errors import Conflict, NotFound, PermissionDenied, ValidationError
from ..models.models import TASK_STATUSES, create_task as new_task_doc
from ..utils.utils import now_utc, parse_due_date, validate_objectid
from .assignments import diff_assignees
from .history import record_history
from .lifecycle import can_act_on, plan_transition
from .notifications import notify_users
from .profiles import profile_names

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "due_date", "assignees")


@contextmanager
def compensating(db, undo, what):
    """
    Yields a list to collect the history entries written in the block. On a
    failed write the task is restored with ``undo`` and the collected entries
    are deleted.
    """
    written = []
    try:
        yield written
    except PyMongoError:
        logger.exception("History write failed after %s, undoing the task write", what)
        undo()
        if written:
            db.taskHistory.delete_many({"_id": {"$in": [e["_id"] for e in written]}})
        raise


def _restore_fields(db, original, keys):
    restore = {k: original[k] for k in keys if k in original}
    restore["updated_at"] = original.get("updated_at")
    update = {"$set": restore, "$inc": {"version": 1}}
    missing = {k: "" for k in keys if k not in original}
    if missing:
        update["$unset"] = missing
    db.tasks.update_one({"_id": original["_id"]}, update)


def _require_admin(session, message):
    if not session.is_admin:
        raise PermissionDenied(message)


def get_task(db, task_id):
    oid = validate_objectid(task_id)
    if not oid:
        raise ValidationError("Invalid task ID")
    task = db.tasks.find_one({"_id": oid})
    if not task:
        raise NotFound("Task not found")
    return task


def get_visible_task(db, session, task_id):
    task = get_task(db, task_id)
    if not can_act_on(task, session):
        raise PermissionDenied("Unauthorized")
    return task


def _text(value, name):
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value.strip()


def _known_assignees(db, assignees):
    if not isinstance(assignees, list) or not all(isinstance(a, str) for a in assignees):
        raise ValidationError("assignees must be a list of user ids")
    known = {p["_id"] for p in db.profiles.find({"_id": {"$in": assignees}}, {"_id": 1})}
    kept = []
    for uid in assignees:
        if uid in known and uid not in kept:
            kept.append(uid)
    if not kept:
        raise ValidationError("At least one known assignee is required")
    return kept


def create_task(db, session, title, description, assignees, due_date):
    _require_admin(session, "Only administrators can create tasks")
    title = _text(title, "title")
    if not title:
        raise ValidationError("Title required")
    description = _text(description, "description")
    due = parse_due_date(due_date)
    if not due:
        raise ValidationError("A valid due_date is required")
    assignees = _known_assignees(db, assignees)

    task = new_task_doc(title, description, assignees, due, session.user_id)
    task["_id"] = db.tasks.insert_one(task).inserted_id

    names = profile_names(db, assignees)

    def undo():
        db.tasks.delete_one({"_id": task["_id"]})

    with compensating(db, undo, "task creation") as written:
        written.append(record_history(
            db, task["_id"], session.user_id, session.name, "created",
            new_status="todo",
            metadata={"title": task["title"], "description": task["description"], "assignees": assignees},
        ))
        for uid in assignees:
            written.append(record_history(
                db, task["_id"], session.user_id, session.name, "assigned",
                new_status="todo",
                metadata={"assignedTo": uid, "assignedToName": names[uid]},
            ))

    logger.info("Task %s created by %s for %s", task["_id"], session.user_id, assignees)
    return task


def list_tasks(db, session, status=None):
    query = {} if session.is_admin else {"assignees": session.user_id}
    if status:
        if status not in TASK_STATUSES:
            raise ValidationError(f"Unknown status '{status}'")
        query["status"] = status
    return list(db.tasks.find(query).sort("created_at", DESCENDING))


def list_pending(db, session):
    _require_admin(session, "Only administrators can review tasks")
    return list_tasks(db, session, "pending_approval")


def list_completed(db, session):
    tasks = list_tasks(db, session, "completed")
    approvers = profile_names(db, {t["approved_by"] for t in tasks if t.get("approved_by")})
    for t in tasks:
        if t.get("approved_by"):
            t["approvedByName"] = approvers[t["approved_by"]]
    return tasks


def change_status(db, session, task_id, requested, note=None):
    """
    Move a task along the state machine. Returns ``(task, transition)``.
    """
    task = get_task(db, task_id)
    transition = plan_transition(task, requested, session, note)

    updated = db.tasks.find_one_and_update(
        {"_id": task["_id"], "status": transition.old_status},
        {"$set": dict(transition.updates, updated_at=now_utc()), "$inc": {"version": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise Conflict("The task was changed by someone else, reload and try again")

    def undo():
        _restore_fields(db, task, list(transition.updates))

    with compensating(db, undo, "status change"):
        record_history(
            db, task["_id"], session.user_id, session.name, transition.action,
            old_status=transition.old_status,
            new_status=transition.new_status,
            note=transition.note,
            metadata=transition.metadata,
        )

    logger.info(
        "Task %s %s -> %s by %s (%s)",
        task["_id"], transition.old_status, transition.new_status, session.user_id, transition.action,
    )
    _notify_transition(db, updated, transition, session)
    return updated, transition


def _notify_transition(db, task, transition, session):
    try:
        if transition.action == "completed":
            admins = [p["_id"] for p in db.profiles.find({"role": "admin"}, {"_id": 1})]
            notify_users(
                db, admins, "task_completed", "Task Submitted for Review",
                f"{session.name} submitted '{task['title']}' for approval", task["_id"],
            )
        elif transition.action == "approved":
            notify_users(
                db, task.get("assignees", []), "task_approved", "Task Approved",
                f"'{task['title']}' has been approved", task["_id"],
            )
    except PyMongoError:
        # notifications are best effort, the transition itself is already recorded
        logger.exception("Could not send notifications for task %s", task["_id"])


def update_task(db, session, task_id, changes):
    """
    Admin edit. Returns ``(task, history_entries)``; an edit that changes
    nothing writes nothing.
    """
    _require_admin(session, "Only administrators can edit tasks")
    if "status" in changes:
        raise ValidationError("Use the status endpoint to change a task's status")
    task = get_task(db, task_id)

    updates = {}
    if "title" in changes:
        title = _text(changes.get("title"), "title")
        if not title:
            raise ValidationError("Title required")
        if title != task.get("title"):
            updates["title"] = title
    if "description" in changes:
        description = _text(changes.get("description"), "description")
        if description != task.get("description"):
            updates["description"] = description
    if "due_date" in changes:
        due = parse_due_date(changes.get("due_date"))
        if not due:
            raise ValidationError("Bad due_date")
        if due != task.get("due_date"):
            updates["due_date"] = due

    added, removed = [], []
    if "assignees" in changes:
        new_assignees = _known_assignees(db, changes.get("assignees"))
        added, removed = diff_assignees(task.get("assignees", []), new_assignees)
        if added or removed:
            updates["assignees"] = new_assignees

    if not updates:
        return task, []

    updated = db.tasks.find_one_and_update(
        {"_id": task["_id"]},
        {"$set": dict(updates, updated_at=now_utc()), "$inc": {"version": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFound("Task not found")

    edited = [k for k in EDITABLE_FIELDS if k in updates and k != "assignees"]
    names = profile_names(db, added + removed)

    def undo():
        _restore_fields(db, task, list(updates))

    with compensating(db, undo, "task edit") as entries:
        if edited:
            entries.append(record_history(
                db, task["_id"], session.user_id, session.name, "edited",
                metadata={"fields": edited, "changes": {k: updates[k] for k in edited}},
            ))
        for uid in added:
            entries.append(record_history(
                db, task["_id"], session.user_id, session.name, "assigned",
                metadata={"assignedTo": uid, "assignedToName": names[uid]},
            ))
        for uid in removed:
            entries.append(record_history(
                db, task["_id"], session.user_id, session.name, "unassigned",
                metadata={"unassignedFrom": uid, "unassignedFromName": names[uid]},
            ))

    logger.info("Task %s edited by %s: %s", task["_id"], session.user_id, sorted(updates))
    return updated, entries


def attach_file(db, session, storage, task_id, file):
    """
    Store an attachment and point the task at it. The previous attachment
    is removed once the new one is recorded.
    """
    task = get_visible_task(db, session, task_id)
    previous = task.get("file_path")
    path = storage.save(task["_id"], file)

    def discard_upload():
        # same name means the upload overwrote the previous file in place
        if path != previous:
            storage.delete(path)

    try:
        updated = db.tasks.find_one_and_update(
            {"_id": task["_id"]},
            {"$set": {"file_path": path, "updated_at": now_utc()}, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError:
        logger.exception("Could not attach %s to task %s", path, task["_id"])
        discard_upload()
        raise

    def undo():
        _restore_fields(db, task, ["file_path"])
        discard_upload()

    with compensating(db, undo, "file upload"):
        record_history(
            db, task["_id"], session.user_id, session.name, "edited",
            metadata={"fields": ["file_path"], "file": path},
        )

    if previous and previous != path:
        storage.delete(previous)
    return updated


def team_stats(db, session):
    tasks = list_tasks(db, session)
    members = []
    for profile in db.profiles.find().sort("name"):
        uid = profile["_id"]
        mine = [t for t in tasks if uid in t.get("assignees", [])]
        done = sum(1 for t in mine if t["status"] in ("completed", "pending_approval"))
        members.append({
            "user_id": uid,
            "name": profile.get("name"),
            "role": profile.get("role", "member"),
            "active": len(mine) - done,
            "completed": done,
        })
    totals = {status: sum(1 for t in tasks if t["status"] == status) for status in TASK_STATUSES}
    totals["total"] = len(tasks)
    totals["team_members"] = len(members)
    return {"members": members, "totals": totals}
