# notifications.py
import logging
import time
from datetime import timedelta

from pymongo import ASCENDING, DESCENDING, ReturnDocument

from ..errors import NotFound, ValidationError
from ..models.models import create_notification
from ..realtime.store import EntityStore, LocalPatch
from ..realtime.subscription import ADDED, Subscription
from ..utils.utils import as_utc, due_datetime, now_utc, validate_objectid

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("todo", "in_progress")


class NotificationFeed:
    """
    Bell-icon feed for one user.

    Two subscriptions feed it: the user's notifications (newest first, unread
    before read on ties) and todo tasks assigned to the user. A task that
    shows up as newly added and was created within ``window_seconds`` gets a
    ``task_assigned`` notification.
    """

    def __init__(self, db, user_id, window_seconds=60):
        self.db = db
        self.user_id = user_id
        self.window = timedelta(seconds=window_seconds)
        self.notifications = Subscription(
            db.notifications,
            {"userId": user_id},
            sort=[("timestamp", DESCENDING), ("read", ASCENDING)],
            name=f"notifications:{user_id}",
        )
        self.assignments = Subscription(
            db.tasks,
            {"assignees": user_id, "status": "todo"},
            name=f"assignments:{user_id}",
        )
        self.store = EntityStore()

    def start(self):
        self.notifications.start()
        self.assignments.start()
        return self

    def stop(self):
        self.notifications.stop()
        self.assignments.stop()

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def pump(self, now=None):
        """Poll both subscriptions once; returns how many feed changes were applied."""
        now = now or now_utc()
        for event in self.assignments.poll():
            if event.type == ADDED and self._is_new_assignment(event.doc, now):
                self._notify_assignment(event.doc)
        for event in self.notifications.poll():
            self.store.dispatch(event)
        return self.store.drain()

    def _is_new_assignment(self, task, now):
        created = as_utc(task.get("created_at"))
        return created is not None and created > now - self.window

    def _notify_assignment(self, task):
        task_id = str(task["_id"])
        exists = self.db.notifications.find_one(
            {"userId": self.user_id, "taskId": task_id, "type": "task_assigned"}
        )
        if exists:
            return
        self.db.notifications.insert_one(create_notification(
            self.user_id,
            "task_assigned",
            "New Task Assigned",
            f"You have been assigned '{task.get('title', '')}'",
            task_id,
        ))
        logger.info("Assignment notification for task %s to %s", task_id, self.user_id)

    def items(self):
        docs = sorted(self.store.values(), key=lambda n: bool(n.get("read")))
        return sorted(docs, key=lambda n: as_utc(n["timestamp"]), reverse=True)

    def unread_count(self):
        return sum(1 for n in self.store.values() if not n.get("read"))

    def stream(self, interval=2.0, max_polls=None):
        """Yield the full item list whenever the feed changes."""
        polls = 0
        first = True
        while self.notifications.active:
            if self.pump() or first:
                first = False
                yield self.items()
            polls += 1
            if max_polls is not None and polls >= max_polls:
                return
            time.sleep(interval)

    def mark_read(self, notification_id):
        oid = validate_objectid(notification_id)
        if not oid:
            raise ValidationError("Invalid notification ID")
        doc = self.db.notifications.find_one_and_update(
            {"_id": oid, "userId": self.user_id},
            {"$set": {"read": True, "readAt": now_utc()}, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFound("Notification not found")
        self.store.dispatch(LocalPatch(str(oid), doc["version"], {"read": True, "readAt": doc["readAt"]}))
        self.store.drain()
        return doc

    def mark_all_read(self):
        """Flip every unread notification of the user in one batch update."""
        read_at = now_utc()
        result = self.db.notifications.update_many(
            {"userId": self.user_id, "read": False},
            {"$set": {"read": True, "readAt": read_at}, "$inc": {"version": 1}},
        )
        for doc in self.store.values():
            if not doc.get("read"):
                patch = {"read": True, "readAt": read_at}
                self.store.dispatch(LocalPatch(str(doc["_id"]), doc.get("version", 0) + 1, patch))
        self.store.drain()
        return result.modified_count


def notify_users(db, user_ids, type_, title, message, task_id=None):
    docs = [create_notification(uid, type_, title, message, task_id) for uid in user_ids]
    if docs:
        db.notifications.insert_many(docs)
    return len(docs)


def notify_overdue(db, now=None):
    """
    Create one task_overdue notification per unfinished, past-due task and assignee.
    Returns the number of notifications created.
    """
    now = now or now_utc()
    created = 0
    for task in db.tasks.find({"status": {"$in": list(OPEN_STATUSES)}}):
        due = due_datetime(task.get("due_date"))
        if due is None or due >= now:
            continue
        task_id = str(task["_id"])
        for uid in task.get("assignees", []):
            if db.notifications.find_one({"userId": uid, "taskId": task_id, "type": "task_overdue"}):
                continue
            db.notifications.insert_one(create_notification(
                uid,
                "task_overdue",
                "Task Overdue",
                f"'{task.get('title', '')}' was due on {task.get('due_date')}",
                task_id,
            ))
            created += 1
    if created:
        logger.info("Created %d overdue notifications", created)
    return created
