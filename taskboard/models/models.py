# models.py
from datetime import datetime, timezone

TASK_STATUSES = ("todo", "in_progress", "pending_approval", "completed")
ROLES = ("admin", "member")
HISTORY_ACTIONS = (
    "created",
    "assigned",
    "unassigned",
    "status_changed",
    "completed",
    "approved",
    "reopened",
    "edited",
)
NOTIFICATION_TYPES = ("task_assigned", "task_completed", "task_approved", "task_overdue")


# Task Models
def create_task(title, description, assignees, due_date, created_by):
    now = datetime.now(timezone.utc)
    return {
        "title": title.strip(),
        "description": description.strip() if description else "",
        "assignees": list(assignees),
        "status": "todo",
        "due_date": due_date,
        "created_by": created_by,
        "created_at": now,
        "updated_at": now,
        "version": 1,
    }


def create_history_entry(task_id, user_id, user_name, action, old_status=None,
                         new_status=None, note=None, metadata=None):
    entry = {
        "taskId": str(task_id),
        "userId": user_id,
        "userName": user_name,
        "action": action,
        "timestamp": datetime.now(timezone.utc),
        "metadata": dict(metadata or {}),
    }
    # optional fields are left out rather than stored empty
    if old_status:
        entry["oldStatus"] = old_status
    if new_status:
        entry["newStatus"] = new_status
    if note:
        entry["note"] = note
    return entry


def create_notification(user_id, type_, title, message, task_id=None):
    if type_ not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {type_}")
    notification = {
        "type": type_,
        "title": title,
        "message": message,
        "timestamp": datetime.now(timezone.utc),
        "read": False,
        "userId": user_id,
        "version": 1,
    }
    if task_id:
        notification["taskId"] = str(task_id)
    return notification


# User Models
def create_profile(user_id, email, name, role="member"):
    return {
        "_id": user_id,
        "user_id": user_id,
        "email": (email or "").strip().lower(),
        "name": (name or "").strip() or "New User",
        "role": role,  # admin | member
        "created_at": datetime.now(timezone.utc),
    }


def create_auth_user(email, hashed_password, display_name, role="member"):
    return {
        "email": email.strip().lower(),
        "password": hashed_password,
        "display_name": display_name.strip(),
        "custom_claims": role_claims(role),
        "created_at": datetime.now(timezone.utc),
        "tokens_valid_after": None,
    }


def role_claims(role):
    return {"role": role, "admin": role == "admin"}


def ensure_indexes(db):
    db.users.create_index("email", unique=True)
    db.profiles.create_index("role")
    db.tasks.create_index([("assignees", 1), ("status", 1)])
    db.taskHistory.create_index([("taskId", 1), ("timestamp", -1)])
    db.notifications.create_index([("userId", 1), ("timestamp", -1), ("read", 1)])
    db.revokedTokens.create_index("jti", unique=True)
