# lifecycle.py
"""
Task status state machine.

    todo -> in_progress -> pending_approval -> completed
    in_progress -> completed          (direct completion, admin only)
    pending_approval -> in_progress   (reject, admin only)
    completed -> in_progress          (reopen, admin only)

Nothing in here touches the database; callers write ``Transition.updates``
and record one history entry with ``Transition.action``.
"""
from dataclasses import dataclass, field

from ..errors import InvalidTransition, PermissionDenied, ValidationError
from ..models.models import TASK_STATUSES
from ..utils.utils import now_utc

TRANSITIONS = {
    ("todo", "in_progress"),
    ("in_progress", "pending_approval"),
    ("in_progress", "completed"),
    ("pending_approval", "completed"),
    ("pending_approval", "in_progress"),
    ("completed", "in_progress"),
}

ADMIN_ONLY = {
    ("in_progress", "completed"),
    ("pending_approval", "completed"),
    ("pending_approval", "in_progress"),
    ("completed", "in_progress"),
}


@dataclass
class Transition:
    old_status: str
    new_status: str
    action: str
    updates: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)
    note: str = None


def can_act_on(task, session):
    return session.is_admin or session.user_id in task.get("assignees", [])


def resolve_target(current, requested, is_admin):
    # a member completing in_progress work submits it for review
    if current == "in_progress" and requested == "completed" and not is_admin:
        return "pending_approval"
    return requested


def plan_transition(task, requested, session, note=None):
    if requested not in TASK_STATUSES:
        raise ValidationError(f"Unknown status '{requested}'")

    current = task.get("status")
    target = resolve_target(current, requested, session.is_admin)
    edge = (current, target)

    if edge not in TRANSITIONS:
        raise InvalidTransition(f"Cannot move a task from {current} to {requested}")

    if edge in ADMIN_ONLY and not session.is_admin:
        if target == "completed":
            raise PermissionDenied("Only administrators can approve tasks")
        raise PermissionDenied("Only administrators can move a task out of review")

    if not can_act_on(task, session):
        raise PermissionDenied("Only assignees or administrators can update this task")

    if note is not None and not isinstance(note, str):
        raise ValidationError("note must be a string")
    note = (note or "").strip() or None
    transition = Transition(old_status=current, new_status=target, action="status_changed", note=note)
    transition.updates["status"] = target

    if edge == ("in_progress", "pending_approval"):
        if not note:
            raise ValidationError("A completion note is required to submit a task")
        transition.action = "completed"
        transition.updates["completion_note"] = note
        transition.metadata["completionNote"] = note
    elif edge == ("in_progress", "completed"):
        transition.updates["approved_by"] = session.user_id
        transition.updates["approved_at"] = now_utc()
        if note:
            transition.updates["completion_note"] = note
            transition.metadata["completionNote"] = note
    elif edge == ("pending_approval", "completed"):
        transition.action = "approved"
        transition.updates["approved_by"] = session.user_id
        transition.updates["approved_at"] = now_utc()
        transition.metadata["approvedBy"] = session.user_id
    elif edge == ("pending_approval", "in_progress"):
        transition.metadata["rejected"] = True
    elif edge == ("completed", "in_progress"):
        transition.action = "reopened"

    return transition
