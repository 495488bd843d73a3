# task_routes.py
import json

from flask import Blueprint, Response, current_app, request, jsonify, send_file, stream_with_context, url_for
from flask_jwt_extended import jwt_required

from ..auth.session import current_session
from ..realtime.subscription import Subscription
from ..services import tasks as task_service
from ..services.history import describe_entry, list_history
from ..services.storage import get_storage
from ..utils.utils import get_db, format_error, serialize_doc

task_bp = Blueprint('tasks', __name__, url_prefix="/task")

STATUS_MESSAGES = {
    "completed": "Your task has been submitted for admin approval.",
    "approved": "Task has been marked as completed.",
    "reopened": "Task has been reopened for work.",
}


def task_to_json(task):
    body = serialize_doc(task)
    if task.get("file_path"):
        body["file_url"] = url_for("tasks.download_file", task_id=str(task["_id"]))
    return body


def history_to_json(entry):
    body = serialize_doc(entry)
    body["summary"] = describe_entry(entry)
    return body


# Create a new task
@task_bp.route('/create', methods=['POST'])
@jwt_required()
def create_task_route():
    db = get_db()
    data = request.get_json(silent=True) or {}
    session = current_session(db)
    task = task_service.create_task(
        db, session,
        data.get("title"),
        data.get("description", ""),
        data.get("assignees", []),
        data.get("due_date"),
    )
    return jsonify({"msg": "Task created", "task": task_to_json(task)}), 201


@task_bp.route('/all', methods=['GET'])
@jwt_required()
def get_tasks():
    db = get_db()
    session = current_session(db)
    tasks = task_service.list_tasks(db, session, request.args.get("status"))
    return jsonify([task_to_json(t) for t in tasks]), 200


@task_bp.route('/pending', methods=['GET'])
@jwt_required()
def get_pending_tasks():
    db = get_db()
    tasks = task_service.list_pending(db, current_session(db))
    return jsonify([task_to_json(t) for t in tasks]), 200


@task_bp.route('/completed', methods=['GET'])
@jwt_required()
def get_completed_tasks():
    db = get_db()
    tasks = task_service.list_completed(db, current_session(db))
    return jsonify([task_to_json(t) for t in tasks]), 200


@task_bp.route('/stats', methods=['GET'])
@jwt_required()
def get_stats():
    db = get_db()
    return jsonify(task_service.team_stats(db, current_session(db))), 200


@task_bp.route('/<task_id>', methods=['GET'])
@jwt_required()
def get_task(task_id):
    db = get_db()
    task = task_service.get_visible_task(db, current_session(db), task_id)
    return jsonify(task_to_json(task)), 200


@task_bp.route('/<task_id>', methods=['PUT'])
@jwt_required()
def update_task(task_id):
    db = get_db()
    data = request.get_json(silent=True) or {}
    changes = {k: data[k] for k in task_service.EDITABLE_FIELDS + ("status",) if k in data}
    task, entries = task_service.update_task(db, current_session(db), task_id, changes)
    msg = "Task updated" if entries else "No changes"
    return jsonify({"msg": msg, "task": task_to_json(task), "history": [history_to_json(e) for e in entries]}), 200


@task_bp.route('/<task_id>/status', methods=['POST'])
@jwt_required()
def change_status(task_id):
    db = get_db()
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return format_error("status required", 400)
    task, transition = task_service.change_status(
        db, current_session(db), task_id, data["status"], data.get("note"),
    )
    msg = STATUS_MESSAGES.get(
        transition.action,
        f"Task status changed to {transition.new_status.replace('_', ' ')}",
    )
    return jsonify({"msg": msg, "action": transition.action, "task": task_to_json(task)}), 200


@task_bp.route('/<task_id>/history', methods=['GET'])
@jwt_required()
def get_history(task_id):
    db = get_db()
    task = task_service.get_visible_task(db, current_session(db), task_id)
    return jsonify([history_to_json(e) for e in list_history(db, task["_id"])]), 200


@task_bp.route('/<task_id>/history/stream', methods=['GET'])
@jwt_required()
def stream_history(task_id):
    db = get_db()
    task = task_service.get_visible_task(db, current_session(db), task_id)
    interval = current_app.config.get("STREAM_INTERVAL", 2.0)
    max_polls = current_app.config.get("STREAM_MAX_POLLS")
    subscription = Subscription(
        db.taskHistory, {"taskId": str(task["_id"])}, sort=[("timestamp", 1)], name=f"history:{task['_id']}",
    )

    def generate():
        subscription.start()
        try:
            for event in subscription.events(interval=interval, max_polls=max_polls):
                yield f"event: {event.type}\ndata: {json.dumps(history_to_json(event.doc))}\n\n"
        finally:
            subscription.stop()

    return Response(stream_with_context(generate()), mimetype="text/event-stream")


# Upload a file to a task
@task_bp.route('/<task_id>/upload', methods=['POST'])
@jwt_required()
def upload_file(task_id):
    db = get_db()
    if 'file' not in request.files:
        return format_error("No file part in the request", 400)
    task = task_service.attach_file(db, current_session(db), get_storage(), task_id, request.files['file'])
    return jsonify({"msg": "File uploaded", "task": task_to_json(task)}), 200


@task_bp.route('/<task_id>/file', methods=['GET'])
@jwt_required()
def download_file(task_id):
    db = get_db()
    task = task_service.get_visible_task(db, current_session(db), task_id)
    if not task.get("file_path"):
        return format_error("Task has no file", 404)
    path = get_storage().resolve(task["file_path"])
    return send_file(path, as_attachment=True, download_name=path.name)
