# notification_routes.py
import json

from flask import Blueprint, Response, current_app, jsonify, stream_with_context
from flask_jwt_extended import jwt_required

from ..auth.session import current_session
from ..services.notifications import NotificationFeed
from ..utils.utils import get_db, serialize_doc

notification_bp = Blueprint('notifications', __name__, url_prefix="/notifications")


def _feed(db, session):
    return NotificationFeed(db, session.user_id, current_app.config.get("NOTIFY_WINDOW_SECONDS", 60))


@notification_bp.route('', methods=['GET'])
@jwt_required()
def list_notifications():
    db = get_db()
    with _feed(db, current_session(db)) as feed:
        feed.pump()
        items = feed.items()
        unread = feed.unread_count()
    return jsonify({"notifications": [serialize_doc(n) for n in items], "unread": unread}), 200


@notification_bp.route('/stream', methods=['GET'])
@jwt_required()
def stream_notifications():
    db = get_db()
    feed = _feed(db, current_session(db))
    interval = current_app.config.get("STREAM_INTERVAL", 2.0)
    max_polls = current_app.config.get("STREAM_MAX_POLLS")

    def generate():
        feed.start()
        try:
            for items in feed.stream(interval=interval, max_polls=max_polls):
                payload = {"notifications": [serialize_doc(n) for n in items], "unread": feed.unread_count()}
                yield f"data: {json.dumps(payload)}\n\n"
        finally:
            feed.stop()

    return Response(stream_with_context(generate()), mimetype="text/event-stream")


@notification_bp.route('/<notification_id>/read', methods=['POST'])
@jwt_required()
def mark_read(notification_id):
    db = get_db()
    feed = _feed(db, current_session(db))
    doc = feed.mark_read(notification_id)
    return jsonify({"msg": "Notification marked as read", "notification": serialize_doc(doc)}), 200


@notification_bp.route('/read-all', methods=['POST'])
@jwt_required()
def mark_all_read():
    db = get_db()
    feed = _feed(db, current_session(db))
    count = feed.mark_all_read()
    return jsonify({"msg": "All notifications marked as read", "updated": count}), 200
