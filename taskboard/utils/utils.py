# utils.py
from datetime import date, datetime, timezone

from bson import ObjectId, errors as bson_errors
from flask import current_app, jsonify


def get_db():
    """
    Access the MongoDB database from the current Flask app context.
    """
    return current_app.config["DB"]


def now_utc():
    return datetime.now(timezone.utc)


def as_utc(dt):
    """
    Treat naive datetimes read back from the store as UTC.
    """
    if isinstance(dt, datetime) and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def serialize_doc(doc):
    """
    Make a stored document JSON friendly: ObjectIds to strings, datetimes to ISO 8601.
    """
    out = {}
    for key, value in doc.items():
        if key == "_id":
            out["id"] = str(value)
        elif isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, datetime):
            out[key] = format_datetime(as_utc(value))
        elif isinstance(value, dict):
            out[key] = serialize_doc(value)
        else:
            out[key] = value
    return out


def validate_objectid(id_str):
    """
    Validate whether a given string is a valid MongoDB ObjectId.
    Returns ObjectId if valid, None if invalid.
    """
    try:
        return ObjectId(id_str)
    except (bson_errors.InvalidId, TypeError):
        return None


def format_error(message, code=400):
    """
    Return a formatted error response.
    """
    return jsonify({"error": message}), code


def format_datetime(dt):
    """
    Format datetime in ISO 8601 format (e.g., 2025-07-22T12:00:00Z).
    """
    if not isinstance(dt, datetime):
        return str(dt)
    return as_utc(dt).astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def parse_due_date(value):
    """
    Parse a due date given as YYYY-MM-DD or a full ISO timestamp.
    Returns the normalized string as stored, or None when unparseable.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return format_datetime(parsed)


def due_datetime(due):
    """
    Due dates are stored as strings; a bare date is due at the end of that day (UTC).
    """
    if not due:
        return None
    try:
        d = date.fromisoformat(due)
        return datetime(d.year, d.month, d.day, 23, 59, 59, tzinfo=timezone.utc)
    except ValueError:
        pass
    try:
        return as_utc(datetime.fromisoformat(due.replace("Z", "+00:00")))
    except ValueError:
        return None
