# team_routes.py
from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from ..auth.accounts import create_account
from ..auth.session import current_session
from ..models.models import ROLES
from ..services.tasks import team_stats
from ..utils.utils import get_db, format_error, serialize_doc

team_bp = Blueprint('team', __name__, url_prefix="/team")


@team_bp.route('', methods=['GET'])
@jwt_required()
def get_team():
    db = get_db()
    return jsonify(team_stats(db, current_session(db))), 200


# Assignee picker: profiles, optionally filtered by role
@team_bp.route('/members', methods=['GET'])
@jwt_required()
def get_members():
    db = get_db()
    role = request.args.get("role")
    query = {}
    if role:
        if role not in ROLES:
            return format_error("Invalid role. Must be 'admin' or 'member'", 400)
        query["role"] = role
    profiles = db.profiles.find(query).sort("name")
    return jsonify([serialize_doc(p) for p in profiles]), 200


@team_bp.route('', methods=['POST'])
@jwt_required()
def add_member():
    db = get_db()
    if not current_session(db).is_admin:
        return format_error("Only admins can add team members", 403)
    data = request.get_json(silent=True) or {}
    user = create_account(
        db,
        data.get("email"),
        data.get("password"),
        data.get("name"),
        data.get("role", "member"),
    )
    profile = db.profiles.find_one({"_id": str(user["_id"])})
    return jsonify({
        "msg": f"{profile['name']} has been successfully added to the team",
        "profile": serialize_doc(profile),
    }), 201
