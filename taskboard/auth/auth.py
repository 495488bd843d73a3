# auth.py
import logging

from flask import Blueprint, request, jsonify
from werkzeug.security import check_password_hash
from flask_jwt_extended import (
    create_access_token, create_refresh_token, get_jwt, get_jwt_identity, jwt_required,
)

from ..utils.utils import get_db, format_error, now_utc, serialize_doc, validate_objectid
from ..services.profiles import reconcile_profile
from .accounts import set_role
from .session import current_session, token_claims

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix="/auth")


def _issue_tokens(user, profile):
    user_id = str(user["_id"])
    claims = token_claims(user, name=profile.get("name"))
    return {
        "token": create_access_token(identity=user_id, additional_claims=claims),
        "refresh_token": create_refresh_token(identity=user_id),
        "role": claims["role"],
        "is_admin": claims["admin"],
    }


# Login route
@auth_bp.route('/login', methods=['POST'])
def login():
    db = get_db()
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return format_error("Email and password are required", 400)

    user = db.users.find_one({"email": email.strip().lower()})

    if not user or not check_password_hash(user["password"], password):
        return format_error("Invalid credentials", 401)

    profile, changed = reconcile_profile(db, user, user.get("custom_claims"))
    db.users.update_one({"_id": user["_id"]}, {"$set": {"last_login": now_utc()}})
    if changed:
        logger.info("Profile for %s reconciled at sign-in", user["email"])

    body = _issue_tokens(user, profile)
    body["profile"] = serialize_doc(profile)
    return jsonify(body), 200


# Exchange a refresh token for an access token carrying the current claims
@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    db = get_db()
    user = db.users.find_one({"_id": validate_objectid(get_jwt_identity())})
    if not user:
        return format_error("User not found", 401)
    profile = db.profiles.find_one({"_id": str(user["_id"])}) or {}
    claims = token_claims(user, name=profile.get("name"))
    token = create_access_token(identity=str(user["_id"]), additional_claims=claims)
    return jsonify({"token": token, "role": claims["role"], "is_admin": claims["admin"]}), 200


# Current session; re-runs the profile/claims reconciliation
@auth_bp.route('/session', methods=['GET'])
@jwt_required()
def session_info():
    db = get_db()
    user = db.users.find_one({"_id": validate_objectid(get_jwt_identity())})
    if not user:
        return format_error("User not found", 401)
    profile, changed = reconcile_profile(db, user, get_jwt())
    session = current_session(db)
    return jsonify({
        "session": session.to_dict(),
        "profile": serialize_doc(profile),
        "reconciled": changed,
    }), 200


@auth_bp.route('/logout', methods=['POST'])
@jwt_required(verify_type=False)
def logout():
    db = get_db()
    payload = get_jwt()
    db.revokedTokens.insert_one({
        "jti": payload["jti"],
        "user_id": get_jwt_identity(),
        "revoked_at": now_utc(),
    })
    return jsonify({"msg": "Signed out"}), 200


# Admin changes user roles
@auth_bp.route('/role/<user_id>', methods=['PUT'])
@jwt_required()
def change_role(user_id):
    db = get_db()
    session = current_session(db)

    if not session.is_admin:
        return format_error("Only admins can change roles", 403)

    data = request.get_json(silent=True) or {}
    new_role = data.get("role")
    if new_role not in ["admin", "member"]:
        return format_error("Invalid role. Must be 'admin' or 'member'", 400)

    user_oid = validate_objectid(user_id)
    user = db.users.find_one({"_id": user_oid}) if user_oid else None
    if not user:
        return format_error("User not found", 404)

    set_role(db, user, new_role)
    return jsonify({"msg": f"User role updated to {new_role}"}), 200
