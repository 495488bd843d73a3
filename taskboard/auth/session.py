# session.py
"""
Explicit per-request session context.

Handlers build a ``Session`` from the verified JWT and hand it to the
services; nothing reads the signed-in user from global state.
"""
import logging
from dataclasses import asdict, dataclass

from flask_jwt_extended import get_jwt, get_jwt_identity

from ..services.profiles import is_admin_claims, role_from_claims
from ..utils.utils import format_error, get_db, validate_objectid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    user_id: str
    name: str
    email: str
    is_admin: bool

    def to_dict(self):
        return asdict(self)


def token_claims(auth_user, name=None):
    """Claims embedded in every access token issued for ``auth_user``."""
    custom = auth_user.get("custom_claims") or {}
    return {
        "role": role_from_claims(custom),
        "admin": is_admin_claims(custom),
        "name": name or auth_user.get("display_name") or "New User",
        "email": auth_user.get("email", ""),
    }


def current_session(db=None):
    db = db if db is not None else get_db()
    claims = get_jwt()
    user_id = get_jwt_identity()
    profile = db.profiles.find_one({"_id": user_id}) or {}
    return Session(
        user_id=user_id,
        name=profile.get("name") or claims.get("name") or "New User",
        email=profile.get("email") or claims.get("email", ""),
        is_admin=is_admin_claims(claims),
    )


def register_token_callbacks(jwt):
    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        db = get_db()
        if db.revokedTokens.find_one({"jti": jwt_payload["jti"]}):
            return True
        user_oid = validate_objectid(jwt_payload.get("sub"))
        user = db.users.find_one({"_id": user_oid}, {"tokens_valid_after": 1}) if user_oid else None
        if user is None:
            return True
        valid_after = user.get("tokens_valid_after")
        return valid_after is not None and jwt_payload["iat"] < valid_after

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return format_error("Token has been revoked, please sign in again", 401)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return format_error("Token has expired", 401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        logger.info("Rejected invalid token: %s", reason)
        return format_error("Invalid token", 401)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return format_error("Authentication required", 401)
