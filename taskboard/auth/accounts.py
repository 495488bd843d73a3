# accounts.py
"""Auth-service records: credentials, custom role claims, token revocation."""
import logging
import time

from werkzeug.security import generate_password_hash

from ..errors import Conflict, ValidationError
from ..models.models import ROLES, create_auth_user, create_profile, role_claims
from ..utils.utils import now_utc

logger = logging.getLogger(__name__)


def find_user_by_email(db, email):
    return db.users.find_one({"email": (email or "").strip().lower()})


def create_account(db, email, password, name, role="member"):
    """Create the auth record and its matching profile."""
    if not name or not email or not password:
        raise ValidationError("Name, email, and password are required")
    if role not in ROLES:
        raise ValidationError("Invalid role. Must be 'admin' or 'member'")
    if find_user_by_email(db, email):
        raise Conflict("User already exists")

    user = create_auth_user(email, generate_password_hash(password), name, role)
    user["_id"] = db.users.insert_one(user).inserted_id

    profile = create_profile(str(user["_id"]), email, name, role)
    db.profiles.replace_one({"_id": profile["_id"]}, profile, upsert=True)
    logger.info("Created account %s (%s) as %s", user["email"], user["_id"], role)
    return user


def set_role(db, user, role, name=None):
    """
    Set the role claim, upsert the matching profile and revoke outstanding
    tokens so the next sign-in carries the new claim.
    """
    if role not in ROLES:
        raise ValidationError("Invalid role. Must be 'admin' or 'member'")
    claims = role_claims(role)
    user_set = {"custom_claims": claims}
    if name:
        user_set["display_name"] = name
    db.users.update_one({"_id": user["_id"]}, {"$set": user_set})

    user_id = str(user["_id"])
    profile_set = {"user_id": user_id, "email": user["email"], "role": role, "updated_at": now_utc()}
    on_insert = {"created_at": now_utc()}
    if name:
        profile_set["name"] = name
    else:
        on_insert["name"] = user.get("display_name") or "New User"
    db.profiles.update_one({"_id": user_id}, {"$set": profile_set, "$setOnInsert": on_insert}, upsert=True)

    revoke_tokens(db, user["_id"])
    logger.info("Role for %s set to %s", user["email"], role)
    return claims


def revoke_tokens(db, user_oid):
    """Tokens issued before now (whole seconds) stop being accepted."""
    db.users.update_one({"_id": user_oid}, {"$set": {"tokens_valid_after": int(time.time())}})
