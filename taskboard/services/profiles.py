# profiles.py
"""
Profile/role reconciliation.

The role claim carried by the access token is authoritative. A stored
profile is created when missing and patched whenever its role disagrees
with the claim; once both agree, reconciling again writes nothing.
"""
import logging

from ..models.models import create_profile

logger = logging.getLogger(__name__)


def is_admin_claims(claims):
    claims = claims or {}
    return claims.get("role") == "admin" or claims.get("admin") is True


def role_from_claims(claims):
    return "admin" if is_admin_claims(claims) else "member"


def reconcile_profile(db, auth_user, claims):
    """
    Bring the stored profile in line with the token claims.

    ``auth_user`` is the auth-service record ({"_id", "email", "display_name"}).
    Returns ``(profile, changed)`` where ``changed`` tells whether any write happened.
    """
    user_id = str(auth_user["_id"])
    role = role_from_claims(claims)
    profile = db.profiles.find_one({"_id": user_id})

    if profile is None:
        logger.info("No profile for %s, creating one with role %s", user_id, role)
        profile = create_profile(
            user_id,
            auth_user.get("email"),
            auth_user.get("display_name"),
            role,
        )
        db.profiles.insert_one(profile)
        return profile, True

    changed = False
    if profile.get("role") != role:
        logger.info("Profile role for %s is %s, claims say %s", user_id, profile.get("role"), role)
        db.profiles.update_one({"_id": user_id}, {"$set": {"role": role}})
        profile = dict(profile, role=role)
        changed = True

    name = profile.get("name")
    if name and auth_user.get("display_name") != name:
        db.users.update_one({"_id": auth_user["_id"]}, {"$set": {"display_name": name}})
        changed = True

    return profile, changed


def profile_names(db, user_ids):
    """Map user ids to display names, 'Unknown User' for ids without a profile."""
    ids = list(user_ids)
    found = {p["_id"]: p.get("name") for p in db.profiles.find({"_id": {"$in": ids}})}
    return {uid: found.get(uid) or "Unknown User" for uid in ids}
