# tests/test_auth_routes.py

import time

from taskboard.models.models import create_profile


def login(client, email, password):
    return client.post("/auth/login", json={"email": email, "password": password})


class TestLogin:
    def test_login_returns_tokens_and_profile(self, client, member_user):
        resp = login(client, "uma@example.com", "member-pass")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["token"]
        assert body["refresh_token"]
        assert body["is_admin"] is False
        assert body["profile"]["role"] == "member"
        assert body["profile"]["id"] == str(member_user["_id"])

    def test_email_is_case_insensitive(self, client, member_user):
        assert login(client, "  UMA@example.com ", "member-pass").status_code == 200

    def test_bad_credentials(self, client, member_user):
        resp = login(client, "uma@example.com", "wrong")
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid credentials"}

    def test_missing_fields(self, client):
        assert login(client, "", "").status_code == 400

    def test_missing_profile_is_created_at_first_sign_in(self, client, db, admin_user):
        db.profiles.delete_one({"_id": str(admin_user["_id"])})
        resp = login(client, "admin@example.com", "admin-pass")
        assert resp.status_code == 200
        stored = db.profiles.find_one({"_id": str(admin_user["_id"])})
        assert stored["role"] == "admin"
        assert stored["name"] == "Ada Admin"

    def test_admin_claim_wins_over_stale_profile(self, client, db, admin_user):
        uid = str(admin_user["_id"])
        db.profiles.replace_one({"_id": uid}, create_profile(uid, "admin@example.com", "Ada Admin", "member"))

        assert login(client, "admin@example.com", "admin-pass").get_json()["is_admin"] is True
        assert db.profiles.find_one({"_id": uid})["role"] == "admin"


class TestSession:
    def test_session_reports_claims_and_converges(self, client, db, admin_user, admin_headers):
        uid = str(admin_user["_id"])
        db.profiles.update_one({"_id": uid}, {"$set": {"role": "member"}})

        first = client.get("/auth/session", headers=admin_headers).get_json()
        assert first["reconciled"] is True
        assert first["session"]["is_admin"] is True
        assert first["profile"]["role"] == "admin"

        second = client.get("/auth/session", headers=admin_headers).get_json()
        assert second["reconciled"] is False

    def test_requires_token(self, client):
        resp = client.get("/auth/session")
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Authentication required"}

    def test_garbage_token(self, client):
        resp = client.get("/auth/session", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestRefreshAndLogout:
    def test_refresh_carries_current_claims(self, client, db, member_user):
        refresh_token = login(client, "uma@example.com", "member-pass").get_json()["refresh_token"]
        db.users.update_one({"_id": member_user["_id"]}, {"$set": {"custom_claims": {"role": "admin", "admin": True}}})

        resp = client.post("/auth/refresh", headers={"Authorization": f"Bearer {refresh_token}"})
        assert resp.status_code == 200
        assert resp.get_json()["is_admin"] is True

    def test_access_token_cannot_refresh(self, client, member_headers):
        assert client.post("/auth/refresh", headers=member_headers).status_code == 401

    def test_logout_revokes_token(self, client, member_headers):
        assert client.post("/auth/logout", headers=member_headers).status_code == 200
        resp = client.get("/auth/session", headers=member_headers)
        assert resp.status_code == 401
        assert "revoked" in resp.get_json()["error"]

    def test_tokens_issued_before_revocation_are_rejected(self, client, db, member_user, member_headers):
        db.users.update_one({"_id": member_user["_id"]}, {"$set": {"tokens_valid_after": int(time.time()) + 60}})
        assert client.get("/auth/session", headers=member_headers).status_code == 401


class TestChangeRole:
    def test_admin_promotes_member(self, client, db, member_user, admin_headers):
        resp = client.put(f"/auth/role/{member_user['_id']}", json={"role": "admin"}, headers=admin_headers)
        assert resp.status_code == 200
        user = db.users.find_one({"_id": member_user["_id"]})
        assert user["custom_claims"] == {"role": "admin", "admin": True}
        assert user["tokens_valid_after"] is not None
        assert db.profiles.find_one({"_id": str(member_user["_id"])})["role"] == "admin"

        # signing in again picks up the new claim
        assert login(client, "uma@example.com", "member-pass").get_json()["is_admin"] is True

    def test_member_cannot_change_roles(self, client, admin_user, member_headers):
        resp = client.put(f"/auth/role/{admin_user['_id']}", json={"role": "member"}, headers=member_headers)
        assert resp.status_code == 403

    def test_invalid_role(self, client, member_user, admin_headers):
        resp = client.put(f"/auth/role/{member_user['_id']}", json={"role": "manager"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_user(self, client, admin_headers):
        resp = client.put("/auth/role/0123456789ab0123456789ab", json={"role": "admin"}, headers=admin_headers)
        assert resp.status_code == 404
