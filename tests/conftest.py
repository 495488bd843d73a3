# tests/conftest.py

import mongomock
import pytest
from flask_jwt_extended import create_access_token

from taskboard import create_app
from taskboard.auth.accounts import create_account
from taskboard.auth.session import Session, token_claims
from taskboard.models.models import create_profile

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


@pytest.fixture()
def db():
    """Fresh in-memory MongoDB stand-in per test."""
    return mongomock.MongoClient().taskboard


@pytest.fixture()
def app(db, tmp_path):
    return create_app({
        "TESTING": True,
        "DB": db,
        "JWT_SECRET_KEY": TEST_SECRET,
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "STREAM_INTERVAL": 0,
        "STREAM_MAX_POLLS": 1,
    })


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_user(db):
    return create_account(db, "admin@example.com", "admin-pass", "Ada Admin", "admin")


@pytest.fixture()
def member_user(db):
    return create_account(db, "uma@example.com", "member-pass", "Uma Member", "member")


@pytest.fixture()
def other_member(db):
    return create_account(db, "otto@example.com", "other-pass", "Otto Other", "member")


@pytest.fixture()
def headers_for(app):
    """Build an Authorization header for an auth user record."""

    def _headers(user):
        with app.app_context():
            token = create_access_token(identity=str(user["_id"]), additional_claims=token_claims(user))
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def admin_headers(headers_for, admin_user):
    return headers_for(admin_user)


@pytest.fixture()
def member_headers(headers_for, member_user):
    return headers_for(member_user)


@pytest.fixture()
def admin_session():
    return Session(user_id="admin1", name="Ada Admin", email="admin@example.com", is_admin=True)


@pytest.fixture()
def u1_session():
    return Session(user_id="u1", name="Uma Member", email="uma@example.com", is_admin=False)


@pytest.fixture()
def u2_session():
    return Session(user_id="u2", name="Otto Other", email="otto@example.com", is_admin=False)


@pytest.fixture()
def team(db):
    """Profiles used by service-level tests (ids are plain strings)."""
    db.profiles.insert_many([
        create_profile("admin1", "admin@example.com", "Ada Admin", "admin"),
        create_profile("u1", "uma@example.com", "Uma Member", "member"),
        create_profile("u2", "otto@example.com", "Otto Other", "member"),
    ])
    return db
