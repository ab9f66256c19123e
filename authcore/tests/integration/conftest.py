"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing"):
    in-memory SQLite (or TEST_DATABASE_URL) and the in-memory revocation store.
  - All tables are created once via db.create_all() at session start.
  - Before each test the role catalogue is seeded:
        user   (ACTIVE)   → profile:read
        admin  (ACTIVE)   → users:read, profile:read
        legacy (INACTIVE) → users:delete
  - After each test all rows are deleted in FK-safe order and the
    revocation store is emptied, so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)        → registered user dict
  - login(client, ...)           → {"access_token", "refresh_token", "user_id"}
  - auth_headers(token)          → {"Authorization": "Bearer <token>"}
  - grant_role(app, user_id, key)
"""

from __future__ import annotations

import pytest
from sqlalchemy import select, text

from authcore.app import create_app
from authcore.app.extensions import db as _db
from authcore.app.models import Permission, Role, RoleStatus, User
from authcore.app.services import get_session_service


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Creates the Flask application in 'testing' mode once for the whole run."""
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped seeding and isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def seed_roles(app):
    """Seeds roles and permissions, runs the test, then wipes every table."""
    with app.app_context():
        profile_read = Permission(
            key="profile:read", name="Read own profile",
            resource="profile", action="read",
        )
        users_read = Permission(
            key="users:read", name="Read any user",
            resource="users", action="read",
        )
        users_delete = Permission(
            key="users:delete", name="Delete users",
            resource="users", action="delete",
        )
        _db.session.add_all([
            Role(key="user", name="User", permissions=[profile_read]),
            Role(key="admin", name="Administrator", permissions=[users_read, profile_read]),
            Role(
                key="legacy", name="Legacy", status=RoleStatus.INACTIVE,
                permissions=[users_delete],
            ),
        ])
        _db.session.commit()

    yield

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM user_roles"))
            conn.execute(text("DELETE FROM role_permissions"))
            conn.execute(text("DELETE FROM users"))
            conn.execute(text("DELETE FROM roles"))
            conn.execute(text("DELETE FROM permissions"))
            conn.commit()

        get_session_service().revocations.clear()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    email: str = "alice@example.com",
    password: str = "pw123",
    **extra,
) -> dict:
    """Registers a new user and returns the response data dict."""
    resp = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, **extra},
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, email: str = "alice@example.com", password: str = "pw123") -> dict:
    """Logs in and returns {"access_token", "refresh_token", "user_id"}."""
    resp = client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def grant_role(app, user_id: str, role_key: str) -> None:
    """Adds a role to an existing user directly in the database."""
    with app.app_context():
        user = _db.session.get(User, user_id)
        role = _db.session.execute(
            select(Role).where(Role.key == role_key)
        ).scalar_one()
        user.roles.append(role)
        _db.session.commit()
