"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against the database named by TEST_DATABASE_URL, which
    defaults to an in-memory SQLite database.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - login(client, ...)         → admin token string
  - auth_headers(token)        → {"Authorization": "Bearer <token>"}
  - make_member(app, ...)      → id of a new member row
  - make_expense(client, ...)  → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from campledger.app import create_app
from campledger.app.extensions import db as _db
from campledger.app.models.member import Member

ADMIN_PASSWORD = "camp-admin-test"


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig (fixture JWT secret and admin password).
      2. Run db.create_all() to create all tables.
      3. Yield the app for the test session.
      4. Drop all tables at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests in FK-safe order.

    Payments go first: they reference budget_expenses.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM budget_payments"))
            conn.execute(text("DELETE FROM budget_expenses"))
            conn.execute(text("DELETE FROM members"))
            conn.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


@pytest.fixture
def token(client):
    """A valid admin token for the testing config."""
    return login(client)


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def login(client, password: str = ADMIN_PASSWORD) -> str:
    """Logs in as admin and returns the token."""
    resp = client.post("/api/auth/login", json={"password": password})
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]["token"]


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def make_member(
    app,
    first_name: str = "Ada",
    last_name: str = "Lovelace",
    email: str | None = None,
    approved: bool = True,
) -> int:
    """Inserts a member directly and returns its id."""
    if email is None:
        email = f"{first_name.lower()}.{last_name.lower()}@camp.test"
    with app.app_context():
        member = Member(
            first_name=first_name,
            last_name=last_name,
            email=email,
            is_approved=approved,
        )
        _db.session.add(member)
        _db.session.commit()
        return member.id


def make_expense(
    client,
    token: str,
    cost_amount: str = "1000",
    item: str = "Generator rental",
    category: str = "Infrastructure",
    **extra,
):
    """
    Creates a budget expense and returns the HTTP response.
    Extra keyword arguments are sent as-is (camelCase keys).
    """
    payload: dict = {
        "costCategory": category,
        "item": item,
        "costAmount": cost_amount,
        **extra,
    }
    return client.post(
        "/api/budget",
        json=payload,
        headers=auth_headers(token),
    )
