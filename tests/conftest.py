"""Shared fixtures.

The application reads its configuration at import time, so the
environment is pinned here before anything from ``invoice_manager`` is
imported: an in-memory SQLite database and a throwaway JWT secret.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from invoice_manager import models  # noqa: E402
from invoice_manager.database import Base, SessionLocal, engine  # noqa: E402
from invoice_manager.dependencies import get_today  # noqa: E402
from invoice_manager.main import app  # noqa: E402
from invoice_manager.services.categories import seed_default_categories  # noqa: E402

TODAY = date(2025, 3, 20)


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        seed_default_categories(session)
    yield


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client():
    app.dependency_overrides[get_today] = lambda: TODAY
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client, name="Ana Souza", email="ana@example.com", password="secret123"):
    """Create an account and return (auth headers, user json)."""
    response = client.post("/api/auth/register", json={
        "name": name,
        "email": email,
        "password": password,
        "confirm_password": password,
    })
    assert response.status_code == 200, response.text
    body = response.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]


def owner_author_id(client, headers):
    authors = client.get("/api/authors/", headers=headers).json()
    return next(a["id"] for a in authors if a["is_owner"])


def create_card(client, headers, name="Nubank", closing_day=15, due_day=10, card_limit=5000.0):
    response = client.post("/api/cards/", headers=headers, json={
        "name": name,
        "card_limit": card_limit,
        "closing_day": closing_day,
        "due_day": due_day,
    })
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture()
def account(client):
    """Registered user with one card (closes on the 15th, due on the 10th)."""
    headers, user = register(client)
    card = create_card(client, headers)
    return {
        "headers": headers,
        "user": user,
        "card": card,
        "author_id": owner_author_id(client, headers),
    }


@pytest.fixture()
def seeded_card(db):
    """ORM user, owner author and card for service-level tests."""
    user = models.User(name="Ana Souza", email="ana@example.com", password_hash="x$y")
    db.add(user)
    db.flush()
    author = models.Author(user_id=user.id, name="Ana Souza", is_owner=True)
    card = models.Card(user_id=user.id, name="Nubank", card_limit=5000.0, closing_day=15, due_day=10)
    db.add_all([author, card])
    db.commit()
    return user, author, card
