"""
Pytest configuration and shared fixtures.

Every test gets a fresh app on in-memory SQLite and a test client whose
cookie jar carries the Flask-Login session.
"""

import sys
from pathlib import Path

import pytest

# Make the top-level modules importable without installing the project
sys.path.insert(0, str(Path(__file__).parent.parent))

from app import create_app  # noqa: E402
from models import db  # noqa: E402
import storage  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "OPENAI_API_KEY": "sk-test",
        "MAIL_HOST": "",
        "DEFAULT_LANGUAGE": "en",
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, email="user@example.com", name="User", password=PASSWORD):
    return client.post("/register", data={
        "name": name,
        "email": email,
        "password": password,
        "confirm_password": password,
    })


def login(client, email="user@example.com", password=PASSWORD):
    return client.post("/login", data={"email": email, "password": password})


def user_id(app, email):
    with app.app_context():
        return storage.users.by_email(email).id


@pytest.fixture
def user_client(app, client):
    register(client)
    return client


@pytest.fixture
def other_client(app):
    other = app.test_client()
    register(other, email="other@example.com", name="Other")
    return other


@pytest.fixture
def admin_client(app):
    admin = app.test_client()
    register(admin, email="admin@example.com", name="Admin")
    with app.app_context():
        storage.roles.assign(storage.users.by_email("admin@example.com").id, "admin")
    return admin


@pytest.fixture
def sample_event():
    return {
        "title": "Ramadan",
        "eventDate": "2030-02-01T18:30:00.250Z",
        "eventType": "ramadan",
        "calculationType": "days-left",
        "repeatOption": "yearly",
    }
