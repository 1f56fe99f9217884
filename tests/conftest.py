"""Shared pytest fixtures for the Trackify API."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List

import mongomock
import pytest

# Ensure the application package is importable during tests.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from trackify import database  # noqa: E402
from trackify.config import Settings  # noqa: E402
from trackify.main import create_app  # noqa: E402
from trackify.models import FORGOT_PASSWORD_ACTION  # noqa: E402
from trackify.services import email_service  # noqa: E402
from trackify.services.auth_service import AuthService  # noqa: E402
from trackify.services.email_service import EmailJSGateway  # noqa: E402

TEST_DB_NAME = "test_trackify"


class RecordingGateway(EmailJSGateway):
    """Gateway that records outgoing emails instead of calling EmailJS."""

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        self.sent: List[Dict[str, Any]] = []
        self.succeed = True

    def send_verification_email(self, email, code, token, config, template) -> bool:
        self.sent.append(
            {
                "email": email,
                "code": code,
                "token": token,
                "template_id": template.template_id,
                "link": self.verification_link(token),
            }
        )
        return self.succeed


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch: pytest.MonkeyPatch):
    """Provide an isolated in-memory MongoDB database for each test."""
    client = mongomock.MongoClient()
    db = client[TEST_DB_NAME]

    monkeypatch.setattr(database, "get_mongo_client", lambda: client)
    monkeypatch.setattr(database, "get_database", lambda: db)
    database.create_indexes()

    yield db

    client.drop_database(TEST_DB_NAME)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        mongodb_database=TEST_DB_NAME,
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        cors_origins=["http://localhost:3000"],
    )


@pytest.fixture
def gateway(settings: Settings) -> RecordingGateway:
    return RecordingGateway(settings)


@pytest.fixture
def auth_service(settings: Settings, gateway: RecordingGateway) -> AuthService:
    return AuthService(settings, gateway)


@pytest.fixture
def email_config(mongo_db):
    """Store an EmailJS account and the forgot-password template."""
    email_service.save_config("service_123", "public_abc", "private_xyz")
    email_service.save_template(FORGOT_PASSWORD_ACTION, "template_forgot")


@pytest.fixture
def app(mongo_db, settings: Settings, gateway: RecordingGateway):
    flask_app = create_app(settings, email_gateway=gateway)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def signup(client):
    """Return a helper that registers an account through the API."""

    def _signup(email: str = "ann@x.com", password: str = "Secr3t!", firstname: str = "Ann", lastname: str = "Lee"):
        return client.post(
            "/auth/signup",
            json={"firstname": firstname, "lastname": lastname, "email": email, "password": password},
        )

    return _signup


@pytest.fixture
def auth_headers(signup):
    """Sign up a default user and return a bearer header for it."""
    response = signup()
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.get_json()['token']}"}
