import asyncio
from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient

from recordhub import settings
from recordhub.app_factory import create_app
from recordhub.errors import AuthenticationError
from recordhub.repository import Repositories
from recordhub.schemas import AuthUser, Employee, NormalOrder
from recordhub.store import LocalStore

TODAY = date(2024, 6, 15)
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
TOKEN = "good-token"


def run(coro):
    return asyncio.run(coro)


def make_order(model=NormalOrder, **overrides):
    data = {
        "projectName": "Market study",
        "orderDate": "2024-06-01",
        "submissionDate": "2024-06-20",
        "supervisorName": "A",
        "season": "Spring",
        "status": "Pending",
        "wordCount": 2750,
        "costPerPage": 425,
    }
    data.update(overrides)
    return model.model_validate(data)


def make_employee(**overrides):
    data = {
        "employeeName": "Jane Doe",
        "hireDate": "2024-05-01",
        "department": "Writing",
        "position": "Writer",
        "status": "Active",
        "phoneNumber": "0712345678",
        "performanceScore": 80,
    }
    data.update(overrides)
    return Employee.model_validate(data)


class FakeAuth:
    """Stands in for AuthProvider: one valid token, no network."""

    def __init__(self):
        self.changed = []

    def current_user(self, id_token):
        if id_token != TOKEN:
            raise AuthenticationError("Session expired. Please sign in again.")
        return AuthUser(uid="u1", email="jane@example.com", id_token=id_token)

    def sign_in(self, email, password):
        if password != "secret1":
            raise AuthenticationError("Invalid email or password.", details={"code": "INVALID_LOGIN_CREDENTIALS"})
        return AuthUser(uid="u1", email=email, id_token=TOKEN, refresh_token="r1")

    def change_password(self, email, current_password, new_password, confirm_password):
        self.changed.append((email, new_password))
        return AuthUser(uid="u1", email=email)


@pytest.fixture
def store():
    return LocalStore()


@pytest.fixture
def repos(store):
    return Repositories(store)


@pytest.fixture
def fake_auth():
    return FakeAuth()


@pytest.fixture
def client(store, fake_auth, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_REQUIRED", True)
    app = create_app(store=store, auth_provider=fake_auth, clock=lambda: NOW)
    with TestClient(app) as c:
        c.headers.update({"Authorization": f"Bearer {TOKEN}"})
        yield c
