# tests/conftest.py
import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from api.auth import create_access_token
from api.config import settings
from api.database import Database
from api.db_instance import get_db

PASSWORD = "Sup3rSecret"


@pytest.fixture
def database_url(tmp_path):
    """SQLite database file private to the test"""
    return f"sqlite+aiosqlite:///{tmp_path / 'finma.db'}"


@pytest_asyncio.fixture
async def db(database_url):
    """Connected Database with an empty schema"""
    database = Database(database_url)
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def client(database_url, monkeypatch):
    """TestClient running the full lifespan against a fresh database"""
    monkeypatch.setattr(settings, "database_url", database_url)
    from api.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def app_with_db():
    """
    The app without its lifespan and with the database replaced.
    Yields (app, setter) where setter installs the object get_db returns.
    """
    from api.main import app

    def install(fake_db):
        app.dependency_overrides[get_db] = lambda: fake_db

    yield app, install
    app.dependency_overrides.clear()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client):
    """POST /api/auth/signup, with a valid password unless one is given"""
    def post(email, password=PASSWORD, **extra):
        return client.post(
            "/api/auth/signup",
            json={"email": email, "password": password, **extra},
        )
    return post


@pytest.fixture
def user_headers(signup):
    """Authorization header of a freshly signed-up user"""
    response = signup("alice@finma.dev")
    assert response.status_code == 201
    return bearer(response.json()["tokens"]["access_token"])


@pytest.fixture
def auth_header():
    return bearer


@pytest.fixture
def token_for_role():
    def make(role, user_id=1, email="someone@finma.dev"):
        return create_access_token(user_id, email, role)
    return make
