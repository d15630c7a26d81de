import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import mongomock
import pytest
from fastapi.testclient import TestClient

from gatehouse.app import build_services, create_app
from gatehouse.auth.passwords import hash_password
from gatehouse.config import Settings
from gatehouse.infra import db
from gatehouse.infra.db import SessionDocument, UserDocument

TEST_DB = "gatehouse_test"


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        mongo_uri=f"mongodb://localhost/{TEST_DB}",
        mongo_timeout_ms=100,
        session_secret="test-secret",
    )


@pytest.fixture()
def mongo(settings):
    """mongoengine connected to an in-memory mongomock client, dropped afterwards."""
    conn = db.connect(settings, mongo_client_class=mongomock.MongoClient)
    yield conn
    conn.drop_database(TEST_DB)
    db.disconnect()


@pytest.fixture()
def services(settings, mongo):
    return build_services(settings)


@pytest.fixture()
def client(services) -> TestClient:
    return TestClient(create_app(services=services), follow_redirects=False)


@pytest.fixture()
def make_user(mongo):
    """Insert a user directly, bypassing the signup route."""

    def _make(email: str, password: str = "pw1", *, name: str = "", role: str = "user") -> UserDocument:
        doc = UserDocument(
            name=name or email.split("@")[0],
            email=email,
            password_hash=hash_password(password),
            role=role,
        )
        doc.save(force_insert=True)
        return doc

    return _make


def signup(client: TestClient, name: str, email: str, password: str):
    return client.post("/signup", data={"name": name, "email": email, "password": password})


def login(client: TestClient, email: str, password: str):
    return client.post("/login", data={"email": email, "password": password})


def session_of(client: TestClient, services):
    """The stored session document behind the client's cookie, or None."""
    raw = client.cookies.get(services.settings.cookie_name)
    token = services.signer.unsign(raw or "")
    if not token:
        return None
    return SessionDocument.objects(token=token).first()
