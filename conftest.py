"""Pytest configuration and fixtures.

The environment is set before any project module is imported so the engine
in database.py points at a single in-memory SQLite database.
"""

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "development"
os.environ["API_PREFIX"] = "/api"
os.environ["DEFAULT_COUNTRY_CODE"] = "55"
os.environ["LOG_DIR"] = os.path.join(tempfile.gettempdir(), "lembreto-test-logs")

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import database  # noqa: E402
import users_crud  # noqa: E402
from api_server import app  # noqa: E402
from errors import GatewayError  # noqa: E402
from whatsapp_client import get_whatsapp_gateway  # noqa: E402


class FakeGateway:
    """Stands in for the WhatsApp provider; records every call."""

    def __init__(self):
        self.sent = []
        self.verified = []
        self.contacts = []
        self.fail_with = None

    def send_text(self, phone, message, delay=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"phone": phone, "message": message, "delay": delay})
        return {"key": {"id": "MSG1"}, "status": "PENDING"}

    def verify_numbers(self, numbers):
        if self.fail_with is not None:
            raise self.fail_with
        self.verified.append(list(numbers))
        return [{"numero": n, "verificado": n.endswith("1"), "jid": f"{n}@s.whatsapp.net"} for n in numbers]

    def send_contact(self, phone, contact):
        if self.fail_with is not None:
            raise self.fail_with
        self.contacts.append({"phone": phone, "contact": contact})
        return {"status": "PENDING"}


@pytest.fixture(autouse=True)
def reset_database() -> Generator[None, None, None]:
    """Fresh tables for every test."""
    database.Base.metadata.drop_all(bind=database.engine)
    database.Base.metadata.create_all(bind=database.engine)
    yield


@pytest.fixture
def db() -> Generator:
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def failing_gateway(gateway: FakeGateway) -> FakeGateway:
    gateway.fail_with = GatewayError("Erro ao enviar mensagem", errors={"error": {"message": "instance offline"}})
    return gateway


@pytest.fixture
def client(gateway: FakeGateway) -> Generator[TestClient, None, None]:
    """Sync test client with the WhatsApp provider replaced by FakeGateway."""
    app.dependency_overrides[get_whatsapp_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_whatsapp_gateway, None)


@pytest.fixture
def make_user(db):
    """Create users straight through the store."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        data = {
            "nome": f"Usuário {n}",
            "email": f"user{n}@example.com",
            "senha": "segredo123",
            "telefone": f"6398419341{n}",
        }
        data.update(overrides)
        return users_crud.register_user(db, data)

    return _make


@pytest.fixture
def register(client: TestClient):
    """Register through the API and return Bearer headers using the API key."""
    counter = {"n": 0}

    def _register(**overrides):
        counter["n"] += 1
        n = counter["n"]
        body = {
            "nome": f"Cliente {n}",
            "email": f"cliente{n}@example.com",
            "senha": "segredo123",
            "telefone": f"(63) 98419-34{n:02d}",
        }
        body.update(overrides)
        response = client.post("/api/usuarios/registro", json=body)
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['data']['api_key']}"}

    return _register


@pytest.fixture
def auth_headers(register) -> dict:
    return register()
