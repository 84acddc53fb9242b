import pytest
from fastapi.testclient import TestClient

from app.config import ORDER_CREATED, ORDER_UPDATED, Settings
from app.main_app import create_app
from app.storage.order_store import OrderStore
from app.storage.payload_store import PayloadStore

CREATED_SECRET = "created-secret"
UPDATED_SECRET = "updated-secret"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        webhook_secrets={ORDER_CREATED: CREATED_SECRET, ORDER_UPDATED: UPDATED_SECRET},
        payloads_dir=tmp_path / "example-payloads",
        orders_dir=tmp_path / "orders",
    )


@pytest.fixture
def make_client():
    clients = []

    def _make(settings: Settings) -> TestClient:
        client = TestClient(create_app(settings))
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(settings, make_client):
    return make_client(settings)


@pytest.fixture
def payload_store(tmp_path):
    store = PayloadStore(tmp_path / "payloads")
    store.ensure_dir()
    return store


@pytest.fixture
def order_store(tmp_path):
    store = OrderStore(tmp_path / "orders")
    store.ensure_dir()
    return store


def make_order(number="1001", modified="2024-01-01T00:00:00Z", **extra):
    order = {
        "id": 55,
        "number": number,
        "status": "processing",
        "date_created": "2024-01-01T00:00:00Z",
        "date_modified": modified,
        "date_paid": None,
        "total": "19.90",
        "billing": {"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com"},
        "payment_method_title": "Direct bank transfer",
        "line_items": [{"id": 1, "name": "Mug", "quantity": 2, "total": "19.90"}],
    }
    order.update(extra)
    return order
