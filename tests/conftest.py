import pytest
from fastapi.testclient import TestClient

from order_intake.config import Settings
from order_intake.main import create_app
from order_intake.sql_store import SqlOrderStore
from order_intake.store import InMemoryOrderStore

PRODUCT_NAME = "Test Gift Box"

KIM = {
    "quantity": 2,
    "name": "Kim",
    "phone": "010-1111-2222",
    "address": "Seoul",
    "totalAmount": "20000",
}


@pytest.fixture
def memory_store():
    return InMemoryOrderStore(PRODUCT_NAME)


@pytest.fixture
def sql_store(tmp_path):
    store = SqlOrderStore(f"sqlite:///{tmp_path / 'orders.db'}", PRODUCT_NAME)
    yield store
    store.close()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Runs a test once against each Order Store implementation."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def client(store):
    app = create_app(store=store, settings=Settings(product_name=PRODUCT_NAME))
    return TestClient(app)


def create_kim(store, **overrides):
    fields = {
        "quantity": 2,
        "buyer_name": "Kim",
        "phone": "010-1111-2222",
        "address": "Seoul",
        "total_amount": "20000",
    }
    fields.update(overrides)
    return store.create(**fields)
