"""Pytest fixtures for agrimarket tests."""

import os
import tempfile
from decimal import Decimal

# must be set before agrimarket is imported, settings are read at import time
_TMP_DIR = tempfile.mkdtemp(prefix="agrimarket-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/test.db"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["MPESA_SIMULATE"] = "true"

import fakeredis
import pytest
from fastapi.testclient import TestClient

import agrimarket.data.models  # noqa: F401
from agrimarket.data.database import Base, SessionLocal, engine
from agrimarket.data.models import ProductModel, UserModel
from agrimarket.services.lock_service import LockService
from agrimarket.services.payment_gateway import PaymentGateway


@pytest.fixture(autouse=True)
def schema():
    """Fresh tables for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def lock_service(redis_client):
    return LockService(client=redis_client)


@pytest.fixture
def make_user(db):
    """Factory creating committed users."""
    counter = {"n": 0}

    def _make(role="USER", name=None):
        counter["n"] += 1
        user = UserModel(
            name=name or f"User {counter['n']}",
            email=f"user{counter['n']}@example.com",
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_product(db):
    """Factory creating committed products."""

    def _make(name="Tomatoes", price="50.00", stock=10):
        product = ProductModel(name=name, price=Decimal(price), stock=stock, category="Vegetables")
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def customer_info():
    return {
        "first_name": "Jane",
        "last_name": "Wanjiku",
        "email": "jane@example.com",
        "phone": "254712345678",
    }


@pytest.fixture
def delivery_info():
    return {
        "address": "Moi Avenue 12",
        "city": "Nairobi",
        "county": "Nairobi",
        "postal_code": "00100",
        "delivery_notes": "Call on arrival",
    }


@pytest.fixture
def api_client(lock_service):
    """TestClient with Redis and the payment provider replaced."""
    from agrimarket.api.deps import get_lock_service, get_payment_gateway
    from agrimarket.main import app

    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_payment_gateway] = lambda: PaymentGateway(simulate_mpesa=True)

    yield TestClient(app)

    app.dependency_overrides.clear()
