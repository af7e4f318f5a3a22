# tests/conftest.py
import os

# must be set before the storefront modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RABBITMQ_URL"] = ""
os.environ["ENVIRONMENT"] = "test"

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront import catalogue
from storefront.database import get_db
from storefront.main import app
from storefront.models import Base

TEST_PASSWORD = "password123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Upstream entries deliberately use every field-name flavour the catalogue has used
SAMPLE_CATALOGUE = [
    {"id": "b-1", "name": "Classic Burger", "dsc": "Beef, cheddar, pickles", "price": 1200,
     "img": "classic.jpg", "rate": 4, "country": "US"},
    {"_id": "b-2", "title": "Veggie Stack", "description": "Grilled halloumi", "cost": "950.50",
     "image": "veggie.jpg", "rating": "4.5", "reviewCount": 12},
    {"id": 3, "name": "Kids Meal", "desc": "Small and simple", "price": 300, "thumbnail": "kids.jpg",
     "reviews": 7},
    {"id": "b-4", "name": "Mystery Box", "img": "mystery.jpg"},
]


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email="alice@example.com", name="Alice", password=TEST_PASSWORD, age=30):
    return client.post(
        "/api/register",
        json={"name": name, "email": email, "age": age, "password": password},
    )


def login(client, email="alice@example.com", password=TEST_PASSWORD):
    return client.post("/api/login", json={"email": email, "password": password})


@pytest.fixture
def auth_client(client):
    """Client holding a session cookie for a freshly registered user."""
    assert register(client).status_code == 201
    assert login(client).status_code == 200
    return client


class FakeUpstream:
    """Stands in for the catalogue host; bytes payloads are sent verbatim."""

    def __init__(self):
        self.payload = list(SAMPLE_CATALOGUE)
        self.status_code = 200
        self.error = None
        self.calls = []

    def handle(self, request):
        self.calls.append({"url": str(request.url), "timeout": request.extensions.get("timeout")})
        if self.error is not None:
            raise self.error
        if isinstance(self.payload, bytes):
            return httpx.Response(self.status_code, content=self.payload)
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    real_client = httpx.AsyncClient

    def client_factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(fake.handle)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(catalogue.httpx, "AsyncClient", client_factory)
    return fake
