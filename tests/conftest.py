"""
Shared test fixtures — SQLite test database, test client, catalog helpers.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["SEED_DEFAULTS"] = "false"

from backend.database import Base, get_db
from backend.main import app
from backend.advisor import rate_limiter


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_advice_cooldown():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cotton(client):
    """Cotton Fabric: 1500 for 10 yards -> 150 per yard."""
    response = client.post("/api/materials/", json={
        "sku": "FAB-001",
        "name": "Cotton Fabric",
        "supplier": "Fabric World",
        "total_cost": 1500,
        "qty": 10,
        "unit_of_measurement": "yards",
    })
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def small_box(client):
    """Small Box: 100 for 20 pieces -> 5 each."""
    response = client.post("/api/materials/", json={
        "sku": "PKG-BOX-S",
        "name": "Small Box",
        "total_cost": 100,
        "qty": 20,
        "unit_of_measurement": "pieces",
    })
    assert response.status_code == 200
    return response.json()
