"""
Pytest fixtures for Guidewalk tests.

Uses an in-memory SQLite DB for speed and isolation.
StaticPool keeps a single connection so the :memory: database (and tables) persist.
"""

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from guidewalk.database import Base, get_db, init_db
from guidewalk.main import app

TEST_DB = "sqlite:///:memory:"
ROOT = Path(__file__).resolve().parent.parent
MODELS_DIR = ROOT / "models"
FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def sample_guideline() -> dict:
    """Legacy hypertension guideline shipped in models/."""
    return json.loads((MODELS_DIR / "sample_hypertension_v1.json").read_text(encoding="utf-8"))


@pytest.fixture
def nice_guideline() -> dict:
    """Graph/rules hypertension guideline shipped in models/."""
    return json.loads((MODELS_DIR / "sample_hypertension_nice.json").read_text(encoding="utf-8"))


@pytest.fixture
def hypertension_cases() -> list[dict]:
    return json.loads((FIXTURES_DIR / "hypertension_cases.json").read_text(encoding="utf-8"))


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh in-memory DB and tables per test."""
    test_engine = create_engine(
        TEST_DB,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # single connection so :memory: DB and tables persist
    )
    init_db(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_engine):
    """FastAPI TestClient with test DB."""
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
