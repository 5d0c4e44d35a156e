"""
SQLite database setup for Guidewalk.

One file (guidewalk.db, or GUIDEWALK_DB_PATH) holds stored guideline
documents, authored test cases and test runs.
"""

import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

DB_PATH = Path(os.getenv("GUIDEWALK_DB_PATH", str(Path(__file__).resolve().parent.parent / "guidewalk.db")))
SQLALCHEMY_DATABASE_URI = f"sqlite:///{DB_PATH}"

engine = create_engine(
    SQLALCHEMY_DATABASE_URI,
    connect_args={"check_same_thread": False},  # sessions cross FastAPI worker threads
    echo=os.getenv("GUIDEWALK_DB_ECHO", "0") == "1",
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None) -> None:
    """Create the guideline, test case and test result tables if missing."""
    from guidewalk import models_db  # noqa: F401 (register tables on Base)

    target = bind if bind is not None else engine
    if target is engine:
        DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=target)


def get_db():
    """Dependency: yield a DB session and close it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
