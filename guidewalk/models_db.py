"""
SQLAlchemy ORM models for Guidewalk (persisted in SQLite).

Stores guideline documents, authored sample cases and test runs. Patient
records are never stored.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from guidewalk.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class GuidelineModel(Base):
    """Stored guideline document (metadata columns + full JSON)."""

    __tablename__ = "guidelines"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    version: Mapped[str] = mapped_column(String(64), nullable=False)
    format: Mapped[str] = mapped_column(String(16), nullable=False, index=True)  # legacy, nice
    citation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    citation_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    document: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)


class TestCaseModel(Base):
    """Authored sample case for a guideline."""

    __tablename__ = "test_cases"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    guideline_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    title: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    input_values: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    expected_path: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)  # list of node ids
    expected_level: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    expected_action: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)


class TestResultModel(Base):
    """Test run results per guideline (one row per run)."""

    __tablename__ = "test_results"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    guideline_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    run_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    results: Mapped[dict] = mapped_column(JSON, nullable=False)  # TestSuite.to_dict()
