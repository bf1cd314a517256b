"""Shared test fixtures."""
from datetime import datetime
from typing import Generator

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Import all models so SQLModel.metadata knows about them
from schoolsync.models.stats import (  # noqa: F401
    AdmissionStats,
    ClassStats,
    FeeStats,
    LibraryStats,
    SchoolStats,
    StudentStats,
    TeacherStats,
)
from schoolsync.models.sync import AuditRecord, SyncLog  # noqa: F401


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine. Tables recreated fresh for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="test_session")
def test_session_fixture(engine) -> Generator[Session, None, None]:
    """Provides a DB session connected to in-memory SQLite."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="seeded_stats")
def seeded_stats_fixture(test_session: Session) -> SchoolStats:
    """Summary rows matching a 100-student, 6-class school."""
    stats = SchoolStats(
        id=1,
        total_students=100,
        total_classes=6,
        pending_admissions=4,
        total_fees_collected=15000.0,
        updated_at=datetime(2025, 1, 15, 7, 30),
    )
    test_session.add(stats)
    test_session.add(StudentStats(id=1, total_count=100))
    test_session.add(ClassStats(id=1, total_count=6))
    test_session.add(FeeStats(id=1, total_collected=15000.0))
    test_session.add(AdmissionStats(id=1, pending_count=4))
    test_session.commit()
    test_session.refresh(stats)
    return stats
