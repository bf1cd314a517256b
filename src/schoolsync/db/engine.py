"""SQLModel engine singleton and session dependency."""
from typing import Generator

from sqlmodel import Session, SQLModel, create_engine

from schoolsync.config import get_settings

_engine = None


def get_engine():
    """Return the module-level engine, creating it on first call."""
    global _engine
    if _engine is None:
        settings = get_settings()
        connect_args = {}
        if settings.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        _engine = create_engine(settings.database_url, connect_args=connect_args)
        # Import all models so metadata is populated before create_all
        from schoolsync.models.stats import (  # noqa
            AdmissionStats,
            ClassStats,
            FeeStats,
            LibraryStats,
            SchoolStats,
            StudentStats,
            TeacherStats,
        )
        from schoolsync.models.sync import AuditRecord, SyncLog  # noqa
        SQLModel.metadata.create_all(_engine)
    return _engine


def get_session() -> Generator[Session, None, None]:
    """Yield a DB session bound to the module-level engine."""
    with Session(get_engine()) as session:
        yield session
