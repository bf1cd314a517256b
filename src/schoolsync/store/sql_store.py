"""
SQL-backed collaborators for the reconciliation engine.

SqlStatisticsStore reads the single summary row of every stats table and
hands out one StatsTableHandler per logical table name used in the mappings.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Type

from sqlmodel import Session, SQLModel

from schoolsync.models.stats import (
    SUMMARY_ROW_ID,
    AdmissionStats,
    ClassStats,
    FeeStats,
    LibraryStats,
    SchoolStats,
    StudentStats,
    TeacherStats,
)

logger = logging.getLogger(__name__)

# Logical table name (as used in TableMapping) -> summary model.
STATS_MODELS: Dict[str, Type[SQLModel]] = {
    "school_stats": SchoolStats,
    "students": StudentStats,
    "classes": ClassStats,
    "fees": FeeStats,
    "teachers": TeacherStats,
    "library": LibraryStats,
    "admissions": AdmissionStats,
}

_BOOKKEEPING_COLUMNS = {"id", "updated_at"}


def naive_utc(value: datetime) -> datetime:
    """SQLite stores naive datetimes; keep everything in UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class StatsTableHandler:
    """Upserts the summary row of one stats table."""

    def __init__(self, table: str, model: Type[SQLModel], engine):
        self.table = table
        self.model = model
        self.engine = engine

    def applies(self, table: str) -> bool:
        return table == self.table

    async def update(self, columns: Dict[str, Any]) -> None:
        """
        Write ``columns`` to the summary row, creating it if absent.

        Raises:
            ValueError: if a column does not exist on the model.
        """
        unknown = [c for c in columns if c not in self.model.model_fields]
        if unknown:
            raise ValueError(
                f"Unknown column(s) for {self.table}: {', '.join(sorted(unknown))}"
            )

        with Session(self.engine) as s:
            row = s.get(self.model, SUMMARY_ROW_ID)
            if row is None:
                row = self.model(id=SUMMARY_ROW_ID)
            for column, value in columns.items():
                if column == "id":
                    continue
                if isinstance(value, datetime):
                    value = naive_utc(value)
                setattr(row, column, value)
            s.add(row)
            s.commit()

    def __repr__(self) -> str:
        return f"StatsTableHandler({self.table!r})"


class SqlStatisticsStore:
    """Current-state reader and handler factory over the stats tables."""

    def __init__(self, engine, models: Dict[str, Type[SQLModel]] = None):
        self.engine = engine
        self.models = dict(models or STATS_MODELS)

    async def read_current_statistics(self) -> Dict[str, Dict[str, Any]]:
        """Return ``{table: {column: value}}`` for every summary row present."""
        current: Dict[str, Dict[str, Any]] = {}
        with Session(self.engine) as s:
            for table, model in self.models.items():
                row = s.get(model, SUMMARY_ROW_ID)
                if row is None:
                    continue
                current[table] = {
                    column: value
                    for column, value in row.model_dump().items()
                    if column not in _BOOKKEEPING_COLUMNS and value is not None
                }
        logger.debug("Read current statistics for %d tables", len(current))
        return current

    def handlers(self) -> List[StatsTableHandler]:
        return [
            StatsTableHandler(table, model, self.engine)
            for table, model in self.models.items()
        ]
