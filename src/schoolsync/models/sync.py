"""Reconciliation run log and per-table audit records."""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class SyncLog(SQLModel, table=True):
    """Records each reconciliation run for audit and debugging."""

    id: Optional[int] = Field(default=None, primary_key=True)
    acting_user: Optional[str] = None
    started_at: datetime = Field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
    status: str = "running"  # "running", "success", "partial", "error"
    tables_updated: int = 0
    records_updated: int = 0
    error_message: Optional[str] = None


class AuditRecord(SQLModel, table=True):
    """One attempted table update, copied from the run's audit log."""

    id: Optional[int] = Field(default=None, primary_key=True)
    sync_log_id: int = Field(foreign_key="synclog.id", index=True)
    timestamp: datetime
    table_name: str = Field(index=True)
    operation: str = "UPDATE"
    record_id: Optional[str] = None
    old_values_json: Optional[str] = None
    new_values_json: Optional[str] = None
    user_id: Optional[str] = None
    status: str  # "success", "failed"
    error: Optional[str] = None
