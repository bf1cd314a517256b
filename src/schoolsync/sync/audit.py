"""Persist a finished reconciliation run as SyncLog + AuditRecord rows."""
import json
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlmodel import Session, select

from schoolsync.models.sync import AuditRecord, SyncLog
from schoolsync.store.sql_store import naive_utc
from schoolsync.sync.types import SyncResult


def _dumps(values: Optional[dict]) -> Optional[str]:
    if values is None:
        return None
    return json.dumps(values, default=_json_default, sort_keys=True)


def _json_default(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def run_status(result: SyncResult) -> str:
    """``success``, ``partial`` (some tables failed) or ``error``."""
    if result.success:
        return "success"
    if result.updated_tables:
        return "partial"
    return "error"


def record_sync_run(
    engine, result: SyncResult, acting_user: Optional[str] = None
) -> SyncLog:
    """
    Store a run summary and its audit trail.

    Args:
        engine: SQLAlchemy engine.
        result: The SyncResult returned by ``synchronize``.
        acting_user: Who triggered the run.

    Returns:
        The persisted SyncLog row.
    """
    finished_at = datetime.utcnow()
    log = SyncLog(
        acting_user=acting_user,
        started_at=finished_at - timedelta(seconds=result.elapsed_seconds),
        finished_at=finished_at,
        status=run_status(result),
        tables_updated=len(result.updated_tables),
        records_updated=result.total_records_updated,
        error_message="; ".join(result.errors) or None,
    )
    with Session(engine) as s:
        s.add(log)
        s.flush()
        for entry in result.audit_log:
            s.add(
                AuditRecord(
                    sync_log_id=log.id,
                    timestamp=naive_utc(entry.timestamp),
                    table_name=entry.table,
                    operation=entry.operation,
                    record_id=entry.record_id,
                    old_values_json=_dumps(entry.old_values),
                    new_values_json=_dumps(entry.new_values),
                    user_id=entry.user_id,
                    status=entry.status,
                    error=entry.error,
                )
            )
        s.commit()
        s.refresh(log)
    return log


def latest_sync_log(engine) -> Optional[SyncLog]:
    with Session(engine) as s:
        return s.exec(select(SyncLog).order_by(SyncLog.id.desc())).first()
