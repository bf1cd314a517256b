"""
ReconciliationEngine — brings the dashboard summary tables in line with a
target statistics snapshot.

Flow for one run (``synchronize``):
  1. Validate the snapshot (negative counts, percentages outside 0-100).
     Failure aborts the run with a single "system" audit entry.
  2. Read the currently persisted statistics. A read failure is logged and
     the run continues with no baseline, so every provided field is staged.
  3. Diff: per table mapping, stage every column whose snapshot value differs
     from the current one.
  4. Order the diffed tables by declared dependencies. A cycle aborts the run
     before any table is touched.
  5. Per table, in order: check validation rules, dispatch to the registered
     handler, record an audit entry. A failing table never stops the batch.

The engine keeps no state between runs: audit log and result lists live in a
per-call context, so concurrent ``synchronize`` calls do not interfere.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from schoolsync.sync.errors import (
    DependencyCycleError,
    MappingConfigError,
    MissingMappingError,
    SnapshotValidationError,
)
from schoolsync.sync.handlers import HandlerRegistry, TableHandler
from schoolsync.sync.mappings import DEFAULT_TABLE_MAPPINGS
from schoolsync.sync.ordering import sort_by_dependencies
from schoolsync.sync.types import (
    AuditEntry,
    StatisticsSnapshot,
    SyncResult,
    TableMapping,
)
from schoolsync.sync.validation import check_table_rules, validate_snapshot

logger = logging.getLogger(__name__)

SYSTEM_TABLE = "system"


@dataclass
class StagedChange:
    """Pending column values for one table, plus what they replace."""

    columns: Dict[str, Any]
    old_values: Dict[str, Any] = field(default_factory=dict)


_UNKNOWN = object()


def compute_changes(
    snapshot: StatisticsSnapshot,
    current: Mapping[str, Mapping[str, Any]],
    mappings: Iterable[TableMapping],
    now: Optional[datetime] = None,
) -> Dict[str, StagedChange]:
    """
    Stage the columns whose snapshot value differs from the persisted one.

    A column with no known current value is always staged; a known value
    equal to either the raw or the transformed snapshot value is not. Tables
    mapping the same snapshot field are evaluated independently. Every table
    that has at least one staged column also gets ``updated_at``.

    Args:
        snapshot: Target statistics.
        current: ``{table: {column: value}}`` as read from storage.
        mappings: Table mappings to evaluate, in configuration order.
        now: Timestamp for ``updated_at`` (defaults to UTC now).

    Returns:
        ``{table: StagedChange}`` in mapping order.
    """
    now = now or datetime.now(timezone.utc)
    changes: Dict[str, StagedChange] = {}

    for mapping in mappings:
        current_row = current.get(mapping.table) or {}
        staged = StagedChange(columns={})

        for fm in mapping.fields:
            current_value = current_row.get(fm.column, _UNKNOWN)
            new_value = getattr(snapshot, fm.snapshot_field)
            if new_value is None and fm.default_value is not None and current_value is _UNKNOWN:
                new_value = fm.default_value
            if new_value is None:
                continue
            if current_value is not _UNKNOWN and new_value == current_value:
                continue

            value = fm.transform(new_value) if fm.transform else new_value
            # Stored values are post-transform (e.g. rounded money).
            if current_value is not _UNKNOWN and value == current_value:
                continue
            staged.columns[fm.column] = value
            if current_value is not _UNKNOWN:
                staged.old_values[fm.column] = current_value

        if staged.columns:
            staged.columns["updated_at"] = now
            changes[mapping.table] = staged

    return changes


@dataclass
class _RunContext:
    """Accumulates the audit log and result lists of a single run."""

    acting_user: Optional[str]
    started: float = field(default_factory=time.perf_counter)
    result: SyncResult = field(default_factory=lambda: SyncResult(success=False))

    def audit(
        self,
        table: str,
        status: str,
        *,
        record_id: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            timestamp=datetime.now(timezone.utc),
            table=table,
            status=status,
            record_id=record_id,
            old_values=old_values,
            new_values=new_values,
            user_id=self.acting_user,
            error=error,
        )
        self.result.audit_log.append(entry)
        if status == "success":
            logger.info("Audit: %s %s by %s", entry.operation, table, self.acting_user)
        else:
            logger.warning(
                "Audit: %s %s by %s failed: %s",
                entry.operation,
                table,
                self.acting_user,
                error,
            )
        return entry

    def abort(self, message: str) -> SyncResult:
        """Whole-run failure: nothing was applied."""
        self.audit(SYSTEM_TABLE, "failed", error=message)
        self.result.success = False
        self.result.errors = [message]
        self.result.elapsed_seconds = time.perf_counter() - self.started
        return self.result

    def finish(self) -> SyncResult:
        self.result.success = not self.result.failed_tables
        self.result.elapsed_seconds = time.perf_counter() - self.started
        return self.result


class ReconciliationEngine:
    """Reconciles dashboard statistics against the summary tables."""

    def __init__(
        self,
        reader,
        handlers: Union[HandlerRegistry, Iterable[TableHandler]] = (),
        mappings: Iterable[TableMapping] = DEFAULT_TABLE_MAPPINGS,
    ):
        """
        Args:
            reader: Object with ``async read_current_statistics()`` returning
                ``{table: {column: value}}`` (AsyncMock in tests).
            handlers: Table handlers, or a ready HandlerRegistry.
            mappings: Table mappings; table names must be unique.

        Raises:
            MappingConfigError: if two mappings name the same table.
        """
        self.reader = reader
        self.handlers = (
            handlers if isinstance(handlers, HandlerRegistry) else HandlerRegistry(handlers)
        )
        self.mappings: Dict[str, TableMapping] = {}
        for mapping in mappings:
            if mapping.table in self.mappings:
                raise MappingConfigError(f"Duplicate mapping for table: {mapping.table}")
            self.mappings[mapping.table] = mapping

    async def synchronize(
        self,
        snapshot: Union[StatisticsSnapshot, Mapping[str, Any]],
        acting_user: Optional[str] = None,
    ) -> SyncResult:
        """
        Run one full reconciliation.

        Never raises for bad input or failing tables; problems are reported
        in the returned SyncResult.

        Args:
            snapshot: Target statistics, as a model or dashboard JSON dict.
            acting_user: Identifier attached to every audit entry.
        """
        run = _RunContext(acting_user=acting_user)
        try:
            snapshot = _coerce_snapshot(snapshot)
            validate_snapshot(snapshot)
        except SnapshotValidationError as exc:
            return run.abort(str(exc))

        current = await self._read_current()
        changes = compute_changes(snapshot, current, self.mappings.values())
        if not changes:
            logger.info("Dashboard statistics already up to date")
        return await self._execute(run, changes)

    async def plan(
        self, snapshot: Union[StatisticsSnapshot, Mapping[str, Any]]
    ) -> List[Tuple[str, Dict[str, Any]]]:
        """
        Dry run: the ordered staged columns ``synchronize`` would apply.

        Raises:
            SnapshotValidationError: snapshot breaks a numeric invariant.
            DependencyCycleError: diffed tables depend on each other.
        """
        snapshot = _coerce_snapshot(snapshot)
        validate_snapshot(snapshot)
        current = await self._read_current()
        changes = compute_changes(snapshot, current, self.mappings.values())
        order = sort_by_dependencies(list(changes), self._edges(changes))
        return [(table, changes[table].columns) for table in order]

    async def execute(
        self,
        changes: Mapping[str, Union[StagedChange, Dict[str, Any]]],
        acting_user: Optional[str] = None,
    ) -> SyncResult:
        """
        Apply already staged changes (steps 4-5 only).

        Useful for retrying the ``failed_tables`` of an earlier run without
        re-reading current state.
        """
        staged = {
            table: change if isinstance(change, StagedChange) else StagedChange(columns=dict(change))
            for table, change in changes.items()
        }
        return await self._execute(_RunContext(acting_user=acting_user), staged)

    # ─── Internal helpers ─────────────────────────────────────────────────────

    async def _read_current(self) -> Dict[str, Dict[str, Any]]:
        try:
            return await self.reader.read_current_statistics() or {}
        except Exception as exc:
            logger.warning(
                "Could not read current statistics, treating all fields as changed: %s",
                exc,
            )
            return {}

    def _edges(self, changes: Mapping[str, Any]) -> Dict[str, Tuple[str, ...]]:
        return {
            table: self.mappings[table].dependencies
            for table in changes
            if table in self.mappings
        }

    async def _execute(
        self, run: _RunContext, changes: Dict[str, StagedChange]
    ) -> SyncResult:
        try:
            order = sort_by_dependencies(list(changes), self._edges(changes))
        except DependencyCycleError as exc:
            return run.abort(str(exc))

        for table in order:
            await self._apply_table(run, table, changes[table])
        return run.finish()

    async def _apply_table(
        self, run: _RunContext, table: str, change: StagedChange
    ) -> None:
        result = run.result
        columns = change.columns
        record_id = None
        try:
            mapping = self.mappings.get(table)
            if mapping is None:
                raise MissingMappingError(table)
            if mapping.primary_key in columns:
                record_id = str(columns[mapping.primary_key])

            check_table_rules(table, columns, mapping.rules, mapping.fields)

            handler = self.handlers.get(table)
            if handler is None:
                logger.warning("No update handler registered for table: %s", table)
                result.skipped_tables.append(table)
                return

            logger.info("Updating table %s with %s", table, columns)
            await handler.update(columns)

        except Exception as exc:
            result.failed_tables.append(table)
            result.errors.append(f"{table}: {exc}")
            run.audit(
                table,
                "failed",
                record_id=record_id,
                new_values=columns,
                error=str(exc),
            )
            return

        result.updated_tables.append(table)
        result.total_records_updated += 1
        run.audit(
            table,
            "success",
            record_id=record_id,
            old_values=change.old_values or None,
            new_values=columns,
        )


def _coerce_snapshot(
    snapshot: Union[StatisticsSnapshot, Mapping[str, Any]]
) -> StatisticsSnapshot:
    if isinstance(snapshot, StatisticsSnapshot):
        return snapshot
    try:
        return StatisticsSnapshot.model_validate(snapshot)
    except ValidationError as exc:
        details = ", ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise SnapshotValidationError(f"Validation failed: {details}") from exc
