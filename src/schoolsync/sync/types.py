"""
Value types shared by the reconciliation engine.

StatisticsSnapshot is the caller-facing input (a pydantic model so it can be
built straight from dashboard JSON). The mapping types are static
configuration; AuditEntry and SyncResult are produced by a run.
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StatisticsSnapshot(BaseModel):
    """Target values for the dashboard counters. ``None`` means not provided."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        allow_inf_nan=False,
    )

    total_students: Optional[int] = None
    total_classes: Optional[int] = None
    pending_admissions: Optional[int] = None
    total_fees: Optional[float] = None
    active_teachers: Optional[int] = None
    total_books: Optional[int] = None
    attendance_rate: Optional[float] = None
    fees_collection_rate: Optional[float] = None
    monthly_revenue: Optional[float] = None
    total_expenses: Optional[float] = None
    new_admissions: Optional[int] = None
    graduated_students: Optional[int] = None

    def provided(self) -> Dict[str, Any]:
        """Fields the caller actually set, keyed by snake_case name."""
        return self.model_dump(exclude_none=True)


# Fields constrained to [0, 100] on top of the non-negative check.
PERCENTAGE_FIELDS = frozenset({"attendance_rate", "fees_collection_rate"})


class RuleKind(str, Enum):
    REQUIRED = "required"
    MIN = "min"
    MAX = "max"
    RANGE = "range"
    CUSTOM = "custom"


@dataclass(frozen=True)
class FieldMapping:
    """Snapshot field -> table column.

    ``required`` fails the table when the staged value is ``None``. Snapshot
    fields left out are never staged, so from ``synchronize`` this only
    fires for a transform that returns ``None``.
    """

    snapshot_field: str
    column: str
    transform: Optional[Callable[[Any], Any]] = None
    required: bool = False
    default_value: Any = None


@dataclass(frozen=True)
class ValidationRule:
    """Constraint on one staged column of a table.

    ``value`` is the threshold for MIN/MAX and a ``(low, high)`` tuple for
    RANGE. CUSTOM rules call ``predicate`` with the staged value.
    """

    column: str
    kind: RuleKind
    message: str
    value: Any = None
    predicate: Optional[Callable[[Any], bool]] = None


@dataclass(frozen=True)
class TableMapping:
    table: str
    fields: Tuple[FieldMapping, ...]
    primary_key: str = "id"
    dependencies: Tuple[str, ...] = ()
    rules: Tuple[ValidationRule, ...] = ()


@dataclass(frozen=True)
class AuditEntry:
    timestamp: datetime
    table: str
    status: str  # "success", "failed"
    operation: str = "UPDATE"
    record_id: Optional[str] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    user_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class SyncResult:
    """Aggregate outcome of one reconciliation run."""

    success: bool
    updated_tables: List[str] = field(default_factory=list)
    failed_tables: List[str] = field(default_factory=list)
    skipped_tables: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    audit_log: List[AuditEntry] = field(default_factory=list)
    total_records_updated: int = 0
    elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "updated_tables": list(self.updated_tables),
            "failed_tables": list(self.failed_tables),
            "skipped_tables": list(self.skipped_tables),
            "errors": list(self.errors),
            "audit_log": [entry.to_dict() for entry in self.audit_log],
            "total_records_updated": self.total_records_updated,
            "elapsed_seconds": self.elapsed_seconds,
        }
