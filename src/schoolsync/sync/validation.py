"""
Snapshot-level and per-table validation.

validate_snapshot is the fail-fast precondition on the caller's input.
check_table_rules runs a table's ValidationRules against its staged columns.
"""
import math
import numbers
from typing import Any, Dict, Iterable, List

from schoolsync.sync.errors import RuleViolationError, SnapshotValidationError
from schoolsync.sync.types import (
    PERCENTAGE_FIELDS,
    FieldMapping,
    RuleKind,
    StatisticsSnapshot,
    ValidationRule,
)


def _label(field_name: str) -> str:
    """``total_fees`` -> ``Total fees``."""
    return field_name.replace("_", " ").capitalize()


def snapshot_errors(snapshot: StatisticsSnapshot) -> List[str]:
    """Return one message per negative or out-of-range field."""
    errors: List[str] = []
    for name, value in snapshot.provided().items():
        if not math.isfinite(value):
            errors.append(f"{_label(name)} must be a finite number")
        elif name in PERCENTAGE_FIELDS:
            if value < 0 or value > 100:
                errors.append(f"{_label(name)} must be between 0 and 100")
        elif value < 0:
            errors.append(f"{_label(name)} cannot be negative")
    return errors


def validate_snapshot(snapshot: StatisticsSnapshot) -> None:
    """Raise SnapshotValidationError if any field breaks a numeric invariant."""
    errors = snapshot_errors(snapshot)
    if errors:
        raise SnapshotValidationError(f"Validation failed: {', '.join(errors)}")


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _rule_passes(rule: ValidationRule, value: Any) -> bool:
    if rule.kind is RuleKind.REQUIRED:
        return value is not None
    if rule.kind is RuleKind.MIN:
        return not _is_number(value) or value >= rule.value
    if rule.kind is RuleKind.MAX:
        return not _is_number(value) or value <= rule.value
    if rule.kind is RuleKind.RANGE:
        low, high = rule.value
        return not _is_number(value) or low <= value <= high
    if rule.kind is RuleKind.CUSTOM:
        return rule.predicate is None or bool(rule.predicate(value))
    raise ValueError(f"Unknown rule kind: {rule.kind}")


def check_table_rules(
    table: str,
    columns: Dict[str, Any],
    rules: Iterable[ValidationRule],
    fields: Iterable[FieldMapping] = (),
) -> None:
    """
    Validate staged columns for one table; stop at the first failure.

    Rules on columns that are not staged are skipped. Required field
    mappings are checked after the rules.

    Raises:
        RuleViolationError: naming the offending column.
    """
    for rule in rules:
        if rule.column not in columns:
            continue
        if not _rule_passes(rule, columns[rule.column]):
            raise RuleViolationError(table, rule.column, rule.message)

    for mapping in fields:
        if mapping.required and mapping.column in columns and columns[mapping.column] is None:
            raise RuleViolationError(
                table, mapping.column, f"{mapping.column} is required"
            )
