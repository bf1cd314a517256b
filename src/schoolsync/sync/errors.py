"""Exceptions raised by the reconciliation engine."""


class SyncError(Exception):
    """Base class for reconciliation errors."""


class SnapshotValidationError(SyncError):
    """Snapshot holds negative or out-of-range values. Aborts the whole run."""


class DependencyCycleError(SyncError):
    """Diffed tables depend on each other in a loop. Aborts the whole run."""

    def __init__(self, table: str):
        super().__init__(f"Circular dependency detected involving table: {table}")
        self.table = table


class MissingMappingError(SyncError):
    def __init__(self, table: str):
        super().__init__(f"No mapping found for table: {table}")
        self.table = table


class RuleViolationError(SyncError):
    """A validation rule rejected a staged column value."""

    def __init__(self, table: str, column: str, message: str):
        super().__init__(message)
        self.table = table
        self.column = column


class MappingConfigError(SyncError):
    """Table mappings passed to the engine are inconsistent."""
