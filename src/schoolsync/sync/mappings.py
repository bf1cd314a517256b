"""Default snapshot -> summary table mappings for the school dashboard."""
from schoolsync.sync.types import FieldMapping, RuleKind, TableMapping, ValidationRule


def money(value):
    """Round currency amounts to cents."""
    return round(float(value), 2)


SCHOOL_STATS = TableMapping(
    table="school_stats",
    fields=(
        FieldMapping("total_students", "total_students", required=True),
        FieldMapping("total_classes", "total_classes", required=True),
        FieldMapping("pending_admissions", "pending_admissions", required=True),
        FieldMapping("total_fees", "total_fees_collected", transform=money, required=True),
        FieldMapping("active_teachers", "active_teachers"),
        FieldMapping("total_books", "total_books"),
        FieldMapping("attendance_rate", "attendance_rate"),
        FieldMapping("fees_collection_rate", "fees_collection_rate"),
        FieldMapping("monthly_revenue", "monthly_revenue", transform=money),
        FieldMapping("total_expenses", "total_expenses", transform=money),
        FieldMapping("new_admissions", "new_admissions_this_month"),
        FieldMapping("graduated_students", "graduated_students"),
    ),
    rules=(
        ValidationRule("total_students", RuleKind.MIN, "Total students cannot be negative", value=0),
        ValidationRule("total_classes", RuleKind.MIN, "Total classes cannot be negative", value=0),
        ValidationRule(
            "attendance_rate",
            RuleKind.RANGE,
            "Attendance rate must be between 0 and 100",
            value=(0, 100),
        ),
        ValidationRule(
            "fees_collection_rate",
            RuleKind.RANGE,
            "Fees collection rate must be between 0 and 100",
            value=(0, 100),
        ),
    ),
)

# Per-entity tables duplicate counters already held in school_stats, so they
# are reconciled after it.
STUDENTS = TableMapping(
    table="students",
    fields=(FieldMapping("total_students", "total_count"),),
    dependencies=("school_stats",),
)

CLASSES = TableMapping(
    table="classes",
    fields=(FieldMapping("total_classes", "total_count"),),
    dependencies=("school_stats",),
)

FEES = TableMapping(
    table="fees",
    fields=(
        FieldMapping("total_fees", "total_collected", transform=money),
        FieldMapping("fees_collection_rate", "collection_rate"),
    ),
    dependencies=("school_stats",),
)

TEACHERS = TableMapping(
    table="teachers",
    fields=(FieldMapping("active_teachers", "active_count"),),
    dependencies=("school_stats",),
)

LIBRARY = TableMapping(
    table="library",
    fields=(FieldMapping("total_books", "total_books"),),
    dependencies=("school_stats",),
)

ADMISSIONS = TableMapping(
    table="admissions",
    fields=(
        FieldMapping("pending_admissions", "pending_count"),
        FieldMapping("new_admissions", "new_this_month"),
        FieldMapping("graduated_students", "graduated_count"),
    ),
    dependencies=("students",),
)

DEFAULT_TABLE_MAPPINGS = (
    SCHOOL_STATS,
    STUDENTS,
    CLASSES,
    FEES,
    TEACHERS,
    LIBRARY,
    ADMISSIONS,
)
