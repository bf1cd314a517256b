"""Dashboard summary tables.

Each table holds a single summary row (``id == 1``) that the reconciliation
engine keeps in line with the dashboard statistics snapshot.
"""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

SUMMARY_ROW_ID = 1


class SchoolStats(SQLModel, table=True):
    """Denormalised copy of every dashboard counter."""

    __tablename__ = "school_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    total_students: Optional[int] = None
    total_classes: Optional[int] = None
    pending_admissions: Optional[int] = None
    total_fees_collected: Optional[float] = None
    active_teachers: Optional[int] = None
    total_books: Optional[int] = None
    attendance_rate: Optional[float] = None  # percent, 0-100
    fees_collection_rate: Optional[float] = None  # percent, 0-100
    monthly_revenue: Optional[float] = None
    total_expenses: Optional[float] = None
    new_admissions_this_month: Optional[int] = None
    graduated_students: Optional[int] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class StudentStats(SQLModel, table=True):
    __tablename__ = "student_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    total_count: Optional[int] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ClassStats(SQLModel, table=True):
    __tablename__ = "class_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    total_count: Optional[int] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class FeeStats(SQLModel, table=True):
    __tablename__ = "fee_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    total_collected: Optional[float] = None
    collection_rate: Optional[float] = None  # percent, 0-100
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class TeacherStats(SQLModel, table=True):
    __tablename__ = "teacher_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    active_count: Optional[int] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class LibraryStats(SQLModel, table=True):
    __tablename__ = "library_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    total_books: Optional[int] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class AdmissionStats(SQLModel, table=True):
    """Admission pipeline counters (pending, new this month, graduated)."""

    __tablename__ = "admission_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    pending_count: Optional[int] = None
    new_this_month: Optional[int] = None
    graduated_count: Optional[int] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)
