"""Pydantic schemas for course analytics."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .windows import Timeframe


class NamedValue(BaseModel):
    """Named category with a value, suitable for proportional display."""

    name: str
    value: float


class EngagementPoint(BaseModel):
    """Distinct active enrollments in one time bucket."""

    date: str
    active_students: int = 0


class ModuleProgressStat(BaseModel):
    """Share of enrollments that completed a module."""

    module_id: UUID
    name: str
    completion_rate: int = 0


class CourseAnalyticsResponse(BaseModel):
    """Derived report over a course's enrollments, attempts, certificates and reviews."""

    course_id: UUID
    timeframe: Timeframe
    window_start: datetime
    window_end: datetime
    total_enrollments: int = 0
    new_enrollments: int = 0
    completion_rate: int = 0
    average_rating: float = 0.0
    average_completion_days: float = 0.0
    progress_stats: list[ModuleProgressStat] = Field(default_factory=list)
    quiz_stats: list[NamedValue] = Field(default_factory=list)
    quiz_averages: list[NamedValue] = Field(default_factory=list)
    demographics: list[NamedValue] = Field(default_factory=list)
    student_engagement: list[EngagementPoint] = Field(default_factory=list)
    generated_at: datetime
