"""Student progress tracking module.

Provides:
- Course enrollment
- Lesson completion and derived module completion
- Percentage calculation
- Certificate trigger at 100%
"""

from .models import (
    PROGRESS_TABLES_CQL,
    Enrollment,
    EnrollmentStatus,
    calculate_percentage,
    derive_completed_modules,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "Enrollment",
    "EnrollmentStatus",
    "calculate_percentage",
    "derive_completed_modules",
]
