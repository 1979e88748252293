"""Read-only course structure supplied by the external course catalog."""

from .models import Course, Lesson, Module, Question, Quiz
from .service import CatalogError, CourseCatalog, CourseNotFoundError


__all__ = [
    "CatalogError",
    "Course",
    "CourseCatalog",
    "CourseNotFoundError",
    "Lesson",
    "Module",
    "Question",
    "Quiz",
]
