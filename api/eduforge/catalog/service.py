"""In-process course catalog.

The catalog is owned by an external content service; this core only reads it.
Courses are loaded from a JSON document (a list of course objects) or
registered directly, and are never modified afterwards.
"""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any
from uuid import UUID

import structlog
from pydantic import ValidationError

from .models import Course


logger = structlog.get_logger(__name__)


class CatalogError(Exception):
    """Base catalog error."""

    def __init__(self, message: str, code: str = "catalog_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CatalogError):
    """Course does not exist in the catalog."""

    def __init__(self, course_id: UUID):
        super().__init__(f"Course {course_id} not found", "course_not_found")
        self.course_id = course_id


class InvalidCatalogError(CatalogError):
    """Catalog document failed validation."""

    def __init__(self, message: str):
        super().__init__(message, "invalid_catalog")


class CourseCatalog:
    """Read-only lookup of course structure by id."""

    def __init__(self, courses: Iterable[Course] = ()):
        self._courses: dict[UUID, Course] = {}
        for course in courses:
            self.add(course)

    @classmethod
    def from_dicts(cls, data: Iterable[dict[str, Any]]) -> "CourseCatalog":
        """Build a catalog from raw course dicts, validating each one."""
        try:
            return cls(Course.model_validate(item) for item in data)
        except ValidationError as e:
            raise InvalidCatalogError(str(e)) from e

    @classmethod
    def from_file(cls, path: str | Path) -> "CourseCatalog":
        """Load a catalog from a JSON file holding a list of courses."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            raw = raw.get("courses", [])
        catalog = cls.from_dicts(raw)
        logger.info("catalog_loaded", path=str(path), courses=len(catalog))
        return catalog

    def add(self, course: Course) -> None:
        """Register a course. Re-registering an id is rejected."""
        if course.id in self._courses:
            raise InvalidCatalogError(f"Course {course.id} registered twice")
        self._courses[course.id] = course

    def get_course(self, course_id: UUID) -> Course | None:
        """Get course by id, or None."""
        return self._courses.get(course_id)

    def require_course(self, course_id: UUID) -> Course:
        """Get course by id.

        Raises:
            CourseNotFoundError: If the course is unknown
        """
        course = self._courses.get(course_id)
        if course is None:
            raise CourseNotFoundError(course_id)
        return course

    def __len__(self) -> int:
        return len(self._courses)
