"""Course structure models.

Courses are immutable input to the tracking core: an ordered list of modules,
each holding ordered lessons and an optional quiz. Structure is validated
once, when it enters the catalog.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Question(BaseModel):
    """Multiple choice question with a zero-based correct option index."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    options: list[str] = Field(..., min_length=1)
    correct_index: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _correct_index_in_range(self) -> "Question":
        if self.correct_index >= len(self.options):
            msg = (
                f"correct_index {self.correct_index} out of range "
                f"for {len(self.options)} options"
            )
            raise ValueError(msg)
        return self


class Quiz(BaseModel):
    """Ordered questions attached to a module."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    passing_score: int | None = Field(default=None, ge=0, le=100)
    questions: list[Question] = Field(default_factory=list)

    @property
    def answer_key(self) -> list[int]:
        return [q.correct_index for q in self.questions]


class Lesson(BaseModel):
    """Single lesson. Duration is in minutes."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    title: str
    duration: int = Field(default=0, ge=0)


class Module(BaseModel):
    """Ordered group of lessons with an optional quiz."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    title: str
    lessons: list[Lesson] = Field(default_factory=list)
    quiz: Quiz | None = None

    @property
    def lesson_ids(self) -> list[UUID]:
        return [lesson.id for lesson in self.lessons]


class Course(BaseModel):
    """Course with its ordered modules."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    title: str
    modules: list[Module] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self) -> "Course":
        module_ids = [m.id for m in self.modules]
        if len(module_ids) != len(set(module_ids)):
            raise ValueError("duplicate module id in course")
        lesson_ids = [lid for m in self.modules for lid in m.lesson_ids]
        if len(lesson_ids) != len(set(lesson_ids)):
            raise ValueError("lesson ids must be unique across the course")
        return self

    @property
    def total_lessons(self) -> int:
        return sum(len(m.lessons) for m in self.modules)

    @property
    def lesson_ids(self) -> set[UUID]:
        return {lid for m in self.modules for lid in m.lesson_ids}

    def get_module(self, module_id: UUID) -> Module | None:
        """Find a module by id."""
        for module in self.modules:
            if module.id == module_id:
                return module
        return None

    def module_of_lesson(self, lesson_id: UUID) -> Module | None:
        """Find the module containing a lesson."""
        for module in self.modules:
            if lesson_id in module.lesson_ids:
                return module
        return None
