"""Course report aggregates.

Pure functions over already loaded records. None of them write anything.
"""

from collections import Counter
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from eduforge.progress.models import calculate_percentage

from .schemas import EngagementPoint, ModuleProgressStat, NamedValue


if TYPE_CHECKING:
    from eduforge.catalog.models import Course
    from eduforge.certificates.models import Certificate
    from eduforge.progress.models import Enrollment
    from eduforge.quizzes.models import QuizAttempt
    from eduforge.reviews.models import Review

    from .windows import ReportWindow


UNKNOWN_REGION = "Unknown"

# (label, lowest score in band), highest band first
SCORE_BANDS = [
    ("90-100%", 90),
    ("70-89%", 70),
    ("50-69%", 50),
    ("0-49%", 0),
]


def _round_half_up(value: float, places: int = 0) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def completion_rate(enrollments: list["Enrollment"]) -> int:
    """Percentage of enrollments at 100%."""
    completed = sum(1 for e in enrollments if e.percentage >= 100)  # noqa: PLR2004
    return calculate_percentage(completed, len(enrollments))


def new_enrollments(enrollments: list["Enrollment"], window: "ReportWindow") -> int:
    """Enrollments created inside the window."""
    return sum(1 for e in enrollments if window.contains(e.enrolled_at))


def average_rating(reviews: list["Review"]) -> float:
    """Mean rating, 0 without reviews."""
    if not reviews:
        return 0.0
    return _round_half_up(sum(r.rating for r in reviews) / len(reviews), 2)


def average_completion_days(
    certificates: list["Certificate"],
    enrollments: list["Enrollment"],
    window: "ReportWindow",
) -> float:
    """Mean days from enrollment to certificate, for certificates issued in the window."""
    enrolled_at = {e.id: e.enrolled_at for e in enrollments}
    durations = []
    for certificate in certificates:
        if not window.contains(certificate.issued_at):
            continue
        started = certificate.enrolled_at or enrolled_at.get(certificate.enrollment_id)
        if started is None:
            continue
        elapsed = (certificate.issued_at - started).total_seconds() / 86400
        durations.append(max(elapsed, 0.0))
    if not durations:
        return 0.0
    return _round_half_up(sum(durations) / len(durations), 1)


def progress_stats(
    course: "Course", enrollments: list["Enrollment"]
) -> list[ModuleProgressStat]:
    """Per-module completion rate across all enrollments."""
    return [
        ModuleProgressStat(
            module_id=module.id,
            name=module.title,
            completion_rate=calculate_percentage(
                sum(1 for e in enrollments if module.id in e.completed_modules),
                len(enrollments),
            ),
        )
        for module in course.modules
    ]


def score_band(score: int) -> str:
    for label, lowest in SCORE_BANDS:
        if score >= lowest:
            return label
    return SCORE_BANDS[-1][0]


def quiz_score_bands(attempts: Iterable["QuizAttempt"]) -> list[NamedValue]:
    """Attempt counts per score band, bands always present."""
    counts = Counter(score_band(a.score) for a in attempts)
    return [NamedValue(name=label, value=counts[label]) for label, _ in SCORE_BANDS]


def quiz_averages(
    course: "Course", attempts: Iterable["QuizAttempt"]
) -> list[NamedValue]:
    """Mean attempt score per quizzed module; 0 when a quiz has no attempts."""
    scores: dict[UUID, list[int]] = {}
    for attempt in attempts:
        scores.setdefault(attempt.module_id, []).append(attempt.score)

    averages = []
    for module in course.modules:
        if module.quiz is None:
            continue
        module_scores = scores.get(module.id, [])
        mean = sum(module_scores) / len(module_scores) if module_scores else 0
        averages.append(
            NamedValue(
                name=module.quiz.title or module.title,
                value=_round_half_up(mean),
            )
        )
    return averages


def demographics(enrollments: Iterable["Enrollment"]) -> list[NamedValue]:
    """Enrollment counts per declared region, largest first."""
    counts = Counter((e.region or "").strip() or UNKNOWN_REGION for e in enrollments)
    return [
        NamedValue(name=region, value=count)
        for region, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def student_engagement(
    enrollments: list["Enrollment"],
    attempts: Iterable["QuizAttempt"],
    window: "ReportWindow",
) -> list[EngagementPoint]:
    """Distinct enrollments with a lesson completion or quiz attempt, per bucket."""
    active: dict[str, set[UUID]] = {bucket.label: set() for bucket in window.buckets}

    def record(enrollment_id: UUID, at) -> None:
        bucket = window.bucket_of(at)
        if bucket is not None:
            active[bucket.label].add(enrollment_id)

    for enrollment in enrollments:
        for completed_at in enrollment.completed_lessons.values():
            record(enrollment.id, completed_at)
    for attempt in attempts:
        record(attempt.enrollment_id, attempt.created_at)

    return [
        EngagementPoint(date=bucket.label, active_students=len(active[bucket.label]))
        for bucket in window.buckets
    ]
