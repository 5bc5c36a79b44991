"""
Candidate resolution and preference/availability filtering for one request.

Filtering is an ordered list of stages. Soft stages (teacher and period
preferences) only narrow the candidate set when at least one candidate
survives; hard stages (capacity, gender, teacher availability) always apply
and may leave the set empty, which makes the request unfulfillable.
"""

from typing import Callable, Dict, List, Optional, Set, Tuple

from course_scheduler.schemas.records import CoursePeriod, ScheduleRequest, Slot
from course_scheduler.schemas.scheduling import SchedulerRunOptions
from course_scheduler.services.conflicts import course_period_slots
from course_scheduler.stores.base import CatalogAdapter

NO_CANDIDATES = "No course periods available for this course"
NO_MATCH = "No course periods match preferences or availability"


class FilterStage:
    def __init__(
        self,
        name: str,
        predicate: Callable[[CoursePeriod], bool],
        soft: bool,
        reason: str,
    ):
        self.name = name
        self.predicate = predicate
        self.soft = soft
        self.reason = reason

    def apply(self, candidates: List[CoursePeriod]) -> Tuple[List[CoursePeriod], bool]:
        """Return ``(narrowed, applied)``; a soft stage backs off instead of emptying the set."""
        narrowed = [cp for cp in candidates if self.predicate(cp)]
        if self.soft and not narrowed:
            return candidates, False
        return narrowed, True

    def __repr__(self):
        return f"FilterStage({self.name!r}, soft={self.soft})"


def resolve_candidates(catalog: CatalogAdapter, request: ScheduleRequest) -> List[CoursePeriod]:
    return catalog.list_course_periods(request.course_id, request.marking_period_id)


def _preference_stages(request: ScheduleRequest, soft: bool) -> List[FilterStage]:
    # (request field, course period attribute, keep matches?)
    dimensions = [
        ("with_teacher_id", "teacher_id", True),
        ("not_teacher_id", "teacher_id", False),
        ("with_period_id", "period_id", True),
        ("not_period_id", "period_id", False),
    ]
    stages = []
    for field, attr, keep in dimensions:
        wanted = getattr(request, field)
        if not wanted:
            continue
        if keep:
            predicate = lambda cp, attr=attr, wanted=wanted: getattr(cp, attr) == wanted
            reason = f"no course period with {attr} {wanted}"
        else:
            predicate = lambda cp, attr=attr, wanted=wanted: getattr(cp, attr) != wanted
            reason = f"every course period has excluded {attr} {wanted}"
        stages.append(FilterStage(field, predicate, soft, reason))
    return stages


def _gender_stage(catalog: CatalogAdapter, request: ScheduleRequest) -> Optional[FilterStage]:
    gender = catalog.get_student_gender(request.student_id)
    if not gender:
        return None
    code = gender[0].upper()

    def eligible(cp: CoursePeriod) -> bool:
        restriction = (cp.gender_restriction or "N").upper()
        return restriction == "N" or restriction == code

    return FilterStage("gender_restriction", eligible, False, f"no course period open to gender {code}")


def _availability_stage(
    catalog: CatalogAdapter, academic_year_id: str
) -> FilterStage:
    unavailable: Dict[str, Set[Slot]] = {}

    def teacher_available(cp: CoursePeriod) -> bool:
        if not cp.teacher_id:
            return True
        slots = course_period_slots(catalog, cp, academic_year_id)
        if not slots:
            return True
        if cp.teacher_id not in unavailable:
            unavailable[cp.teacher_id] = catalog.get_unavailable_slots(cp.teacher_id, academic_year_id)
        return not (slots & unavailable[cp.teacher_id])

    return FilterStage(
        "teacher_availability", teacher_available, False,
        "teachers of all candidate course periods are unavailable",
    )


def build_stages(
    catalog: CatalogAdapter,
    request: ScheduleRequest,
    options: SchedulerRunOptions,
    strict_preferences: bool = False,
) -> List[FilterStage]:
    stages = _preference_stages(request, soft=not strict_preferences)

    if options.respect_room_capacity:
        stages.append(FilterStage(
            "room_capacity", lambda cp: not cp.is_full, False,
            "all candidate course periods are full",
        ))
    if options.respect_gender_restrictions:
        stage = _gender_stage(catalog, request)
        if stage is not None:
            stages.append(stage)
    if options.respect_teacher_availability:
        stages.append(_availability_stage(catalog, request.academic_year_id))
    return stages


def filter_candidates(
    candidates: List[CoursePeriod], stages: List[FilterStage]
) -> Tuple[List[CoursePeriod], Optional[str]]:
    """Run the stages in order; return the survivors, or ``[]`` with the reason."""
    filtered = list(candidates)
    for stage in stages:
        filtered, _ = stage.apply(filtered)
        if not filtered:
            return [], f"{NO_MATCH} ({stage.reason})"
    return filtered, None


def rank_candidates(candidates: List[CoursePeriod]) -> List[CoursePeriod]:
    """Most free seats first; unlimited seats rank ahead of any finite count."""
    return sorted(candidates, key=lambda cp: cp.remaining_seats, reverse=True)
