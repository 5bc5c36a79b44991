"""
Conflict & capacity checks for a (student, course period) pair.

A course period occupies a set of weekly slots (day_of_week, period_id).
They come from its own ``days`` letters and ``period_id`` when both are set,
otherwise from its section's timetable for the academic year.
"""

from typing import Dict, List, Optional, Set

from course_scheduler.core.errors import CapacityError, ConflictError, NotFoundError
from course_scheduler.schemas.records import CoursePeriod, ScheduleConflict, Slot, StudentSchedule
from course_scheduler.stores.base import CatalogAdapter, RecordStore


def course_period_slots(
    catalog: CatalogAdapter, course_period: CoursePeriod, academic_year_id: str
) -> Set[Slot]:
    if course_period.period_id and course_period.days:
        return {Slot(day, course_period.period_id) for day in course_period.day_numbers()}

    if not course_period.section_id:
        return set()

    slots = set()
    for entry in catalog.list_section_timetable(course_period.section_id, academic_year_id):
        if not entry.period_id:
            continue
        if course_period.period_id and entry.period_id != course_period.period_id:
            continue
        slots.add(Slot(entry.day_of_week, entry.period_id))
    return slots


def _held_on(schedule: StudentSchedule, start_date: str) -> bool:
    """Whether the row still occupies its slots on or after ``start_date``."""
    return schedule.end_date is None or schedule.end_date > start_date


def find_conflicts(
    catalog: CatalogAdapter,
    store: RecordStore,
    student_id: str,
    course_period: CoursePeriod,
    academic_year_id: str,
    start_date: Optional[str] = None,
) -> List[ScheduleConflict]:
    """Schedule rows of the student that share a slot with ``course_period``.

    Without ``start_date`` only active rows count. With it, a row dropped
    after that date still counts, since the two enrollments overlap.
    """
    wanted = course_period_slots(catalog, course_period, academic_year_id)
    if not wanted:
        return []

    if start_date is None:
        rows = store.list_active_schedules(student_id, academic_year_id)
    else:
        rows = [
            s for s in store.list_schedule_history(student_id, academic_year_id)
            if _held_on(s, start_date)
        ]

    conflicts = []
    period_cache: Dict[str, Optional[CoursePeriod]] = {}
    for schedule in rows:
        if schedule.course_period_id == course_period.id:
            continue
        if schedule.course_period_id not in period_cache:
            period_cache[schedule.course_period_id] = catalog.get_course_period(schedule.course_period_id)
        other = period_cache[schedule.course_period_id]
        if other is None:
            continue

        for slot in sorted(wanted & course_period_slots(catalog, other, academic_year_id)):
            conflicts.append(ScheduleConflict(
                conflicting_schedule_id=schedule.id,
                conflicting_course_period_id=other.id,
                conflicting_course_title=schedule.course_title or other.display_title,
                conflicting_period_title=other.period_title or slot.period_id,
                conflicting_day_of_week=slot.day_of_week,
            ))
    return conflicts


def check_conflicts(
    catalog: CatalogAdapter,
    store: RecordStore,
    student_id: str,
    course_period_id: str,
    academic_year_id: str,
    start_date: Optional[str] = None,
) -> List[ScheduleConflict]:
    course_period = catalog.get_course_period(course_period_id)
    if course_period is None:
        raise NotFoundError("Course period not found")
    return find_conflicts(catalog, store, student_id, course_period, academic_year_id, start_date)


def ensure_seat_available(course_period: CoursePeriod) -> None:
    if course_period.is_full:
        raise CapacityError("Course period is full: no seats available")


def ensure_no_conflict(
    catalog: CatalogAdapter,
    store: RecordStore,
    student_id: str,
    course_period: CoursePeriod,
    academic_year_id: str,
    start_date: Optional[str] = None,
) -> None:
    conflicts = find_conflicts(catalog, store, student_id, course_period, academic_year_id, start_date)
    if conflicts:
        message = "; ".join(c.describe() for c in conflicts)
        raise ConflictError(f"Schedule conflict: {message}")


def ensure_not_enrolled(store: RecordStore, student_id: str, course_period_id: str) -> None:
    if store.find_active_schedule(student_id, course_period_id) is not None:
        raise ConflictError("Student is already enrolled in this course period")
