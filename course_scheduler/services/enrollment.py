"""
Enrollment committer: add/drop of student_schedules rows.

filled_seats on a course period is never adjusted by a delta. After every
insert or drop it is recomputed from the live active rows, so missed or
repeated events cannot make it drift.
"""

from datetime import date
from typing import List, Optional

from dateutil import parser

from course_scheduler.core.app_logger import get_logger
from course_scheduler.core.errors import CapacityError, NotFoundError, SchedulingError, ValidationError
from course_scheduler.schemas.records import StudentSchedule, TenantScope
from course_scheduler.schemas.scheduling import DropStudent, EnrollStudent, MassDrop, MassEnroll
from course_scheduler.services.conflicts import (
    ensure_no_conflict,
    ensure_not_enrolled,
    ensure_seat_available,
)
from course_scheduler.stores.base import CatalogAdapter, RecordStore

logger = get_logger("enrollment")


def _as_date(value: Optional[str], field: str) -> str:
    if not value:
        return date.today().isoformat()
    try:
        return parser.isoparse(value).date().isoformat()
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date, got '{value}'")


def recompute_filled_seats(
    catalog: CatalogAdapter,
    store: RecordStore,
    course_period_id: str,
    marking_period_id: Optional[str] = None,
) -> int:
    """Count active enrollments for the course period and store the result.

    The count is scoped to ``marking_period_id`` when given, otherwise to the
    course period's own marking period.
    """
    course_period = catalog.get_course_period(course_period_id)
    if course_period is None:
        raise NotFoundError("Course period not found")

    mp_id = marking_period_id or course_period.marking_period_id
    filled = store.count_active_enrollments(course_period_id, mp_id)
    catalog.set_filled_seats(course_period_id, filled)
    logger.debug("Course period %s filled_seats=%s (mp=%s)", course_period_id, filled, mp_id)
    return filled


def enroll(
    catalog: CatalogAdapter,
    store: RecordStore,
    scope: TenantScope,
    body: EnrollStudent,
    enrolled_by: Optional[str] = None,
) -> StudentSchedule:
    """Enroll a student in a course period.

    Checks, in order: course period exists, a seat is free, no slot conflict
    with rows the student holds on the start date, no active duplicate. After
    the insert the seat count is re-validated; an overflow rolls it back.
    """
    course_period = catalog.get_course_period(body.course_period_id)
    if course_period is None:
        raise NotFoundError("Course period not found")

    start_date = _as_date(body.start_date, "start_date")
    ensure_seat_available(course_period)
    ensure_no_conflict(catalog, store, body.student_id, course_period, body.academic_year_id, start_date)
    ensure_not_enrolled(store, body.student_id, body.course_period_id)

    schedule = store.insert_schedule({
        "school_id": scope.school_id,
        "campus_id": body.campus_id or scope.campus_id,
        "student_id": body.student_id,
        "course_id": body.course_id,
        "course_period_id": body.course_period_id,
        "academic_year_id": body.academic_year_id,
        "marking_period_id": body.marking_period_id,
        "start_date": start_date,
        "enrolled_by": enrolled_by,
    })

    filled = recompute_filled_seats(catalog, store, body.course_period_id, body.marking_period_id)
    if course_period.total_seats is not None and filled > course_period.total_seats:
        # Lost a race with a concurrent enrollment
        store.delete_schedule(schedule.id)
        recompute_filled_seats(catalog, store, body.course_period_id, body.marking_period_id)
        raise CapacityError("Course period is full: no seats available")

    logger.info("Enrolled student %s in course period %s", body.student_id, body.course_period_id)
    return schedule


def _end_enrollment(store: RecordStore, student_id: str, course_period_id: str, end_date: str) -> StudentSchedule:
    active = store.find_active_schedule(student_id, course_period_id)
    if active is None:
        raise NotFoundError("Student is not enrolled in this course period")
    return store.end_schedule(active.id, end_date)


def drop(
    catalog: CatalogAdapter,
    store: RecordStore,
    body: DropStudent,
) -> StudentSchedule:
    """Soft-drop: set end_date on the active row, then recompute seats."""
    end_date = _as_date(body.end_date, "end_date")
    schedule = _end_enrollment(store, body.student_id, body.course_period_id, end_date)
    recompute_filled_seats(catalog, store, body.course_period_id)
    logger.info("Dropped student %s from course period %s", body.student_id, body.course_period_id)
    return schedule


def mass_enroll(
    catalog: CatalogAdapter,
    store: RecordStore,
    scope: TenantScope,
    body: MassEnroll,
    enrolled_by: Optional[str] = None,
) -> dict:
    start_date = _as_date(body.start_date, "start_date")
    enrolled = 0
    errors: List[str] = []

    for student_id in body.student_ids:
        try:
            enroll(catalog, store, scope, EnrollStudent(
                student_id=student_id,
                course_id=body.course_id,
                course_period_id=body.course_period_id,
                academic_year_id=body.academic_year_id,
                marking_period_id=body.marking_period_id,
                start_date=start_date,
                campus_id=body.campus_id,
            ), enrolled_by)
            enrolled += 1
        except SchedulingError as e:
            errors.append(f"Student {student_id}: {e.message}")

    return {"enrolled": enrolled, "errors": errors}


def mass_drop(
    catalog: CatalogAdapter,
    store: RecordStore,
    body: MassDrop,
) -> dict:
    end_date = _as_date(body.end_date, "end_date")
    dropped = 0
    errors: List[str] = []

    for student_id in body.student_ids:
        try:
            _end_enrollment(store, student_id, body.course_period_id, end_date)
            dropped += 1
        except SchedulingError as e:
            errors.append(f"Student {student_id}: {e.message}")

    # Recalculate once at the end
    recompute_filled_seats(catalog, store, body.course_period_id)
    return {"dropped": dropped, "errors": errors}


# ═══════════════════════════════════════════════════════════
# SCHEDULE QUERIES
# ═══════════════════════════════════════════════════════════

def get_student_schedule(store: RecordStore, student_id: str, academic_year_id: str) -> List[StudentSchedule]:
    return store.list_active_schedules(student_id, academic_year_id)


def get_schedule_history(store: RecordStore, student_id: str, academic_year_id: str) -> List[StudentSchedule]:
    return store.list_schedule_history(student_id, academic_year_id)


def get_class_list(catalog: CatalogAdapter, store: RecordStore, course_period_id: str) -> dict:
    course_period = catalog.get_course_period(course_period_id)
    if course_period is None:
        raise NotFoundError("Course period not found")

    students = [
        {
            "schedule_id": s.id,
            "student_id": s.student_id,
            "student_name": s.student_name or "Unknown",
            "start_date": s.start_date,
            "end_date": s.end_date,
            "scheduler_lock": s.scheduler_lock,
        }
        for s in store.list_class_roster(course_period_id)
    ]
    students.sort(key=lambda s: s["student_name"])

    return {
        "course_period_id": course_period_id,
        "course_title": course_period.course_title or "",
        "teacher_id": course_period.teacher_id,
        "total_seats": course_period.total_seats,
        "filled_seats": course_period.filled_seats,
        "students": students,
    }


def get_add_drop_log(
    store: RecordStore,
    scope: TenantScope,
    academic_year_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    campus_id: Optional[str] = None,
) -> List[dict]:
    """One "add" record per schedule row plus one "drop" record per ended row."""
    rows = store.list_schedule_log(
        scope.school_id, academic_year_id, start_date, end_date, campus_id or scope.campus_id,
    )

    records = []
    for row in rows:
        base = {
            "student_id": row.student_id,
            "student_name": row.student_name,
            "course_title": row.course_title or "",
            "course_period_title": row.course_period_title,
        }
        records.append({**base, "action": "add", "date": row.start_date, "enrolled_by": row.enrolled_by})
        if row.end_date:
            records.append({**base, "action": "drop", "date": row.end_date})

    records.sort(key=lambda r: r["date"], reverse=True)
    return records
