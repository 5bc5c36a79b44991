"""
Supabase (PostgREST) implementations of the catalog and record store.

Every query goes through ``_run`` so that PostgREST and transport failures
surface as ``InfrastructureError`` instead of leaking client exceptions.
"""

from typing import List, Optional, Set

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from course_scheduler.core.app_logger import get_logger
from course_scheduler.core.errors import InfrastructureError
from course_scheduler.schemas.records import (
    CoursePeriod,
    ScheduleRequest,
    StudentSchedule,
    TeacherAvailability,
    TimetableEntry,
    TimetableTemplate,
)
from course_scheduler.stores.base import CatalogAdapter, RecordStore

logger = get_logger("stores.supabase")

COURSE_PERIOD_COLUMNS = (
    "id, course_id, title, teacher_id, section_id, period_id, room_id, days, "
    "marking_period_id, total_seats, filled_seats, gender_restriction, is_active, "
    "course:courses(title), period:periods(period_name)"
)

SCHEDULE_COLUMNS = (
    "*, "
    "student:students(id, profile:profiles!students_profile_id_fkey(first_name, last_name)), "
    "course:courses(id, title), "
    "course_period:course_periods(id, title)"
)


def _run(query, action: str):
    try:
        result = query.execute()
    except (APIError, httpx.HTTPError) as e:
        logger.error("Supabase %s failed: %s", action, e)
        raise InfrastructureError(f"Failed to {action}: {e}") from e
    return result


def _rows(result) -> list:
    return (result.data or []) if result is not None else []


def _first(result) -> Optional[dict]:
    if result is None or not result.data:
        return None
    return result.data[0] if isinstance(result.data, list) else result.data


def _course_period_from_row(row: dict) -> CoursePeriod:
    course = row.get("course") or {}
    period = row.get("period") or {}
    return CoursePeriod.model_validate({
        **row,
        "course_title": course.get("title"),
        "period_title": period.get("period_name"),
    })


def _schedule_from_row(row: dict) -> StudentSchedule:
    student = row.get("student") or {}
    profile = student.get("profile") or {}
    course = row.get("course") or {}
    course_period = row.get("course_period") or {}
    student_name = None
    if profile:
        student_name = f"{profile.get('last_name', '')}, {profile.get('first_name', '')}"
    return StudentSchedule.model_validate({
        **row,
        "student_name": student_name,
        "course_title": course.get("title"),
        "course_period_title": course_period.get("title"),
    })


class SupabaseCatalog(CatalogAdapter):
    def __init__(self, db: Client):
        self.db = db

    def resolve_school_id(self, school_id: str) -> str:
        school = _first(_run(
            self.db.table("schools").select("id, parent_school_id").eq("id", school_id).limit(1),
            "look up school",
        ))
        if school and school.get("parent_school_id"):
            return school["parent_school_id"]
        return school_id

    def get_course_period(self, course_period_id: str) -> Optional[CoursePeriod]:
        row = _first(_run(
            self.db.table("course_periods").select(COURSE_PERIOD_COLUMNS).eq("id", course_period_id).limit(1),
            "load course period",
        ))
        return _course_period_from_row(row) if row else None

    def list_course_periods(
        self, course_id: str, marking_period_id: Optional[str] = None
    ) -> List[CoursePeriod]:
        query = (
            self.db.table("course_periods")
            .select(COURSE_PERIOD_COLUMNS)
            .eq("course_id", course_id)
            .eq("is_active", True)
            .order("created_at")
            .order("id")
        )
        if marking_period_id:
            query = query.or_(f"marking_period_id.eq.{marking_period_id},marking_period_id.is.null")
        return [_course_period_from_row(r) for r in _rows(_run(query, "list course periods"))]

    def get_student_gender(self, student_id: str) -> Optional[str]:
        student = _first(_run(
            self.db.table("students")
            .select("profile:profiles!students_profile_id_fkey(gender)")
            .eq("id", student_id)
            .limit(1),
            "look up student gender",
        ))
        if not student:
            return None
        return (student.get("profile") or {}).get("gender")

    def get_section(self, section_id: str) -> Optional[dict]:
        return _first(_run(
            self.db.table("sections").select("id, name, grade_level_id").eq("id", section_id).limit(1),
            "load section",
        ))

    def list_section_timetable(
        self, section_id: str, academic_year_id: str
    ) -> List[TimetableEntry]:
        result = _run(
            self.db.table("timetable_entries")
            .select("section_id, academic_year_id, subject_id, teacher_id, period_id, day_of_week, room_id, is_active")
            .eq("section_id", section_id)
            .eq("academic_year_id", academic_year_id)
            .eq("is_active", True)
            .order("day_of_week"),
            "load section timetable",
        )
        return [TimetableEntry.model_validate(r) for r in _rows(result)]

    def list_teacher_availability(
        self, teacher_id: str, academic_year_id: str
    ) -> List[TeacherAvailability]:
        result = _run(
            self.db.table("teacher_availability")
            .select("*")
            .eq("teacher_id", teacher_id)
            .eq("academic_year_id", academic_year_id)
            .order("day_of_week"),
            "load teacher availability",
        )
        return [TeacherAvailability.model_validate(r) for r in _rows(result)]

    def list_active_teacher_ids(self, school_id: str, campus_id: Optional[str] = None) -> List[str]:
        query = (
            self.db.table("staff")
            .select("id")
            .eq("school_id", school_id)
            .eq("is_active", True)
            .order("id")
        )
        if campus_id:
            query = query.or_(f"campus_id.eq.{campus_id},campus_id.is.null")
        return [r["id"] for r in _rows(_run(query, "list teachers"))]

    def list_unavailable_teacher_ids(
        self, school_id: str, academic_year_id: str, day_of_week: int, period_id: str
    ) -> Set[str]:
        result = _run(
            self.db.table("teacher_availability")
            .select("teacher_id")
            .eq("school_id", school_id)
            .eq("academic_year_id", academic_year_id)
            .eq("day_of_week", day_of_week)
            .eq("period_id", period_id)
            .eq("status", "unavailable"),
            "load teacher availability for slot",
        )
        return {r["teacher_id"] for r in _rows(result)}

    def get_dashboard_stats(
        self, school_id: str, academic_year_id: str, marking_period_id: Optional[str] = None
    ) -> Optional[dict]:
        result = _run(
            self.db.rpc("get_scheduling_dashboard_stats", {
                "p_school_id": school_id,
                "p_academic_year_id": academic_year_id,
                "p_marking_period_id": marking_period_id,
            }),
            "load scheduling dashboard stats",
        )
        return _first(result)

    def set_filled_seats(self, course_period_id: str, filled_seats: int) -> None:
        _run(
            self.db.table("course_periods").update({"filled_seats": filled_seats}).eq("id", course_period_id),
            "update filled seats",
        )


class SupabaseRecordStore(RecordStore):
    def __init__(self, db: Client):
        self.db = db

    # ---- schedule requests ----

    def list_requests(
        self,
        school_id: str,
        academic_year_id: str,
        student_id: Optional[str] = None,
        course_id: Optional[str] = None,
        status: Optional[str] = None,
        campus_id: Optional[str] = None,
    ) -> List[ScheduleRequest]:
        query = (
            self.db.table("schedule_requests")
            .select("*")
            .eq("school_id", school_id)
            .eq("academic_year_id", academic_year_id)
            .order("created_at")
            .order("id")
        )
        if student_id:
            query = query.eq("student_id", student_id)
        if course_id:
            query = query.eq("course_id", course_id)
        if status:
            query = query.eq("status", status)
        if campus_id:
            query = query.or_(f"campus_id.eq.{campus_id},campus_id.is.null")
        return [ScheduleRequest.model_validate(r) for r in _rows(_run(query, "list schedule requests"))]

    def get_request(self, request_id: str) -> Optional[ScheduleRequest]:
        row = _first(_run(
            self.db.table("schedule_requests").select("*").eq("id", request_id).limit(1),
            "load schedule request",
        ))
        return ScheduleRequest.model_validate(row) if row else None

    def insert_request(self, data: dict) -> ScheduleRequest:
        row = _first(_run(self.db.table("schedule_requests").insert(data), "create schedule request"))
        if not row:
            raise InfrastructureError("Failed to create schedule request: no row returned")
        return ScheduleRequest.model_validate(row)

    def update_request(self, request_id: str, changes: dict) -> Optional[ScheduleRequest]:
        row = _first(_run(
            self.db.table("schedule_requests").update(changes).eq("id", request_id),
            "update schedule request",
        ))
        return ScheduleRequest.model_validate(row) if row else None

    def delete_request(self, request_id: str) -> bool:
        result = _run(
            self.db.table("schedule_requests").delete().eq("id", request_id),
            "delete schedule request",
        )
        return bool(_rows(result))

    # ---- student schedules ----

    def list_active_schedules(
        self, student_id: str, academic_year_id: str
    ) -> List[StudentSchedule]:
        result = _run(
            self.db.table("student_schedules")
            .select(SCHEDULE_COLUMNS)
            .eq("student_id", student_id)
            .eq("academic_year_id", academic_year_id)
            .is_("end_date", "null")
            .order("created_at"),
            "load student schedule",
        )
        return [_schedule_from_row(r) for r in _rows(result)]

    def list_schedule_history(
        self, student_id: str, academic_year_id: str
    ) -> List[StudentSchedule]:
        result = _run(
            self.db.table("student_schedules")
            .select(SCHEDULE_COLUMNS)
            .eq("student_id", student_id)
            .eq("academic_year_id", academic_year_id)
            .order("start_date", desc=True),
            "load schedule history",
        )
        return [_schedule_from_row(r) for r in _rows(result)]

    def find_active_schedule(
        self, student_id: str, course_period_id: str
    ) -> Optional[StudentSchedule]:
        row = _first(_run(
            self.db.table("student_schedules")
            .select("*")
            .eq("student_id", student_id)
            .eq("course_period_id", course_period_id)
            .is_("end_date", "null")
            .limit(1),
            "check existing enrollment",
        ))
        return StudentSchedule.model_validate(row) if row else None

    def list_class_roster(self, course_period_id: str) -> List[StudentSchedule]:
        result = _run(
            self.db.table("student_schedules")
            .select(SCHEDULE_COLUMNS)
            .eq("course_period_id", course_period_id)
            .is_("end_date", "null")
            .order("created_at"),
            "load class list",
        )
        return [_schedule_from_row(r) for r in _rows(result)]

    def list_schedule_log(
        self,
        school_id: str,
        academic_year_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        campus_id: Optional[str] = None,
        limit: int = 500,
    ) -> List[StudentSchedule]:
        query = (
            self.db.table("student_schedules")
            .select(SCHEDULE_COLUMNS)
            .eq("school_id", school_id)
            .eq("academic_year_id", academic_year_id)
            .order("created_at", desc=True)
            .limit(limit)
        )
        if campus_id:
            query = query.or_(f"campus_id.eq.{campus_id},campus_id.is.null")
        if start_date:
            query = query.gte("start_date", start_date)
        if end_date:
            query = query.lte("start_date", end_date)
        return [_schedule_from_row(r) for r in _rows(_run(query, "load add/drop log"))]

    def insert_schedule(self, data: dict) -> StudentSchedule:
        row = _first(_run(self.db.table("student_schedules").insert(data), "enroll student"))
        if not row:
            raise InfrastructureError("Failed to enroll student: no row returned")
        return StudentSchedule.model_validate(row)

    def end_schedule(self, schedule_id: str, end_date: str) -> StudentSchedule:
        row = _first(_run(
            self.db.table("student_schedules").update({"end_date": end_date}).eq("id", schedule_id),
            "drop student",
        ))
        if not row:
            raise InfrastructureError("Failed to drop student: no row returned")
        return StudentSchedule.model_validate(row)

    def delete_schedule(self, schedule_id: str) -> None:
        _run(self.db.table("student_schedules").delete().eq("id", schedule_id), "roll back enrollment")

    def count_active_enrollments(
        self, course_period_id: str, marking_period_id: Optional[str] = None
    ) -> int:
        query = (
            self.db.table("student_schedules")
            .select("id", count="exact")
            .eq("course_period_id", course_period_id)
            .is_("end_date", "null")
        )
        if marking_period_id:
            query = query.or_(f"marking_period_id.eq.{marking_period_id},marking_period_id.is.null")
        result = _run(query, "count enrollments")
        return result.count if result.count is not None else len(_rows(result))

    # ---- timetable templates ----

    def list_templates(
        self, school_id: str, campus_id: Optional[str] = None
    ) -> List[TimetableTemplate]:
        query = (
            self.db.table("timetable_templates")
            .select("*, entries:timetable_template_entries(subject_id, period_id, day_of_week, room_id, teacher_id)")
            .eq("school_id", school_id)
            .order("name")
        )
        if campus_id:
            query = query.or_(f"campus_id.eq.{campus_id},campus_id.is.null")
        return [TimetableTemplate.model_validate(r) for r in _rows(_run(query, "list templates"))]

    def get_template(self, template_id: str) -> Optional[TimetableTemplate]:
        row = _first(_run(
            self.db.table("timetable_templates")
            .select("*, entries:timetable_template_entries(subject_id, period_id, day_of_week, room_id, teacher_id)")
            .eq("id", template_id)
            .limit(1),
            "load template",
        ))
        return TimetableTemplate.model_validate(row) if row else None

    def insert_template(self, data: dict, entries: List[dict]) -> TimetableTemplate:
        row = _first(_run(self.db.table("timetable_templates").insert(data), "create template"))
        if not row:
            raise InfrastructureError("Failed to create template: no row returned")
        if entries:
            records = [{**e, "template_id": row["id"]} for e in entries]
            _run(self.db.table("timetable_template_entries").insert(records), "create template entries")
        return TimetableTemplate.model_validate({**row, "entries": entries})

    def delete_template(self, template_id: str) -> bool:
        result = _run(self.db.table("timetable_templates").delete().eq("id", template_id), "delete template")
        return bool(_rows(result))

    def clear_section_timetable(self, section_id: str, academic_year_id: str) -> None:
        _run(
            self.db.table("timetable_entries")
            .delete()
            .eq("section_id", section_id)
            .eq("academic_year_id", academic_year_id),
            "clear section timetable",
        )

    def insert_timetable_entries(self, rows: List[dict]) -> int:
        result = _run(self.db.table("timetable_entries").insert(rows), "create timetable entries")
        return len(_rows(result))
