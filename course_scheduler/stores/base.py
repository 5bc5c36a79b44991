"""
Narrow data-access interfaces used by the scheduling core.

``CatalogAdapter`` covers everything owned by the rest of the school system
(course periods, sections, timetable, teacher availability, student
profiles). It is read-only apart from ``set_filled_seats``, which only the
seat recompute routine calls.

``RecordStore`` persists what the scheduling core owns: schedule requests,
student schedules and timetable templates.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Set

from course_scheduler.schemas.records import (
    CoursePeriod,
    ScheduleRequest,
    Slot,
    StudentSchedule,
    TeacherAvailability,
    TimetableEntry,
    TimetableTemplate,
)


class CatalogAdapter(ABC):
    @abstractmethod
    def resolve_school_id(self, school_id: str) -> str:
        """Return the main school for a campus (or the school itself)."""

    @abstractmethod
    def get_course_period(self, course_period_id: str) -> Optional[CoursePeriod]:
        ...

    @abstractmethod
    def list_course_periods(
        self, course_id: str, marking_period_id: Optional[str] = None
    ) -> List[CoursePeriod]:
        """Active course periods of a course, in a stable order.

        With a marking period, only course periods in that marking period or
        in none are returned.
        """

    @abstractmethod
    def get_student_gender(self, student_id: str) -> Optional[str]:
        ...

    @abstractmethod
    def get_section(self, section_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def list_section_timetable(
        self, section_id: str, academic_year_id: str
    ) -> List[TimetableEntry]:
        ...

    @abstractmethod
    def list_teacher_availability(
        self, teacher_id: str, academic_year_id: str
    ) -> List[TeacherAvailability]:
        ...

    def get_unavailable_slots(self, teacher_id: str, academic_year_id: str) -> Set[Slot]:
        return {
            Slot(a.day_of_week, a.period_id)
            for a in self.list_teacher_availability(teacher_id, academic_year_id)
            if a.status == "unavailable"
        }

    @abstractmethod
    def list_active_teacher_ids(self, school_id: str, campus_id: Optional[str] = None) -> List[str]:
        """Active staff of the school; ``campus_id`` also matches campus-less staff."""

    @abstractmethod
    def list_unavailable_teacher_ids(
        self, school_id: str, academic_year_id: str, day_of_week: int, period_id: str
    ) -> Set[str]:
        ...

    @abstractmethod
    def get_dashboard_stats(
        self, school_id: str, academic_year_id: str, marking_period_id: Optional[str] = None
    ) -> Optional[dict]:
        """Raw totals row: courses, subjects, course periods, enrolled students, seats."""

    @abstractmethod
    def set_filled_seats(self, course_period_id: str, filled_seats: int) -> None:
        ...


class RecordStore(ABC):
    # ---- schedule requests ----
    @abstractmethod
    def list_requests(
        self,
        school_id: str,
        academic_year_id: str,
        student_id: Optional[str] = None,
        course_id: Optional[str] = None,
        status: Optional[str] = None,
        campus_id: Optional[str] = None,
    ) -> List[ScheduleRequest]:
        """Requests in creation order. ``campus_id`` also matches campus-less rows."""

    @abstractmethod
    def get_request(self, request_id: str) -> Optional[ScheduleRequest]:
        ...

    @abstractmethod
    def insert_request(self, data: dict) -> ScheduleRequest:
        ...

    @abstractmethod
    def update_request(self, request_id: str, changes: dict) -> Optional[ScheduleRequest]:
        ...

    @abstractmethod
    def delete_request(self, request_id: str) -> bool:
        ...

    # ---- student schedules ----
    @abstractmethod
    def list_active_schedules(
        self, student_id: str, academic_year_id: str
    ) -> List[StudentSchedule]:
        ...

    @abstractmethod
    def list_schedule_history(
        self, student_id: str, academic_year_id: str
    ) -> List[StudentSchedule]:
        """All rows including dropped ones, newest start_date first."""

    @abstractmethod
    def find_active_schedule(
        self, student_id: str, course_period_id: str
    ) -> Optional[StudentSchedule]:
        ...

    @abstractmethod
    def list_class_roster(self, course_period_id: str) -> List[StudentSchedule]:
        ...

    @abstractmethod
    def list_schedule_log(
        self,
        school_id: str,
        academic_year_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        campus_id: Optional[str] = None,
        limit: int = 500,
    ) -> List[StudentSchedule]:
        """Rows whose start_date falls in the range, newest first."""

    @abstractmethod
    def insert_schedule(self, data: dict) -> StudentSchedule:
        ...

    @abstractmethod
    def end_schedule(self, schedule_id: str, end_date: str) -> StudentSchedule:
        ...

    @abstractmethod
    def delete_schedule(self, schedule_id: str) -> None:
        ...

    @abstractmethod
    def count_active_enrollments(
        self, course_period_id: str, marking_period_id: Optional[str] = None
    ) -> int:
        """Active rows of a course period; with a marking period, rows in it or in none."""

    # ---- timetable templates ----
    @abstractmethod
    def list_templates(
        self, school_id: str, campus_id: Optional[str] = None
    ) -> List[TimetableTemplate]:
        ...

    @abstractmethod
    def get_template(self, template_id: str) -> Optional[TimetableTemplate]:
        ...

    @abstractmethod
    def insert_template(self, data: dict, entries: List[dict]) -> TimetableTemplate:
        ...

    @abstractmethod
    def delete_template(self, template_id: str) -> bool:
        ...

    @abstractmethod
    def clear_section_timetable(self, section_id: str, academic_year_id: str) -> None:
        ...

    @abstractmethod
    def insert_timetable_entries(self, rows: List[dict]) -> int:
        ...
