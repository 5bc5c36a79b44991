"""
In-memory CatalogAdapter / RecordStore used by the test suite.

``fail_on`` holds method names that should raise InfrastructureError, to
exercise the infrastructure-failure paths.
"""

import itertools
from typing import List, Optional

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


class _Failing:
    def __init__(self):
        self.fail_on = set()

    def _check(self, name):
        if name in self.fail_on:
            raise InfrastructureError(f"Failed to {name}: connection refused")


class InMemoryCatalog(_Failing, CatalogAdapter):
    def __init__(self):
        super().__init__()
        self.parent_schools = {}
        self.course_periods = {}
        self.genders = {}
        self.sections = {}
        self.timetable: List[TimetableEntry] = []
        self.availability: List[TeacherAvailability] = []
        self.seat_writes = []
        self.teachers = {}  # teacher_id -> campus_id
        self.dashboard_row = None

    # ---- test helpers ----

    def add_course_period(self, id, course_id="course-1", **fields) -> CoursePeriod:
        cp = CoursePeriod(id=id, course_id=course_id, **fields)
        self.course_periods[id] = cp
        return cp

    def add_timetable(self, section_id, academic_year_id, day_of_week, period_id, **fields):
        self.timetable.append(TimetableEntry(
            section_id=section_id, academic_year_id=academic_year_id,
            day_of_week=day_of_week, period_id=period_id, **fields,
        ))

    def set_availability(self, teacher_id, academic_year_id, day_of_week, period_id, status):
        self.availability.append(TeacherAvailability(
            teacher_id=teacher_id, academic_year_id=academic_year_id,
            day_of_week=day_of_week, period_id=period_id, status=status,
        ))

    def filled(self, course_period_id) -> int:
        return self.course_periods[course_period_id].filled_seats

    # ---- CatalogAdapter ----

    def resolve_school_id(self, school_id: str) -> str:
        self._check("resolve_school_id")
        return self.parent_schools.get(school_id, school_id)

    def get_course_period(self, course_period_id: str) -> Optional[CoursePeriod]:
        self._check("get_course_period")
        cp = self.course_periods.get(course_period_id)
        return cp.model_copy() if cp else None

    def list_course_periods(self, course_id, marking_period_id=None):
        self._check("list_course_periods")
        return [
            cp.model_copy() for cp in self.course_periods.values()
            if cp.course_id == course_id
            and cp.is_active
            and (marking_period_id is None or cp.marking_period_id in (None, marking_period_id))
        ]

    def get_student_gender(self, student_id):
        self._check("get_student_gender")
        return self.genders.get(student_id)

    def get_section(self, section_id):
        return self.sections.get(section_id)

    def list_section_timetable(self, section_id, academic_year_id):
        return [
            e for e in self.timetable
            if e.section_id == section_id and e.academic_year_id == academic_year_id and e.is_active
        ]

    def list_teacher_availability(self, teacher_id, academic_year_id):
        return [
            a for a in self.availability
            if a.teacher_id == teacher_id and a.academic_year_id == academic_year_id
        ]

    def list_active_teacher_ids(self, school_id, campus_id=None):
        return [
            teacher_id for teacher_id, teacher_campus in self.teachers.items()
            if not campus_id or teacher_campus in (None, campus_id)
        ]

    def list_unavailable_teacher_ids(self, school_id, academic_year_id, day_of_week, period_id):
        return {
            a.teacher_id for a in self.availability
            if a.academic_year_id == academic_year_id
            and a.day_of_week == day_of_week
            and a.period_id == period_id
            and a.status == "unavailable"
        }

    def get_dashboard_stats(self, school_id, academic_year_id, marking_period_id=None):
        self._check("get_dashboard_stats")
        return self.dashboard_row

    def set_filled_seats(self, course_period_id, filled_seats):
        self._check("set_filled_seats")
        cp = self.course_periods[course_period_id]
        self.course_periods[course_period_id] = cp.model_copy(update={"filled_seats": filled_seats})
        self.seat_writes.append((course_period_id, filled_seats))


class InMemoryRecordStore(_Failing, RecordStore):
    def __init__(self, catalog: Optional[InMemoryCatalog] = None):
        super().__init__()
        self.catalog = catalog
        self.requests = {}
        self.schedules = {}
        self.templates = {}
        self._ids = itertools.count(1)

    def _next(self, prefix):
        n = next(self._ids)
        return f"{prefix}-{n}", f"2026-09-01T08:{n // 60:02d}:{n % 60:02d}"

    # ---- schedule requests ----

    def list_requests(self, school_id, academic_year_id, student_id=None, course_id=None, status=None, campus_id=None):
        self._check("list_requests")
        rows = [r for r in self.requests.values() if r.school_id == school_id and r.academic_year_id == academic_year_id]
        if student_id:
            rows = [r for r in rows if r.student_id == student_id]
        if course_id:
            rows = [r for r in rows if r.course_id == course_id]
        if status:
            rows = [r for r in rows if r.status == status]
        if campus_id:
            rows = [r for r in rows if r.campus_id in (None, campus_id)]
        return rows

    def get_request(self, request_id):
        return self.requests.get(request_id)

    def insert_request(self, data):
        self._check("insert_request")
        request_id, created_at = self._next("req")
        request = ScheduleRequest.model_validate({**data, "id": request_id, "created_at": created_at})
        self.requests[request_id] = request
        return request

    def update_request(self, request_id, changes):
        self._check("update_request")
        current = self.requests.get(request_id)
        if current is None:
            return None
        updated = ScheduleRequest.model_validate({**current.model_dump(), **changes})
        self.requests[request_id] = updated
        return updated

    def delete_request(self, request_id):
        return self.requests.pop(request_id, None) is not None

    # ---- student schedules ----

    def _active(self):
        return [s for s in self.schedules.values() if s.end_date is None]

    def list_active_schedules(self, student_id, academic_year_id):
        return [s for s in self._active() if s.student_id == student_id and s.academic_year_id == academic_year_id]

    def list_schedule_history(self, student_id, academic_year_id):
        rows = [s for s in self.schedules.values() if s.student_id == student_id and s.academic_year_id == academic_year_id]
        return sorted(rows, key=lambda s: s.start_date, reverse=True)

    def find_active_schedule(self, student_id, course_period_id):
        for s in self._active():
            if s.student_id == student_id and s.course_period_id == course_period_id:
                return s
        return None

    def list_class_roster(self, course_period_id):
        return [s for s in self._active() if s.course_period_id == course_period_id]

    def list_schedule_log(self, school_id, academic_year_id, start_date=None, end_date=None, campus_id=None, limit=500):
        rows = [s for s in self.schedules.values() if s.school_id == school_id and s.academic_year_id == academic_year_id]
        if campus_id:
            rows = [s for s in rows if s.campus_id in (None, campus_id)]
        if start_date:
            rows = [s for s in rows if s.start_date >= start_date]
        if end_date:
            rows = [s for s in rows if s.start_date <= end_date]
        return sorted(rows, key=lambda s: s.created_at, reverse=True)[:limit]

    def insert_schedule(self, data):
        self._check("insert_schedule")
        schedule_id, created_at = self._next("sched")
        schedule = StudentSchedule.model_validate({**data, "id": schedule_id, "created_at": created_at})
        self.schedules[schedule_id] = schedule
        return schedule

    def end_schedule(self, schedule_id, end_date):
        schedule = self.schedules[schedule_id].model_copy(update={"end_date": end_date})
        self.schedules[schedule_id] = schedule
        return schedule

    def delete_schedule(self, schedule_id):
        self.schedules.pop(schedule_id, None)

    def count_active_enrollments(self, course_period_id, marking_period_id=None):
        return sum(
            1 for s in self._active()
            if s.course_period_id == course_period_id
            and (marking_period_id is None or s.marking_period_id in (None, marking_period_id))
        )

    # ---- timetable templates ----

    def list_templates(self, school_id, campus_id=None):
        rows = [t for t in self.templates.values() if t.school_id == school_id]
        if campus_id:
            rows = [t for t in rows if t.campus_id in (None, campus_id)]
        return sorted(rows, key=lambda t: t.name)

    def get_template(self, template_id):
        return self.templates.get(template_id)

    def insert_template(self, data, entries):
        template_id, _ = self._next("tpl")
        template = TimetableTemplate.model_validate({**data, "id": template_id, "entries": entries})
        self.templates[template_id] = template
        return template

    def delete_template(self, template_id):
        return self.templates.pop(template_id, None) is not None

    def clear_section_timetable(self, section_id, academic_year_id):
        self.catalog.timetable = [
            e for e in self.catalog.timetable
            if not (e.section_id == section_id and e.academic_year_id == academic_year_id)
        ]

    def insert_timetable_entries(self, rows):
        for row in rows:
            self.catalog.timetable.append(TimetableEntry.model_validate(row))
        return len(rows)
