"""
Pydantic schemas for schedule requests, the auto-scheduler, enrollment and
timetable templates.
"""

from pydantic import BaseModel
from typing import Optional, List

from course_scheduler.schemas.records import RequestStatus


# ---- Schedule Requests ----
class ScheduleRequestCreate(BaseModel):
    student_id: str
    course_id: str
    academic_year_id: str
    subject_id: Optional[str] = None
    marking_period_id: Optional[str] = None
    with_teacher_id: Optional[str] = None
    not_teacher_id: Optional[str] = None
    with_period_id: Optional[str] = None
    not_period_id: Optional[str] = None
    priority: int = 0
    campus_id: Optional[str] = None


class ScheduleRequestUpdate(BaseModel):
    with_teacher_id: Optional[str] = None
    not_teacher_id: Optional[str] = None
    with_period_id: Optional[str] = None
    not_period_id: Optional[str] = None
    priority: Optional[int] = None
    status: Optional[RequestStatus] = None


class ScheduleRequestMassCreate(BaseModel):
    student_ids: List[str]
    course_id: str
    academic_year_id: str
    marking_period_id: Optional[str] = None
    campus_id: Optional[str] = None
    priority: int = 0


# ---- Auto-Scheduler ----
class SchedulerRunOptions(BaseModel):
    academic_year_id: str
    campus_id: Optional[str] = None
    marking_period_id: Optional[str] = None
    course_id: Optional[str] = None
    respect_teacher_availability: bool = True
    respect_room_capacity: bool = True
    respect_gender_restrictions: bool = True
    use_priority_ordering: bool = True
    strict_preferences: Optional[bool] = None  # None = settings default


class SchedulerCancel(BaseModel):
    academic_year_id: str
    course_id: Optional[str] = None


# ---- Enrollment ----
class EnrollStudent(BaseModel):
    student_id: str
    course_id: str
    course_period_id: str
    academic_year_id: str
    marking_period_id: Optional[str] = None
    start_date: Optional[str] = None  # defaults to today
    campus_id: Optional[str] = None


class DropStudent(BaseModel):
    student_id: str
    course_period_id: str
    end_date: Optional[str] = None  # defaults to today


class MassEnroll(BaseModel):
    student_ids: List[str]
    course_id: str
    course_period_id: str
    academic_year_id: str
    marking_period_id: Optional[str] = None
    start_date: Optional[str] = None
    campus_id: Optional[str] = None


class MassDrop(BaseModel):
    student_ids: List[str]
    course_period_id: str
    end_date: Optional[str] = None


# ---- Timetable Templates ----
class TemplateEntryCreate(BaseModel):
    day_of_week: int  # 0=Mon ... 6=Sun
    subject_id: Optional[str] = None
    period_id: Optional[str] = None
    room_id: Optional[str] = None
    teacher_id: Optional[str] = None


class TemplateCreate(BaseModel):
    name: str
    description: Optional[str] = None
    grade_level_id: Optional[str] = None
    campus_id: Optional[str] = None
    entries: List[TemplateEntryCreate] = []


class TemplateFromSection(BaseModel):
    name: str
    section_id: str
    academic_year_id: str
    description: Optional[str] = None
    campus_id: Optional[str] = None


class TemplateApply(BaseModel):
    template_id: str
    section_id: str
    academic_year_id: str
    clear_existing: bool = False
