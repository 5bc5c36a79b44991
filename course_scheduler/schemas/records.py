"""
Domain records shared by the stores and the scheduling services.

Rows coming back from Supabase carry more columns than we need; every record
ignores unknown keys so a ``select("*")`` row can be validated directly.
"""

import math
from enum import Enum
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict


class Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TenantScope(BaseModel):
    school_id: str
    campus_id: Optional[str] = None


class RequestStatus(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    UNFILLED = "unfilled"
    CANCELLED = "cancelled"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    PREFERRED = "preferred"


class Slot(NamedTuple):
    day_of_week: int  # 0=Mon ... 6=Sun
    period_id: str


# Day letters used in course_periods.days; Thursday is R ("H" is accepted too)
DAY_LETTERS = {"M": 0, "T": 1, "W": 2, "R": 3, "H": 3, "F": 4, "S": 5, "U": 6}


class ScheduleRequest(Record):
    id: str
    school_id: str
    campus_id: Optional[str] = None
    student_id: str
    course_id: str
    subject_id: Optional[str] = None
    academic_year_id: str
    marking_period_id: Optional[str] = None
    with_teacher_id: Optional[str] = None
    not_teacher_id: Optional[str] = None
    with_period_id: Optional[str] = None
    not_period_id: Optional[str] = None
    priority: int = 0
    status: RequestStatus = RequestStatus.PENDING
    fulfilled_course_period_id: Optional[str] = None
    requested_by: Optional[str] = None
    created_at: Optional[str] = None


class CoursePeriod(Record):
    id: str
    course_id: str
    title: Optional[str] = None
    course_title: Optional[str] = None
    teacher_id: Optional[str] = None
    section_id: Optional[str] = None
    period_id: Optional[str] = None
    period_title: Optional[str] = None
    room_id: Optional[str] = None
    days: Optional[str] = None
    marking_period_id: Optional[str] = None
    total_seats: Optional[int] = None
    filled_seats: int = 0
    gender_restriction: Optional[str] = "N"
    is_active: bool = True

    @property
    def remaining_seats(self) -> float:
        if self.total_seats is None:
            return math.inf
        return self.total_seats - self.filled_seats

    @property
    def is_full(self) -> bool:
        return self.total_seats is not None and self.filled_seats >= self.total_seats

    @property
    def display_title(self) -> str:
        return self.course_title or self.title or self.id

    def day_numbers(self) -> List[int]:
        if not self.days:
            return []
        return sorted({DAY_LETTERS[c] for c in self.days.upper() if c in DAY_LETTERS})


class StudentSchedule(Record):
    id: str
    school_id: Optional[str] = None
    campus_id: Optional[str] = None
    student_id: str
    course_id: str
    course_period_id: str
    academic_year_id: str
    marking_period_id: Optional[str] = None
    start_date: str
    end_date: Optional[str] = None
    scheduler_lock: bool = False
    enrolled_by: Optional[str] = None
    created_at: Optional[str] = None
    # Display fields filled from joins where the store has them
    student_name: Optional[str] = None
    course_title: Optional[str] = None
    course_period_title: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.end_date is None


class TimetableEntry(Record):
    section_id: str
    academic_year_id: str
    day_of_week: int
    period_id: Optional[str] = None
    subject_id: Optional[str] = None
    teacher_id: Optional[str] = None
    room_id: Optional[str] = None
    is_active: bool = True


class TeacherAvailability(Record):
    teacher_id: str
    academic_year_id: str
    day_of_week: int
    period_id: str
    status: AvailabilityStatus
    reason: Optional[str] = None


class TemplateEntry(Record):
    subject_id: Optional[str] = None
    period_id: Optional[str] = None
    day_of_week: int
    room_id: Optional[str] = None
    teacher_id: Optional[str] = None


class TimetableTemplate(Record):
    id: str
    school_id: str
    campus_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    grade_level_id: Optional[str] = None
    created_by: Optional[str] = None
    entries: List[TemplateEntry] = []


class ScheduleConflict(Record):
    conflicting_schedule_id: str
    conflicting_course_period_id: str
    conflicting_course_title: str
    conflicting_period_title: str
    conflicting_day_of_week: int

    def describe(self) -> str:
        return (
            f"{self.conflicting_course_title} "
            f"(Day {self.conflicting_day_of_week}, {self.conflicting_period_title})"
        )


class SchedulerDetail(BaseModel):
    request_id: str
    student_id: str
    course_id: str
    status: RequestStatus
    course_period_id: Optional[str] = None
    reason: Optional[str] = None


class SchedulerResult(BaseModel):
    total_requests: int = 0
    fulfilled: int = 0
    unfilled: int = 0
    cancelled: bool = False
    errors: List[str] = []
    details: List[SchedulerDetail] = []
