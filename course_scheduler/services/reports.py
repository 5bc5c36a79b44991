"""
Read-only scheduling overviews: who can teach a slot, and school-wide totals.
"""

from typing import List, Optional

from course_scheduler.core.errors import ValidationError
from course_scheduler.schemas.records import AvailabilityStatus, TenantScope
from course_scheduler.stores.base import CatalogAdapter

DASHBOARD_FIELDS = (
    "total_courses",
    "total_subjects",
    "total_course_periods",
    "total_students_enrolled",
    "total_seats",
    "total_filled",
)


def get_teachers_for_slot(
    catalog: CatalogAdapter,
    scope: TenantScope,
    academic_year_id: str,
    day_of_week: int,
    period_id: str,
    campus_id: Optional[str] = None,
) -> List[dict]:
    """Every active teacher with ``available`` or ``unavailable`` for one weekly slot."""
    if not 0 <= day_of_week <= 6:
        raise ValidationError("day_of_week must be between 0 (Monday) and 6 (Sunday)")

    unavailable = catalog.list_unavailable_teacher_ids(scope.school_id, academic_year_id, day_of_week, period_id)
    return [
        {
            "teacher_id": teacher_id,
            "status": (
                AvailabilityStatus.UNAVAILABLE if teacher_id in unavailable else AvailabilityStatus.AVAILABLE
            ).value,
        }
        for teacher_id in catalog.list_active_teacher_ids(scope.school_id, campus_id or scope.campus_id)
    ]


def get_dashboard_stats(
    catalog: CatalogAdapter,
    scope: TenantScope,
    academic_year_id: str,
    marking_period_id: Optional[str] = None,
) -> dict:
    row = catalog.get_dashboard_stats(scope.school_id, academic_year_id, marking_period_id) or {}
    return {field: int(row.get(field) or 0) for field in DASHBOARD_FIELDS}
