"""
Scheduling router: individual enrollment, drops, class lists, conflicts and
teacher availability lookups.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from course_scheduler.core.database import get_catalog, get_record_store
from course_scheduler.core.middleware import tenant_scope
from course_scheduler.core.security import require_role
from course_scheduler.schemas.records import TenantScope
from course_scheduler.schemas.scheduling import DropStudent, EnrollStudent, MassDrop, MassEnroll
from course_scheduler.services import enrollment, reports
from course_scheduler.services.conflicts import check_conflicts
from course_scheduler.stores.base import CatalogAdapter, RecordStore
from course_scheduler.utils.response import success_response

router = APIRouter(prefix="/api/scheduling", tags=["Scheduling"])

ADMIN_ROLES = ["admin", "super_admin"]
STAFF_ROLES = ["admin", "super_admin", "teacher"]


# ═══════════════════════════════════════════════════════════
# ENROLL / DROP
# ═══════════════════════════════════════════════════════════

@router.post("/enroll", status_code=201)
async def enroll_student(
    body: EnrollStudent,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    catalog: CatalogAdapter = Depends(get_catalog),
    store: RecordStore = Depends(get_record_store),
):
    result = enrollment.enroll(catalog, store, scope, body, user.get("user_id"))
    return success_response(data=result, message="Student enrolled")


@router.post("/drop")
async def drop_student(
    body: DropStudent,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    catalog: CatalogAdapter = Depends(get_catalog),
    store: RecordStore = Depends(get_record_store),
):
    result = enrollment.drop(catalog, store, body)
    return success_response(data=result, message="Student dropped")


@router.post("/mass-enroll")
async def mass_enroll(
    body: MassEnroll,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    catalog: CatalogAdapter = Depends(get_catalog),
    store: RecordStore = Depends(get_record_store),
):
    result = enrollment.mass_enroll(catalog, store, scope, body, user.get("user_id"))
    return success_response(
        data=result,
        message=f"Enrolled {result['enrolled']} students, {len(result['errors'])} errors",
    )


@router.post("/mass-drop")
async def mass_drop(
    body: MassDrop,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    catalog: CatalogAdapter = Depends(get_catalog),
    store: RecordStore = Depends(get_record_store),
):
    result = enrollment.mass_drop(catalog, store, body)
    return success_response(
        data=result,
        message=f"Dropped {result['dropped']} students, {len(result['errors'])} errors",
    )


# ═══════════════════════════════════════════════════════════
# SCHEDULE QUERIES
# ═══════════════════════════════════════════════════════════

@router.get("/students/{student_id}/schedule")
async def get_student_schedule(
    student_id: str,
    academic_year_id: str,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_record_store),
):
    return success_response(data=enrollment.get_student_schedule(store, student_id, academic_year_id))


@router.get("/students/{student_id}/history")
async def get_student_schedule_history(
    student_id: str,
    academic_year_id: str,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_record_store),
):
    return success_response(data=enrollment.get_schedule_history(store, student_id, academic_year_id))


@router.get("/course-periods/{course_period_id}/class-list")
async def get_class_list(
    course_period_id: str,
    user: dict = Depends(require_role(STAFF_ROLES)),
    catalog: CatalogAdapter = Depends(get_catalog),
    store: RecordStore = Depends(get_record_store),
):
    return success_response(data=enrollment.get_class_list(catalog, store, course_period_id))


@router.get("/conflicts")
async def get_conflicts(
    student_id: str,
    course_period_id: str,
    academic_year_id: str,
    start_date: Optional[str] = None,
    user: dict = Depends(require_role(STAFF_ROLES)),
    catalog: CatalogAdapter = Depends(get_catalog),
    store: RecordStore = Depends(get_record_store),
):
    conflicts = check_conflicts(catalog, store, student_id, course_period_id, academic_year_id, start_date)
    return success_response(data=conflicts)


@router.get("/add-drop-log")
async def get_add_drop_log(
    academic_year_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    campus_id: Optional[str] = None,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    store: RecordStore = Depends(get_record_store),
):
    records = enrollment.get_add_drop_log(store, scope, academic_year_id, start_date, end_date, campus_id)
    return success_response(data=records)


# ═══════════════════════════════════════════════════════════
# TEACHER AVAILABILITY
# ═══════════════════════════════════════════════════════════

@router.get("/teachers/{teacher_id}/availability")
async def get_teacher_availability(
    teacher_id: str,
    academic_year_id: str,
    user: dict = Depends(require_role(STAFF_ROLES)),
    catalog: CatalogAdapter = Depends(get_catalog),
):
    return success_response(data=catalog.list_teacher_availability(teacher_id, academic_year_id))


@router.get("/teachers/slot-availability")
async def get_teachers_for_slot(
    academic_year_id: str,
    day_of_week: int,
    period_id: str,
    campus_id: Optional[str] = None,
    user: dict = Depends(require_role(STAFF_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    catalog: CatalogAdapter = Depends(get_catalog),
):
    teachers = reports.get_teachers_for_slot(catalog, scope, academic_year_id, day_of_week, period_id, campus_id)
    return success_response(data=teachers)


# ═══════════════════════════════════════════════════════════
# DASHBOARD
# ═══════════════════════════════════════════════════════════

@router.get("/dashboard")
async def get_dashboard_stats(
    academic_year_id: str,
    marking_period_id: Optional[str] = None,
    user: dict = Depends(require_role(STAFF_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    catalog: CatalogAdapter = Depends(get_catalog),
):
    return success_response(data=reports.get_dashboard_stats(catalog, scope, academic_year_id, marking_period_id))
