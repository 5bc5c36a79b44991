"""
Schedule Requests router: course requests, the auto-scheduler and timetable templates.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from course_scheduler.core.database import get_catalog, get_record_store
from course_scheduler.core.errors import ValidationError
from course_scheduler.core.middleware import tenant_scope
from course_scheduler.core.security import require_role
from course_scheduler.schemas.records import TenantScope
from course_scheduler.schemas.scheduling import (
    ScheduleRequestCreate, ScheduleRequestUpdate, ScheduleRequestMassCreate,
    SchedulerRunOptions, SchedulerCancel,
    TemplateCreate, TemplateFromSection, TemplateApply,
)
from course_scheduler.services import requests as request_service
from course_scheduler.services import templates as template_service
from course_scheduler.services.scheduler import run_key, run_registry, run_scheduler
from course_scheduler.stores.base import CatalogAdapter, RecordStore
from course_scheduler.utils.response import success_response

router = APIRouter(prefix="/api/schedule-requests", tags=["Schedule Requests"])

ADMIN_ROLES = ["admin", "super_admin"]
STAFF_ROLES = ["admin", "super_admin", "teacher"]


# ═══════════════════════════════════════════════════════════
# REQUESTS CRUD
# ═══════════════════════════════════════════════════════════

@router.get("")
async def list_requests(
    academic_year_id: Optional[str] = None,
    student_id: Optional[str] = None,
    course_id: Optional[str] = None,
    status: Optional[str] = None,
    campus_id: Optional[str] = None,
    user: dict = Depends(require_role(STAFF_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    store: RecordStore = Depends(get_record_store),
):
    result = request_service.list_requests(
        store, scope, academic_year_id,
        student_id=student_id, course_id=course_id, status=status, campus_id=campus_id,
    )
    return success_response(data=result)


@router.post("", status_code=201)
async def create_request(
    body: ScheduleRequestCreate,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    store: RecordStore = Depends(get_record_store),
):
    result = request_service.create_request(store, scope, body, user.get("user_id"))
    return success_response(data=result, message="Schedule request created")


@router.put("/{request_id}")
async def update_request(
    request_id: str,
    body: ScheduleRequestUpdate,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    store: RecordStore = Depends(get_record_store),
):
    result = request_service.update_request(store, request_id, body)
    return success_response(data=result, message="Schedule request updated")


@router.delete("/{request_id}")
async def delete_request(
    request_id: str,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    store: RecordStore = Depends(get_record_store),
):
    request_service.delete_request(store, request_id)
    return success_response(message="Schedule request deleted")


@router.post("/mass")
async def mass_create_requests(
    body: ScheduleRequestMassCreate,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    store: RecordStore = Depends(get_record_store),
):
    """Create the same course request for many students; failures are listed, not raised."""
    result = request_service.mass_create_requests(store, scope, body, user.get("user_id"))
    return success_response(
        data=result,
        message=f"Created {result['created']} requests, {len(result['errors'])} errors",
    )


# ═══════════════════════════════════════════════════════════
# AUTO-SCHEDULER
# ═══════════════════════════════════════════════════════════

@router.post("/scheduler/run")
def run_auto_scheduler(
    body: SchedulerRunOptions,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    catalog: CatalogAdapter = Depends(get_catalog),
    store: RecordStore = Depends(get_record_store),
):
    """
    Fill pending requests. Runs in the worker thread pool (plain def) so that
    /scheduler/cancel can be served while a run is in progress.
    Partial success is the normal outcome and still returns 200.
    """
    if not body.academic_year_id:
        raise ValidationError("academic_year_id required")

    key = run_key(scope, body.academic_year_id, body.course_id)
    with run_registry.acquire(key) as cancel_event:
        result = run_scheduler(catalog, store, scope, body, cancel_event)

    return success_response(
        data=result,
        message=f"Scheduler finished: {result.fulfilled} fulfilled, {result.unfilled} unfilled",
    )


@router.post("/scheduler/cancel")
async def cancel_auto_scheduler(
    body: SchedulerCancel,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
):
    cancelled = run_registry.cancel(run_key(scope, body.academic_year_id, body.course_id))
    message = "Cancellation requested" if cancelled else "No scheduler run in progress"
    return success_response(data={"cancelled": cancelled}, message=message)


# ═══════════════════════════════════════════════════════════
# TIMETABLE TEMPLATES
# ═══════════════════════════════════════════════════════════

@router.get("/templates")
async def list_templates(
    campus_id: Optional[str] = None,
    user: dict = Depends(require_role(STAFF_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    store: RecordStore = Depends(get_record_store),
):
    return success_response(data=template_service.get_templates(store, scope, campus_id))


@router.post("/templates", status_code=201)
async def create_template(
    body: TemplateCreate,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    store: RecordStore = Depends(get_record_store),
):
    result = template_service.create_template(store, scope, body, user.get("user_id"))
    return success_response(data=result, message="Template created")


@router.post("/templates/from-section", status_code=201)
async def save_template_from_section(
    body: TemplateFromSection,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    catalog: CatalogAdapter = Depends(get_catalog),
    store: RecordStore = Depends(get_record_store),
):
    result = template_service.save_template_from_section(catalog, store, scope, body, user.get("user_id"))
    return success_response(data=result, message="Template saved from section timetable")


@router.post("/templates/apply")
async def apply_template(
    body: TemplateApply,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    scope: TenantScope = Depends(tenant_scope),
    store: RecordStore = Depends(get_record_store),
):
    result = template_service.apply_template(store, scope, body)
    return success_response(data=result, message=f"Created {result['entries_created']} timetable entries")


@router.delete("/templates/{template_id}")
async def delete_template(
    template_id: str,
    user: dict = Depends(require_role(ADMIN_ROLES)),
    store: RecordStore = Depends(get_record_store),
):
    template_service.delete_template(store, template_id)
    return success_response(message="Template deleted")
