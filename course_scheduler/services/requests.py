"""
Schedule request store: CRUD, mass creation and status transitions.

Status moves away from ``pending`` exactly once. The scheduler records
fulfilled/unfilled through ``record_outcome``; users may cancel a pending
request or reset an unfilled/cancelled one back to pending.
"""

from typing import List, Optional

from course_scheduler.core.app_logger import get_logger
from course_scheduler.core.errors import NotFoundError, SchedulingError, ValidationError
from course_scheduler.schemas.records import RequestStatus, ScheduleRequest, TenantScope
from course_scheduler.schemas.scheduling import (
    ScheduleRequestCreate,
    ScheduleRequestMassCreate,
    ScheduleRequestUpdate,
)
from course_scheduler.stores.base import RecordStore

logger = get_logger("requests")

# Transitions a user edit may perform; scheduler outcomes are not in here.
USER_TRANSITIONS = {
    RequestStatus.PENDING: {RequestStatus.CANCELLED},
    RequestStatus.UNFILLED: {RequestStatus.PENDING},
    RequestStatus.CANCELLED: {RequestStatus.PENDING},
    RequestStatus.FULFILLED: set(),
}


def order_by_priority(requests: List[ScheduleRequest]) -> List[ScheduleRequest]:
    """Highest priority first; equal priorities keep creation order."""
    return sorted(requests, key=lambda r: -r.priority)


def list_requests(
    store: RecordStore,
    scope: TenantScope,
    academic_year_id: str,
    student_id: Optional[str] = None,
    course_id: Optional[str] = None,
    status: Optional[str] = None,
    campus_id: Optional[str] = None,
) -> List[ScheduleRequest]:
    if not academic_year_id:
        raise ValidationError("academic_year_id required")
    rows = store.list_requests(
        scope.school_id, academic_year_id,
        student_id=student_id, course_id=course_id, status=status, campus_id=campus_id,
    )
    return order_by_priority(rows)


def create_request(
    store: RecordStore,
    scope: TenantScope,
    body: ScheduleRequestCreate,
    requested_by: Optional[str] = None,
) -> ScheduleRequest:
    missing = [
        name for name, value in (
            ("school_id", scope.school_id),
            ("student_id", body.student_id),
            ("course_id", body.course_id),
            ("academic_year_id", body.academic_year_id),
        )
        if not value or not str(value).strip()
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    data = {
        "school_id": scope.school_id,
        "campus_id": body.campus_id or scope.campus_id,
        **body.model_dump(exclude={"campus_id"}),
        "status": RequestStatus.PENDING.value,
        "requested_by": requested_by,
    }
    request = store.insert_request(data)
    logger.debug("Created schedule request %s for student %s", request.id, request.student_id)
    return request


def update_request(store: RecordStore, request_id: str, body: ScheduleRequestUpdate) -> ScheduleRequest:
    current = store.get_request(request_id)
    if current is None:
        raise NotFoundError("Schedule request not found")

    changes = body.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)
    if new_status is not None and new_status != current.status:
        new_status = RequestStatus(new_status)
        if new_status not in USER_TRANSITIONS[current.status]:
            raise ValidationError(
                f"Cannot change request status from {current.status.value} to {new_status.value}"
            )
        changes["status"] = new_status.value
        if new_status == RequestStatus.PENDING:
            changes["fulfilled_course_period_id"] = None

    if not changes:
        return current

    updated = store.update_request(request_id, changes)
    if updated is None:
        raise NotFoundError("Schedule request not found")
    return updated


def delete_request(store: RecordStore, request_id: str) -> None:
    if not store.delete_request(request_id):
        raise NotFoundError("Schedule request not found")


def mass_create_requests(
    store: RecordStore,
    scope: TenantScope,
    body: ScheduleRequestMassCreate,
    requested_by: Optional[str] = None,
) -> dict:
    """One request per student; individual failures are collected, never raised."""
    created = 0
    errors: List[str] = []

    for student_id in body.student_ids:
        try:
            create_request(store, scope, ScheduleRequestCreate(
                student_id=student_id,
                course_id=body.course_id,
                academic_year_id=body.academic_year_id,
                marking_period_id=body.marking_period_id,
                campus_id=body.campus_id,
                priority=body.priority,
            ), requested_by)
            created += 1
        except SchedulingError as e:
            errors.append(f"Student {student_id}: {e.message}")

    return {"created": created, "errors": errors}


def record_outcome(
    store: RecordStore,
    request: ScheduleRequest,
    status: RequestStatus,
    course_period_id: Optional[str] = None,
) -> ScheduleRequest:
    """Scheduler-only transition pending → fulfilled/unfilled."""
    if request.status != RequestStatus.PENDING:
        raise ValidationError(f"Request {request.id} is no longer pending")
    if status == RequestStatus.FULFILLED and not course_period_id:
        raise ValidationError("A fulfilled request needs a course period")

    changes = {
        "status": status.value,
        "fulfilled_course_period_id": course_period_id if status == RequestStatus.FULFILLED else None,
    }
    updated = store.update_request(request.id, changes)
    if updated is None:
        raise NotFoundError("Schedule request not found")
    return updated
