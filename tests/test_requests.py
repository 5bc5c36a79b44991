import pytest

from course_scheduler.core.errors import NotFoundError, ValidationError
from course_scheduler.schemas.records import RequestStatus
from course_scheduler.schemas.scheduling import (
    ScheduleRequestCreate,
    ScheduleRequestMassCreate,
    ScheduleRequestUpdate,
)
from course_scheduler.services import requests as request_service
from tests.conftest import YEAR


def _create(store, scope, student_id="stu-1", **fields):
    body = ScheduleRequestCreate(student_id=student_id, course_id="course-1", academic_year_id=YEAR, **fields)
    return request_service.create_request(store, scope, body, "admin-1")


def test_create_starts_pending(store, scope):
    request = _create(store, scope, priority=3, with_teacher_id="T1")

    assert request.status == RequestStatus.PENDING
    assert request.school_id == "school-1"
    assert request.priority == 3
    assert request.with_teacher_id == "T1"
    assert request.requested_by == "admin-1"


def test_create_rejects_blank_fields(store, scope):
    body = ScheduleRequestCreate(student_id=" ", course_id="", academic_year_id=YEAR)

    with pytest.raises(ValidationError, match="student_id, course_id"):
        request_service.create_request(store, scope, body)
    assert store.requests == {}


def test_list_orders_by_priority(store, scope):
    low = _create(store, scope, "stu-1", priority=0)
    high = _create(store, scope, "stu-2", priority=9)
    mid = _create(store, scope, "stu-3", priority=0)

    listed = request_service.list_requests(store, scope, YEAR)

    assert [r.id for r in listed] == [high.id, low.id, mid.id]


def test_list_requires_academic_year(store, scope):
    with pytest.raises(ValidationError):
        request_service.list_requests(store, scope, "")


def test_cancel_and_reset(store, scope):
    request = _create(store, scope)

    cancelled = request_service.update_request(
        store, request.id, ScheduleRequestUpdate(status=RequestStatus.CANCELLED)
    )
    reset = request_service.update_request(
        store, request.id, ScheduleRequestUpdate(status=RequestStatus.PENDING)
    )

    assert cancelled.status == RequestStatus.CANCELLED
    assert reset.status == RequestStatus.PENDING


def test_user_cannot_mark_fulfilled(store, scope):
    request = _create(store, scope)

    with pytest.raises(ValidationError, match="from pending to fulfilled"):
        request_service.update_request(store, request.id, ScheduleRequestUpdate(status=RequestStatus.FULFILLED))


def test_fulfilled_request_is_final(store, scope):
    request = _create(store, scope)
    request_service.record_outcome(store, request, RequestStatus.FULFILLED, "cp-1")

    with pytest.raises(ValidationError):
        request_service.update_request(store, request.id, ScheduleRequestUpdate(status=RequestStatus.PENDING))


def test_reset_of_unfilled_request(store, scope):
    request = _create(store, scope)
    request_service.record_outcome(store, request, RequestStatus.UNFILLED)

    reset = request_service.update_request(store, request.id, ScheduleRequestUpdate(status=RequestStatus.PENDING))

    assert reset.status == RequestStatus.PENDING
    assert reset.fulfilled_course_period_id is None


def test_update_preferences_only(store, scope):
    request = _create(store, scope)

    updated = request_service.update_request(store, request.id, ScheduleRequestUpdate(priority=7, not_period_id="P2"))

    assert updated.priority == 7
    assert updated.not_period_id == "P2"
    assert updated.status == RequestStatus.PENDING


def test_update_missing_request(store):
    with pytest.raises(NotFoundError):
        request_service.update_request(store, "req-404", ScheduleRequestUpdate(priority=1))


def test_outcome_only_from_pending(store, scope):
    request = _create(store, scope)
    fulfilled = request_service.record_outcome(store, request, RequestStatus.FULFILLED, "cp-1")

    with pytest.raises(ValidationError):
        request_service.record_outcome(store, fulfilled, RequestStatus.UNFILLED)


def test_fulfilled_outcome_needs_course_period(store, scope):
    request = _create(store, scope)

    with pytest.raises(ValidationError):
        request_service.record_outcome(store, request, RequestStatus.FULFILLED)


def test_delete(store, scope):
    request = _create(store, scope)

    request_service.delete_request(store, request.id)

    assert store.get_request(request.id) is None
    with pytest.raises(NotFoundError):
        request_service.delete_request(store, request.id)


def test_mass_create(store, scope):
    result = request_service.mass_create_requests(store, scope, ScheduleRequestMassCreate(
        student_ids=["stu-1", "", "stu-3"], course_id="course-1", academic_year_id=YEAR, priority=2,
    ))

    assert result["created"] == 2
    assert result["errors"] == ["Student : Missing required fields: student_id"]
    assert {r.priority for r in store.requests.values()} == {2}
