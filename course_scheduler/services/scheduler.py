"""
Auto-scheduler: fills pending schedule requests with course periods.

Algorithm:

1. Gather pending requests for the school/year (optionally one course),
   highest priority first, creation order within a priority.
2. For each request, resolve the course's active course periods.
3. Narrow them by preferences (with/not teacher, with/not period).
4. Drop unavailable ones (seat count, gender, teacher availability).
5. Rank by free seats and try to enroll in that order; first success wins.
6. Mark the request fulfilled or unfilled and record a detail line.

Requests are processed strictly one after another so each enrollment's seat
recompute is visible to the next request. Only pending requests are read, so
an interrupted run can simply be started again.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from course_scheduler.core.app_logger import get_logger
from course_scheduler.core.config import settings
from course_scheduler.core.errors import InfrastructureError, SchedulerBusyError, SchedulingError
from course_scheduler.schemas.records import (
    CoursePeriod,
    RequestStatus,
    ScheduleRequest,
    SchedulerDetail,
    SchedulerResult,
    TenantScope,
)
from course_scheduler.schemas.scheduling import EnrollStudent, SchedulerRunOptions
from course_scheduler.services import enrollment, filters
from course_scheduler.services.requests import order_by_priority, record_outcome
from course_scheduler.stores.base import CatalogAdapter, RecordStore

logger = get_logger("scheduler")

RunKey = Tuple[str, str, Optional[str]]


def run_key(scope: TenantScope, academic_year_id: str, course_id: Optional[str] = None) -> RunKey:
    return (scope.school_id, academic_year_id, course_id)


class RunRegistry:
    """Tracks active runs so that one (school, year, course) key runs at a time."""

    def __init__(self):
        self._lock = threading.Lock()
        self._runs: Dict[RunKey, threading.Event] = {}

    @contextmanager
    def acquire(self, key: RunKey) -> Iterator[threading.Event]:
        with self._lock:
            if key in self._runs:
                raise SchedulerBusyError("A scheduler run is already in progress for this academic year")
            cancel_event = threading.Event()
            self._runs[key] = cancel_event
        try:
            yield cancel_event
        finally:
            with self._lock:
                self._runs.pop(key, None)

    def cancel(self, key: RunKey) -> bool:
        with self._lock:
            cancel_event = self._runs.get(key)
        if cancel_event is None:
            return False
        cancel_event.set()
        return True

    def is_running(self, key: RunKey) -> bool:
        with self._lock:
            return key in self._runs


run_registry = RunRegistry()


def load_pending_requests(
    store: RecordStore, scope: TenantScope, options: SchedulerRunOptions
) -> List[ScheduleRequest]:
    requests = store.list_requests(
        scope.school_id,
        options.academic_year_id,
        course_id=options.course_id,
        status=RequestStatus.PENDING.value,
        campus_id=options.campus_id,
    )
    if options.marking_period_id:
        requests = [
            r for r in requests
            if r.marking_period_id in (None, options.marking_period_id)
        ]
    if options.use_priority_ordering:
        requests = order_by_priority(requests)
    return requests


def _unfilled(store: RecordStore, request: ScheduleRequest, reason: str) -> SchedulerDetail:
    record_outcome(store, request, RequestStatus.UNFILLED)
    logger.debug("Request %s unfilled: %s", request.id, reason)
    return SchedulerDetail(
        request_id=request.id,
        student_id=request.student_id,
        course_id=request.course_id,
        status=RequestStatus.UNFILLED,
        reason=reason,
    )


def _fulfilled(store: RecordStore, request: ScheduleRequest, course_period_id: str) -> SchedulerDetail:
    record_outcome(store, request, RequestStatus.FULFILLED, course_period_id)
    logger.debug("Request %s fulfilled with course period %s", request.id, course_period_id)
    return SchedulerDetail(
        request_id=request.id,
        student_id=request.student_id,
        course_id=request.course_id,
        status=RequestStatus.FULFILLED,
        course_period_id=course_period_id,
    )


def _existing_enrollment(
    store: RecordStore, request: ScheduleRequest, candidates: List[CoursePeriod]
) -> Optional[CoursePeriod]:
    """A candidate the student already holds, e.g. from a run that stopped after enrolling."""
    for course_period in candidates:
        if store.find_active_schedule(request.student_id, course_period.id) is not None:
            return course_period
    return None


def schedule_request(
    catalog: CatalogAdapter,
    store: RecordStore,
    scope: TenantScope,
    request: ScheduleRequest,
    options: SchedulerRunOptions,
    strict_preferences: bool = False,
) -> SchedulerDetail:
    """Resolve, filter, rank and enroll one request; record its outcome."""
    candidates = filters.resolve_candidates(catalog, request)
    if not candidates:
        return _unfilled(store, request, filters.NO_CANDIDATES)

    held = _existing_enrollment(store, request, candidates)
    if held is not None:
        return _fulfilled(store, request, held.id)

    stages = filters.build_stages(catalog, request, options, strict_preferences)
    filtered, reason = filters.filter_candidates(candidates, stages)
    if reason:
        return _unfilled(store, request, reason)

    failures = []
    for course_period in filters.rank_candidates(filtered):
        try:
            enrollment.enroll(catalog, store, scope, EnrollStudent(
                student_id=request.student_id,
                course_id=request.course_id,
                course_period_id=course_period.id,
                academic_year_id=request.academic_year_id,
                marking_period_id=request.marking_period_id or options.marking_period_id,
                campus_id=request.campus_id or options.campus_id,
            ))
        except InfrastructureError:
            raise
        except SchedulingError as e:
            failures.append(e.message)
            continue
        return _fulfilled(store, request, course_period.id)

    return _unfilled(
        store, request,
        "All candidate course periods had conflicts or were full: " + "; ".join(failures),
    )


def run_scheduler(
    catalog: CatalogAdapter,
    store: RecordStore,
    scope: TenantScope,
    options: SchedulerRunOptions,
    cancel_event: Optional[threading.Event] = None,
) -> SchedulerResult:
    """Process every pending request in scope.

    Failing to load the request list raises. After that, a request that
    cannot be placed is marked unfilled, and an infrastructure failure while
    handling one request is recorded in ``errors`` and leaves it pending.
    """
    strict = options.strict_preferences
    if strict is None:
        strict = settings.SCHEDULER_STRICT_PREFERENCES

    result = SchedulerResult()
    requests = load_pending_requests(store, scope, options)
    result.total_requests = len(requests)
    logger.info(
        "Scheduler run started: school=%s year=%s course=%s requests=%d",
        scope.school_id, options.academic_year_id, options.course_id, len(requests),
    )

    for request in requests:
        if cancel_event is not None and cancel_event.is_set():
            result.cancelled = True
            logger.info("Scheduler run cancelled after %d requests", len(result.details))
            break

        try:
            detail = schedule_request(catalog, store, scope, request, options, strict)
        except SchedulingError as e:
            logger.error("Request %s left pending: %s", request.id, e.message)
            result.errors.append(f"Request {request.id}: {e.message}")
            continue

        result.details.append(detail)
        if detail.status == RequestStatus.FULFILLED:
            result.fulfilled += 1
        else:
            result.unfilled += 1

    logger.info(
        "Scheduler run finished: fulfilled=%d unfilled=%d errors=%d",
        result.fulfilled, result.unfilled, len(result.errors),
    )
    return result
