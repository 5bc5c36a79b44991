import pytest
from fastapi.testclient import TestClient

from course_scheduler.core.database import get_catalog, get_record_store
from course_scheduler.core.security import get_current_user
from course_scheduler.schemas.records import TenantScope
from tests.fakes import InMemoryCatalog, InMemoryRecordStore

YEAR = "ay-2026"


@pytest.fixture
def catalog():
    return InMemoryCatalog()


@pytest.fixture
def store(catalog):
    return InMemoryRecordStore(catalog)


@pytest.fixture
def scope():
    return TenantScope(school_id="school-1")


@pytest.fixture
def admin_user():
    return {
        "uid": "admin-uid",
        "email": "admin@school.test",
        "role": "admin",
        "school_id": "school-1",
        "campus_id": None,
        "name": "School Admin",
        "user_id": "admin-1",
    }


@pytest.fixture
def client(catalog, store, admin_user):
    from course_scheduler.main import app

    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_current_user] = lambda: admin_user
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_request(store, scope):
    """Insert a pending schedule request straight into the store."""

    def _make(student_id, course_id="course-1", priority=0, **fields):
        return store.insert_request({
            "school_id": scope.school_id,
            "student_id": student_id,
            "course_id": course_id,
            "academic_year_id": YEAR,
            "priority": priority,
            "status": "pending",
            **fields,
        })

    return _make
