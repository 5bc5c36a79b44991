"""
Timetable templates: reusable weekly grids for seeding section timetables.
"""

from typing import List, Optional

from course_scheduler.core.errors import NotFoundError, ValidationError
from course_scheduler.schemas.records import TenantScope, TimetableTemplate
from course_scheduler.schemas.scheduling import TemplateApply, TemplateCreate, TemplateFromSection
from course_scheduler.stores.base import CatalogAdapter, RecordStore


def get_templates(store: RecordStore, scope: TenantScope, campus_id: Optional[str] = None) -> List[TimetableTemplate]:
    return store.list_templates(scope.school_id, campus_id or scope.campus_id)


def create_template(
    store: RecordStore,
    scope: TenantScope,
    body: TemplateCreate,
    created_by: Optional[str] = None,
) -> TimetableTemplate:
    if not body.name.strip():
        raise ValidationError("Template name is required")

    data = {
        "school_id": scope.school_id,
        "campus_id": body.campus_id or scope.campus_id,
        "name": body.name,
        "description": body.description,
        "grade_level_id": body.grade_level_id,
        "created_by": created_by,
    }
    entries = [e.model_dump() for e in body.entries]
    return store.insert_template(data, entries)


def save_template_from_section(
    catalog: CatalogAdapter,
    store: RecordStore,
    scope: TenantScope,
    body: TemplateFromSection,
    created_by: Optional[str] = None,
) -> TimetableTemplate:
    """Snapshot a section's current timetable as a new template."""
    timetable = catalog.list_section_timetable(body.section_id, body.academic_year_id)
    if not timetable:
        raise NotFoundError("No timetable entries found for this section")

    section = catalog.get_section(body.section_id) or {}
    return create_template(store, scope, TemplateCreate(
        name=body.name,
        description=body.description,
        grade_level_id=section.get("grade_level_id"),
        campus_id=body.campus_id,
        entries=[
            {
                "subject_id": e.subject_id,
                "period_id": e.period_id,
                "day_of_week": e.day_of_week,
                "room_id": e.room_id,
                "teacher_id": e.teacher_id,
            }
            for e in timetable
        ],
    ), created_by)


def apply_template(store: RecordStore, scope: TenantScope, body: TemplateApply) -> dict:
    template = store.get_template(body.template_id)
    if template is None:
        raise NotFoundError("Template not found")
    if not template.entries:
        raise ValidationError("Template has no entries")

    if body.clear_existing:
        store.clear_section_timetable(body.section_id, body.academic_year_id)

    rows = [
        {
            "school_id": scope.school_id,
            "section_id": body.section_id,
            "academic_year_id": body.academic_year_id,
            "subject_id": e.subject_id,
            "teacher_id": e.teacher_id,
            "period_id": e.period_id,
            "day_of_week": e.day_of_week,
            "room_id": e.room_id,
            "is_active": True,
        }
        for e in template.entries
    ]
    return {"entries_created": store.insert_timetable_entries(rows)}


def delete_template(store: RecordStore, template_id: str) -> None:
    if not store.delete_template(template_id):
        raise NotFoundError("Template not found")
