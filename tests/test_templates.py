import pytest

from course_scheduler.core.errors import NotFoundError, ValidationError
from course_scheduler.schemas.scheduling import TemplateApply, TemplateCreate, TemplateFromSection
from course_scheduler.services import templates
from tests.conftest import YEAR


def test_save_and_apply_round_trip(catalog, store, scope):
    catalog.sections["sec-a"] = {"id": "sec-a", "grade_level_id": "grade-9"}
    catalog.add_timetable("sec-a", YEAR, 0, "P1", subject_id="math", teacher_id="T1")
    catalog.add_timetable("sec-a", YEAR, 2, "P2", subject_id="art")

    template = templates.save_template_from_section(catalog, store, scope, TemplateFromSection(
        name="Grade 9 week", section_id="sec-a", academic_year_id=YEAR,
    ), "admin-1")
    result = templates.apply_template(store, scope, TemplateApply(
        template_id=template.id, section_id="sec-b", academic_year_id=YEAR,
    ))

    assert template.grade_level_id == "grade-9"
    assert len(template.entries) == 2
    assert result == {"entries_created": 2}
    copied = catalog.list_section_timetable("sec-b", YEAR)
    assert [(e.day_of_week, e.period_id, e.subject_id) for e in copied] == [(0, "P1", "math"), (2, "P2", "art")]


def test_save_from_empty_section(catalog, store, scope):
    with pytest.raises(NotFoundError, match="No timetable entries"):
        templates.save_template_from_section(catalog, store, scope, TemplateFromSection(
            name="Empty", section_id="sec-x", academic_year_id=YEAR,
        ))


def test_apply_with_clear_existing(catalog, store, scope):
    catalog.add_timetable("sec-b", YEAR, 4, "P9")
    template = templates.create_template(store, scope, TemplateCreate(
        name="Mondays", entries=[{"day_of_week": 0, "period_id": "P1"}],
    ))

    templates.apply_template(store, scope, TemplateApply(
        template_id=template.id, section_id="sec-b", academic_year_id=YEAR, clear_existing=True,
    ))

    assert [e.period_id for e in catalog.list_section_timetable("sec-b", YEAR)] == ["P1"]


def test_apply_empty_template(store, scope):
    template = templates.create_template(store, scope, TemplateCreate(name="Blank"))

    with pytest.raises(ValidationError):
        templates.apply_template(store, scope, TemplateApply(
            template_id=template.id, section_id="sec-b", academic_year_id=YEAR,
        ))


def test_create_requires_name(store, scope):
    with pytest.raises(ValidationError):
        templates.create_template(store, scope, TemplateCreate(name="  "))


def test_list_and_delete(store, scope):
    template = templates.create_template(store, scope, TemplateCreate(name="A"))

    assert [t.id for t in templates.get_templates(store, scope)] == [template.id]
    templates.delete_template(store, template.id)
    assert templates.get_templates(store, scope) == []
    with pytest.raises(NotFoundError):
        templates.delete_template(store, template.id)
