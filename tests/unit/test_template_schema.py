"""
Unit tests for the template schema model and field capabilities.
"""

import pytest
from pydantic import ValidationError as SchemaError

from checklist.features.templates.catalog import SYSTEM_TEMPLATES
from checklist.features.templates.fields import FIELD_CAPABILITIES, FieldType, field_capability
from checklist.features.templates.schemas import (
    CheckboxField,
    NumberField,
    Section,
    Template,
    TemplateUpdate,
    swap_order,
)
from tests.factories import inspection_sections


def _template(**overrides) -> Template:
    data = {"name": "Site visit", "category": "solar", "organization_id": "org-1", "sections": inspection_sections()}
    data.update(overrides)
    return Template(**data)


class TestFieldVariants:
    def test_type_tag_selects_variant(self):
        section = Section.model_validate({
            "title": "Checks",
            "fields": [
                {"type": "checkbox", "label": "Lights work"},
                {"type": "number", "label": "Pressure", "config": {"min": 0, "unit": "kPa"}},
            ],
        })
        checkbox, number = section.fields
        assert isinstance(checkbox, CheckboxField)
        assert isinstance(number, NumberField)
        assert number.config.unit == "kPa"

    def test_unknown_type_is_rejected(self):
        with pytest.raises(SchemaError):
            Section.model_validate({"title": "Bad", "fields": [{"type": "slider", "label": "Level"}]})

    def test_number_bounds_must_be_ordered(self):
        with pytest.raises(SchemaError):
            Section.model_validate({
                "title": "Bad",
                "fields": [{"type": "number", "label": "Count", "config": {"min": 10, "max": 1}}],
            })

    def test_config_keys_of_other_types_are_dropped(self):
        section = Section.model_validate({
            "title": "Checks",
            "fields": [{"type": "checkbox", "label": "Done", "config": {"options": ["a"]}}],
        })
        assert section.fields[0].config.model_dump() == {}


class TestCapabilities:
    def test_every_type_has_a_capability(self):
        assert set(FIELD_CAPABILITIES) == set(FieldType)

    def test_defaults(self):
        assert field_capability("checkbox").default() is False
        assert field_capability("photo").default() == []
        for field_type in ("text", "textarea", "number", "dropdown", "date", "time", "signature"):
            assert field_capability(field_type).default() is None

    def test_photo_default_is_not_shared(self):
        first = field_capability(FieldType.PHOTO).default()
        first.append("https://example.com/a.jpg")
        assert field_capability(FieldType.PHOTO).default() == []

    def test_only_checkbox_requires_truthy(self):
        truthy = [t for t, capability in FIELD_CAPABILITIES.items() if capability.requires_truthy]
        assert truthy == [FieldType.CHECKBOX]

    def test_describe_includes_config_schema(self):
        description = field_capability("dropdown").describe()
        assert description["type"] == "dropdown"
        assert "options" in description["config_schema"]["properties"]

    def test_field_exposes_its_capability(self):
        field = CheckboxField(label="Agree")
        assert field.capability.requires_truthy


class TestTemplate:
    def test_iteration_follows_order(self):
        template = _template()
        assert [s.id for s in template.ordered_sections()] == ["sec_general", "sec_photos"]
        assert [f.id for _, f in template.iter_fields()] == ["fld_name", "fld_agree", "fld_count", "fld_photo"]

    def test_usable_needs_a_section(self):
        assert _template().is_usable()
        assert not _template(sections=[]).is_usable()

    def test_system_template_has_no_organization(self):
        assert _template(organization_id=None).is_system
        assert not _template().is_system

    def test_duplicate_field_ids_rejected(self):
        sections = [
            Section.model_validate({"id": "a", "title": "A", "fields": [{"id": "f", "type": "text", "label": "x"}]}),
            Section.model_validate({"id": "b", "title": "B", "fields": [{"id": "f", "type": "date", "label": "y"}]}),
        ]
        with pytest.raises(SchemaError):
            _template(sections=sections)
        with pytest.raises(SchemaError):
            TemplateUpdate(sections=sections)

    def test_swap_order(self):
        template = _template()
        general, photos = template.ordered_sections()
        swap_order(general, photos)
        assert [s.id for s in template.ordered_sections()] == ["sec_photos", "sec_general"]

    def test_summary_counts(self):
        summary = _template().summary()
        assert summary.section_count == 2
        assert summary.field_count == 4

    def test_field_order_within_section(self):
        section = _template().find_section("sec_general")
        assert [f.label for f in section.ordered_fields()] == ["Inspector", "Site is safe", "Panel count"]
        assert _template().find_section("missing") is None


class TestCatalog:
    def test_system_templates(self):
        assert [t.category for t in SYSTEM_TEMPLATES] == ["vehicle", "solar", "gas"]
        for template in SYSTEM_TEMPLATES:
            assert template.is_system
            assert template.is_usable()

    def test_catalog_ids_are_stable(self):
        vehicle = SYSTEM_TEMPLATES[0]
        assert vehicle.id == "system-vehicle-daily"
        first_section = vehicle.ordered_sections()[0]
        assert first_section.id == "system-vehicle-daily-s1"
        assert first_section.ordered_fields()[0].id == "system-vehicle-daily-s1-f1"
