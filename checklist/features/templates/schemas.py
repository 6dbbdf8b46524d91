"""
Pydantic schemas for checklist templates.

Templates hold ordered sections, sections hold ordered fields, and each field
is one variant of a tagged union discriminated by ``type``.
"""
from datetime import datetime
from typing import Annotated, Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from checklist.core.database.base import generate_ulid
from checklist.features.templates.fields import (
    DropdownConfig,
    EmptyConfig,
    FieldCapability,
    NumberConfig,
    PhotoConfig,
    SignatureConfig,
    TextConfig,
    field_capability,
)


# ============================================================================
# Field variants
# ============================================================================

class FieldBase(BaseModel):
    """Attributes shared by every field variant."""
    id: str = Field(default_factory=generate_ulid, min_length=1, max_length=64)
    label: str = Field(..., min_length=1, max_length=255)
    placeholder: Optional[str] = Field(None, max_length=255)
    help_text: Optional[str] = Field(None, max_length=1000)
    required: bool = False
    order: int = 0

    @property
    def capability(self) -> FieldCapability:
        return field_capability(self.type)  # type: ignore[attr-defined]


class TextField(FieldBase):
    type: Literal["text"] = "text"
    config: TextConfig = Field(default_factory=TextConfig)


class TextareaField(FieldBase):
    type: Literal["textarea"] = "textarea"
    config: TextConfig = Field(default_factory=TextConfig)


class NumberField(FieldBase):
    type: Literal["number"] = "number"
    config: NumberConfig = Field(default_factory=NumberConfig)


class DropdownField(FieldBase):
    type: Literal["dropdown"] = "dropdown"
    config: DropdownConfig = Field(default_factory=DropdownConfig)


class CheckboxField(FieldBase):
    type: Literal["checkbox"] = "checkbox"
    config: EmptyConfig = Field(default_factory=EmptyConfig)


class DateField(FieldBase):
    type: Literal["date"] = "date"
    config: EmptyConfig = Field(default_factory=EmptyConfig)


class TimeField(FieldBase):
    type: Literal["time"] = "time"
    config: EmptyConfig = Field(default_factory=EmptyConfig)


class PhotoField(FieldBase):
    type: Literal["photo"] = "photo"
    config: PhotoConfig = Field(default_factory=PhotoConfig)


class SignatureField(FieldBase):
    type: Literal["signature"] = "signature"
    config: SignatureConfig = Field(default_factory=SignatureConfig)


FormField = Annotated[
    Union[
        TextField,
        TextareaField,
        NumberField,
        DropdownField,
        CheckboxField,
        DateField,
        TimeField,
        PhotoField,
        SignatureField,
    ],
    Field(discriminator="type"),
]


# ============================================================================
# Sections and templates
# ============================================================================

class Section(BaseModel):
    """Logical group of fields, e.g. "Safety Checks"."""
    id: str = Field(default_factory=generate_ulid, min_length=1, max_length=64)
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    order: int = 0
    fields: list[FormField] = Field(default_factory=list)

    def ordered_fields(self) -> list[FormField]:
        return sorted(self.fields, key=lambda f: f.order)


def _check_unique_ids(sections: list[Section]) -> None:
    section_ids = [section.id for section in sections]
    if len(section_ids) != len(set(section_ids)):
        raise ValueError("Section ids must be unique within a template")
    field_ids = [field.id for section in sections for field in section.fields]
    if len(field_ids) != len(set(field_ids)):
        raise ValueError("Field ids must be unique within a template")


class TemplateBase(BaseModel):
    """Base template schema."""
    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=50, description="vehicle, solar, gas or a custom category")
    description: str = Field("", max_length=2000)
    icon: Optional[str] = Field(None, max_length=50)
    is_public: bool = False


class Template(TemplateBase):
    """
    Complete template definition.

    ``organization_id`` is None for system templates, which every
    organization can read and none can edit.
    """
    id: str = Field(default_factory=generate_ulid)
    organization_id: Optional[str] = None
    created_by: Optional[str] = None
    version: int = 1
    sections: list[Section] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def unique_ids(self) -> "Template":
        _check_unique_ids(self.sections)
        return self

    @property
    def is_system(self) -> bool:
        return self.organization_id is None

    def is_usable(self) -> bool:
        """A template accepts submissions only once it has a section."""
        return len(self.sections) > 0

    def ordered_sections(self) -> list[Section]:
        return sorted(self.sections, key=lambda s: s.order)

    def iter_fields(self) -> Iterator[tuple[Section, FormField]]:
        """Yield (section, field) pairs in render/validation order."""
        for section in self.ordered_sections():
            for field in section.ordered_fields():
                yield section, field

    def find_section(self, section_id: str) -> Optional[Section]:
        return next((s for s in self.sections if s.id == section_id), None)

    def summary(self) -> "TemplateSummary":
        return TemplateSummary(
            id=self.id,
            organization_id=self.organization_id,
            name=self.name,
            category=self.category,
            description=self.description,
            icon=self.icon,
            is_public=self.is_public,
            version=self.version,
            section_count=len(self.sections),
            field_count=sum(len(s.fields) for s in self.sections),
        )


def swap_order(first: Section | FormField, second: Section | FormField) -> None:
    """Exchange the ``order`` values of two sections or two fields in place."""
    first.order, second.order = second.order, first.order


# ============================================================================
# Request / response schemas
# ============================================================================

class TemplateCreate(TemplateBase):
    """Schema for creating a template in an organization."""
    organization_id: str = Field(..., description="Owning organization")
    sections: list[Section] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_ids(self) -> "TemplateCreate":
        _check_unique_ids(self.sections)
        return self


class TemplateUpdate(BaseModel):
    """Schema for updating a template; ``sections`` replaces the whole tree when given."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=2000)
    icon: Optional[str] = Field(None, max_length=50)
    is_public: Optional[bool] = None
    sections: Optional[list[Section]] = None

    @model_validator(mode="after")
    def unique_ids(self) -> "TemplateUpdate":
        if self.sections is not None:
            _check_unique_ids(self.sections)
        return self


class TemplateSummary(BaseModel):
    """Lightweight template listing entry."""
    id: str
    organization_id: Optional[str]
    name: str
    category: str
    description: str
    icon: Optional[str]
    is_public: bool
    version: int
    section_count: int
    field_count: int


class SwapOrderRequest(BaseModel):
    """Swap the display order of two sibling sections or fields."""
    first_id: str = Field(..., min_length=1)
    second_id: str = Field(..., min_length=1)
