"""
Closed set of checklist field types.

Each field type carries its own configuration payload and a capability entry
that is the single source of truth for:

- the value shape a client should send (``value_hint``),
- the value stored when an answer is absent (``default``),
- whether a required value must also be truthy (only checkboxes).

Rendering, validation and persistence dispatch through ``FIELD_CAPABILITIES``
instead of branching on the type string.
"""
import enum
from dataclasses import dataclass
from typing import Any, Callable, Type

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FieldType(str, enum.Enum):
    """Supported field types."""
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"
    DATE = "date"
    TIME = "time"
    PHOTO = "photo"
    SIGNATURE = "signature"


# ============================================================================
# Type-specific configuration payloads
# ============================================================================

class FieldConfig(BaseModel):
    """Base for field configuration; unknown keys are dropped."""
    model_config = ConfigDict(extra="ignore")


class EmptyConfig(FieldConfig):
    """Checkbox, date and time fields take no options."""


class TextConfig(FieldConfig):
    max_length: int | None = Field(None, ge=1, description="Maximum number of characters")
    pattern: str | None = Field(None, description="Regular expression hint for clients")


class NumberConfig(FieldConfig):
    min: float | None = None
    max: float | None = None
    step: float | None = Field(None, gt=0)
    unit: str | None = Field(None, max_length=20, description='Display unit, e.g. "km", "V", "PSI"')

    @model_validator(mode="after")
    def check_bounds(self) -> "NumberConfig":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min must not be greater than max")
        return self


class DropdownConfig(FieldConfig):
    options: list[str] = Field(default_factory=list)


class PhotoConfig(FieldConfig):
    max_files: int = Field(1, ge=1)
    accepted_formats: list[str] = Field(default_factory=list)


class SignatureConfig(FieldConfig):
    width: int = Field(400, ge=1)
    height: int = Field(200, ge=1)


# ============================================================================
# Capability table
# ============================================================================

@dataclass(frozen=True)
class FieldCapability:
    type: FieldType
    config_model: Type[FieldConfig]
    value_hint: str
    default_factory: Callable[[], Any]
    requires_truthy: bool = False

    def default(self) -> Any:
        return self.default_factory()

    def describe(self) -> dict[str, Any]:
        """Shape handed to the presentation layer."""
        return {
            "type": self.type.value,
            "value_hint": self.value_hint,
            "default": self.default(),
            "requires_truthy": self.requires_truthy,
            "config_schema": self.config_model.model_json_schema(),
        }


def _none() -> None:
    return None


FIELD_CAPABILITIES: dict[FieldType, FieldCapability] = {
    FieldType.TEXT: FieldCapability(FieldType.TEXT, TextConfig, "string", _none),
    FieldType.TEXTAREA: FieldCapability(FieldType.TEXTAREA, TextConfig, "string", _none),
    FieldType.NUMBER: FieldCapability(FieldType.NUMBER, NumberConfig, "number", _none),
    FieldType.DROPDOWN: FieldCapability(FieldType.DROPDOWN, DropdownConfig, "string (one of config.options)", _none),
    FieldType.CHECKBOX: FieldCapability(FieldType.CHECKBOX, EmptyConfig, "boolean", lambda: False, requires_truthy=True),
    FieldType.DATE: FieldCapability(FieldType.DATE, EmptyConfig, "string (YYYY-MM-DD)", _none),
    FieldType.TIME: FieldCapability(FieldType.TIME, EmptyConfig, "string (HH:MM)", _none),
    FieldType.PHOTO: FieldCapability(FieldType.PHOTO, PhotoConfig, "list of uploaded photo URLs", list),
    FieldType.SIGNATURE: FieldCapability(FieldType.SIGNATURE, SignatureConfig, "string (image data URL or uploaded URL)", _none),
}


def field_capability(field_type: FieldType | str) -> FieldCapability:
    """Look up the capability entry for a field type; raises ValueError for unknown types."""
    return FIELD_CAPABILITIES[FieldType(field_type)]
