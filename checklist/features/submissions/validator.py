"""
Required-field validation of answers against a template.
"""
from typing import Any, Dict, Iterable, Mapping, Optional

from checklist.features.submissions.schemas import Answer
from checklist.features.templates.fields import field_capability
from checklist.features.templates.schemas import Template


REQUIRED_MESSAGE = "This field is required"
MUST_BE_CHECKED_MESSAGE = "This field must be checked"


def is_empty(value: Any) -> bool:
    """Absent, None and the empty string count as unanswered."""
    return value is None or (isinstance(value, str) and value == "")


def validate(template: Template, answers: Mapping[str, Any]) -> Dict[str, str]:
    """
    Check answers against the template's required fields.

    Sections and then fields are visited in ascending ``order`` so the
    returned mapping (field id -> message) lists errors in schema order.
    Non-required fields are never reported. For field types whose capability
    requires a truthy value (checkboxes) a falsy answer gets the
    type-specific message, replacing the generic one.
    """
    errors: Dict[str, str] = {}
    for _section, field in template.iter_fields():
        if not field.required:
            continue

        value = answers.get(field.id)
        if is_empty(value):
            errors[field.id] = REQUIRED_MESSAGE

        if field.capability.requires_truthy and not value:
            errors[field.id] = MUST_BE_CHECKED_MESSAGE

    return errors


def first_error(errors: Mapping[str, str]) -> Optional[tuple[str, str]]:
    """The first (field id, message) pair, or None when valid."""
    return next(iter(errors.items()), None)


def completion_percentage(answers: Iterable[Answer]) -> int:
    """
    Share of stored answers that hold a value, from the answers' own snapshot.

    Unchecked checkboxes and empty photo lists count as unanswered.
    """
    total = 0
    answered = 0
    for answer in answers:
        total += 1
        if is_empty(answer.value) or answer.value == []:
            continue
        if field_capability(answer.field_type).requires_truthy and not answer.value:
            continue
        answered += 1
    if total == 0:
        return 0
    return round(answered * 100 / total)
