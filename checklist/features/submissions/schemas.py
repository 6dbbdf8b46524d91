"""
Pydantic schemas for submissions and their answers.
"""
import enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from checklist.core.database.base import generate_ulid


class SubmissionStatus(str, enum.Enum):
    """Status of a submission."""
    DRAFT = "draft"
    COMPLETED = "completed"


class Answer(BaseModel):
    """
    Response to one field.

    Label, type and section title are copied from the template when the
    answer is written and never re-read from it.
    """
    field_id: str
    field_label: str
    field_type: str
    section_title: str
    value: Any = None
    photo_urls: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class Submission(BaseModel):
    """A filled-in instance of a template."""
    id: str = Field(default_factory=generate_ulid)
    template_id: str
    template_name: str
    category: str
    organization_id: str
    submitted_at: datetime
    submitted_by: str
    status: SubmissionStatus = SubmissionStatus.COMPLETED
    metadata: Optional[Dict[str, Any]] = None
    answers: List[Answer] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def answer_map(self) -> Dict[str, Any]:
        """Field id -> stored value, the shape the validator consumes."""
        return {answer.field_id: answer.value for answer in self.answers}


class SubmissionCreate(BaseModel):
    """
    Schema for creating a submission.

    ``id`` may be generated by the client so a retried request overwrites
    the first attempt instead of creating a duplicate.
    """
    id: Optional[str] = Field(None, min_length=1, max_length=64)
    template_id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    answers: Dict[str, Any] = Field(default_factory=dict, description="Field id -> value")
    photo_urls: Dict[str, List[str]] = Field(default_factory=dict, description="Field id -> uploaded photo URLs")
    status: SubmissionStatus = SubmissionStatus.COMPLETED
    metadata: Optional[Dict[str, Any]] = None


class SubmissionUpdate(BaseModel):
    """Schema for replacing a submission's answers."""
    answers: Dict[str, Any] = Field(default_factory=dict)
    photo_urls: Dict[str, List[str]] = Field(default_factory=dict)
    status: Optional[SubmissionStatus] = None


class SubmissionSummary(BaseModel):
    """Submission listing entry."""
    id: str
    template_id: str
    template_name: str
    category: str
    organization_id: str
    submitted_at: datetime
    submitted_by: str
    status: SubmissionStatus
    completion_percentage: int
