"""
Submission and SubmissionAnswer models.

Submissions keep their own copy of the template name/category and of every
answered field's label, type and section title. ``template_id`` is a plain
column rather than a foreign key so deleting a template leaves its history.
"""
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import String, Integer, ForeignKey, JSON, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from checklist.core.database.base import Base, TimestampMixin, generate_ulid


class Submission(Base, TimestampMixin):
    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_ulid)
    template_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Snapshot of the template at creation time
    template_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_by: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")

    # "metadata" is reserved on declarative classes
    extra: Mapped[Dict[str, Any] | None] = mapped_column("metadata", JSON)

    answers: Mapped[list["SubmissionAnswer"]] = relationship(
        "SubmissionAnswer",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SubmissionAnswer.position",
    )

    __table_args__ = (
        Index("ix_submissions_org_submitted", "organization_id", "submitted_at"),
    )

    def __repr__(self):
        return f"<Submission(id={self.id}, template_id={self.template_id}, org_id={self.organization_id})>"


class SubmissionAnswer(Base):
    __tablename__ = "submission_answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[str] = mapped_column(
        ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    field_id: Mapped[str] = mapped_column(String(64), nullable=False)
    field_label: Mapped[str] = mapped_column(String(255), nullable=False)
    field_type: Mapped[str] = mapped_column(String(20), nullable=False)
    section_title: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    photo_urls: Mapped[list[str] | None] = mapped_column(JSON)

    submission: Mapped["Submission"] = relationship("Submission", back_populates="answers")

    def __repr__(self):
        return f"<SubmissionAnswer(submission_id={self.submission_id}, field_id={self.field_id})>"
