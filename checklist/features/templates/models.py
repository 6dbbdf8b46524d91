"""
Template, TemplateSection and TemplateField models.

A template is stored as a three-level tree. Sections and fields carry an
explicit ``order`` column; readers sort by it.
"""
from typing import Any, Dict
from sqlalchemy import String, Boolean, Integer, ForeignKey, JSON, Text, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from checklist.core.database.base import Base, TimestampMixin, generate_ulid


class Template(Base, TimestampMixin):
    """
    Reusable checklist definition.

    Attributes:
        organization_id: Owning organization, or NULL for system templates
        is_public: Readable by members of other organizations
        version: Incremented on every edit
    """
    __tablename__ = "templates"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon: Mapped[str | None] = mapped_column(String(50))
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(255))
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    sections: Mapped[list["TemplateSection"]] = relationship(
        "TemplateSection",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateSection.order",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Template(id={self.id}, name={self.name!r}, org_id={self.organization_id})>"


class TemplateSection(Base):
    """
    Section row. ``id`` is the client-facing id, unique within its template;
    ``pk`` is the storage key.
    """
    __tablename__ = "template_sections"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False, default=generate_ulid)
    template_id: Mapped[str] = mapped_column(
        ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    template: Mapped["Template"] = relationship("Template", back_populates="sections")

    __table_args__ = (
        UniqueConstraint("template_id", "id", name="uq_template_sections_template_id"),
    )

    fields: Mapped[list["TemplateField"]] = relationship(
        "TemplateField",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="TemplateField.order",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<TemplateSection(id={self.id}, template_id={self.template_id}, order={self.order})>"


class TemplateField(Base):
    """
    Field definition. ``config`` holds the type-specific options as JSON.
    """
    __tablename__ = "template_fields"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False, default=generate_ulid)
    section_pk: Mapped[int] = mapped_column(
        ForeignKey("template_sections.pk", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    placeholder: Mapped[str | None] = mapped_column(String(255))
    help_text: Mapped[str | None] = mapped_column(Text)
    required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    config: Mapped[Dict[str, Any] | None] = mapped_column(JSON)

    section: Mapped["TemplateSection"] = relationship("TemplateSection", back_populates="fields")

    __table_args__ = (
        Index("ix_template_fields_section_order", "section_pk", "order"),
    )

    def __repr__(self):
        return f"<TemplateField(id={self.id}, section_pk={self.section_pk}, type={self.type})>"
