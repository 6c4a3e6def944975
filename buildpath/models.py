"""SQLAlchemy ORM models for projects, stages and generated documents."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Project(TimestampMixin, Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(200), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    progress: Mapped[int] = mapped_column(default=0)


class ProjectStage(TimestampMixin, Base):
    __tablename__ = "project_stages"
    __table_args__ = (UniqueConstraint("project_id", "stage", "user_id", name="uq_project_stage_user"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(String(200), nullable=False)
    stage: Mapped[str] = mapped_column(String(30), nullable=False)
    input: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    output: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending | in_progress | completed


class StageSetting(TimestampMixin, Base):
    __tablename__ = "stage_settings"
    __table_args__ = (UniqueConstraint("stage", "sub_stage", name="uq_stage_sub_stage"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    stage: Mapped[str] = mapped_column(String(30), nullable=False)
    # Empty string marks the stage-level toggle so the unique key stays NOT NULL.
    sub_stage: Mapped[str] = mapped_column(String(60), default="", nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)


class AIConfigRecord(TimestampMixin, Base):
    __tablename__ = "ai_configs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    stage: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    system_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_prompt_template: Mapped[str | None] = mapped_column(Text, nullable=True)
    variants: Mapped[dict[str, str]] = mapped_column(JSON, default=dict)


class ValidationReport(TimestampMixin, Base):
    __tablename__ = "validation_reports"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), index=True, nullable=False)
    idea_title: Mapped[str] = mapped_column(String(300), nullable=False)
    idea_summary: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(20), default="running")  # running | ready
    overall_confidence: Mapped[int | None] = mapped_column(Integer, nullable=True)
    recommendation: Mapped[str | None] = mapped_column(String(10), nullable=True)  # build | revise | drop
    pillars: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    section_results: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    personas: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    feature_map: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    risk_radar: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    opportunity_score: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    idea_enhancement: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)


class IdeateRun(TimestampMixin, Base):
    __tablename__ = "ideate_runs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(String(200), nullable=False)
    headline: Mapped[str] = mapped_column(Text, default="")
    narrative: Mapped[str] = mapped_column(Text, default="")
    quick_takes: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    risks: Mapped[list[str]] = mapped_column(JSON, default=list)
    opportunities: Mapped[list[str]] = mapped_column(JSON, default=list)
    pillars: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    suggestions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    experiments: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)


class Blueprint(TimestampMixin, Base):
    """Aggregate design, build, launch or monetise document, one per (project, kind)."""

    __tablename__ = "blueprints"
    __table_args__ = (UniqueConstraint("project_id", "kind", name="uq_blueprint_project_kind"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(String(200), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)  # launch | monetise
    choice: Mapped[str | None] = mapped_column(String(60), nullable=True)
    sections: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    section_completion: Mapped[dict[str, bool]] = mapped_column(JSON, default=dict)
    last_ai_run: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
