"""
SQLAlchemy models for spreadsheet ingestion.

Issue sources point at a Google Sheets tab; each sync run writes one log row
that is opened as ``running`` and closed exactly once with a terminal status.
Issues and returns are keyed by content hashes so re-syncing the same sheet
is idempotent.
"""

from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import CheckConstraint, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import BaseModel, db, utcnow


class SyncStatus(str, enum.Enum):
    """Lifecycle states for a sync run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SyncStatus.SUCCESS, SyncStatus.FAILED)


class IssueCategory(str, enum.Enum):
    CLIENT = "client"
    INTERNAL = "internal"


class IssueSource(BaseModel):
    """A Google Sheets tab that feeds issues (e.g. ``LV``, ``CS``)."""

    __tablename__ = "issue_sources"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(db.String(50), unique=True, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    google_sheet_id: Mapped[str] = mapped_column(db.String(255), nullable=False)
    sheet_gid: Mapped[str] = mapped_column(db.String(32), nullable=False, default="0")
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)
    last_sync_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True), nullable=True)

    issues = relationship("Issue", back_populates="source", passive_deletes=True)
    sync_logs = relationship("SyncLog", back_populates="source", passive_deletes=True)

    def __repr__(self):
        return f"<IssueSource {self.name}>"


class Issue(BaseModel):
    """A single QA issue row pulled from an issue source."""

    __tablename__ = "issues"

    id: Mapped[int] = mapped_column(primary_key=True)
    source_id: Mapped[int] = mapped_column(
        ForeignKey("issue_sources.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    external_row_hash: Mapped[str] = mapped_column(db.String(64), nullable=False)
    issue_date: Mapped[date] = mapped_column(db.Date, nullable=False, index=True)
    responsible_cc_name: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    responsible_cc_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    cid: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    issue_type: Mapped[str] = mapped_column(db.String(255), nullable=False)
    comment: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    issue_rate: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    issue_category: Mapped[IssueCategory | None] = mapped_column(
        Enum(IssueCategory, name="issue_category_enum"),
        nullable=True,
    )
    reported_by: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    task_id: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    raw_data: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)

    source = relationship("IssueSource", back_populates="issues")
    responsible_cc = relationship("User", foreign_keys=[responsible_cc_id])

    __table_args__ = (
        UniqueConstraint("source_id", "external_row_hash", name="uq_issues_source_row_hash"),
        CheckConstraint(
            "issue_rate IS NULL OR (issue_rate >= 1 AND issue_rate <= 3)",
            name="ck_issues_issue_rate_range",
        ),
    )


class Return(BaseModel):
    """A returned-lead row attributed to a contact-centre agent."""

    __tablename__ = "returns"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_row_hash: Mapped[str] = mapped_column(db.String(64), unique=True, nullable=False)
    return_date: Mapped[date] = mapped_column(db.Date, nullable=False, index=True)
    client_name: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    block: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    cid: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    cc_abbreviation: Mapped[str | None] = mapped_column(db.String(32), nullable=True, index=True)
    cc_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    team_lead_name: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    reasons: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    total_leads: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    cc_fault: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    initial_returns_number: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    raw_data: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)

    cc_user = relationship("User", foreign_keys=[cc_user_id])


class SyncLog(BaseModel):
    """Audit record for one issue-source sync run."""

    __tablename__ = "sync_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    source_id: Mapped[int | None] = mapped_column(
        ForeignKey("issue_sources.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    started_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True), nullable=True)
    status: Mapped[SyncStatus] = mapped_column(
        Enum(SyncStatus, name="sync_status_enum"),
        nullable=False,
        default=SyncStatus.PENDING,
        index=True,
    )
    rows_fetched: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    rows_inserted: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    rows_updated: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    rows_skipped: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    details_json: Mapped[dict | None] = mapped_column(
        db.JSON,
        nullable=True,
        comment="Skip counters, skip samples, and captured row errors.",
    )

    source = relationship("IssueSource", back_populates="sync_logs")

    def __repr__(self):
        return f"<SyncLog {self.id} source={self.source_id} status={self.status.value}>"


class ReturnsSyncLog(BaseModel):
    """Audit record for one returns sync run."""

    __tablename__ = "returns_sync_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    started_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True), nullable=True)
    status: Mapped[SyncStatus] = mapped_column(
        Enum(SyncStatus, name="returns_sync_status_enum"),
        nullable=False,
        default=SyncStatus.PENDING,
        index=True,
    )
    rows_fetched: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    rows_with_cc_fault: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    rows_inserted: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    rows_updated: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    rows_skipped: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    details_json: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)

    def __repr__(self):
        return f"<ReturnsSyncLog {self.id} status={self.status.value}>"
