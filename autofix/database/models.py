import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String, Text

from autofix.database.config import Base
from autofix.models.issue import IssueStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_issue_id() -> str:
    return str(uuid.uuid4())


class Issue(Base):
    __tablename__ = "issues"

    id = Column(String(36), primary_key=True, default=new_issue_id)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    source_url = Column(Text, nullable=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    manual_instructions = Column(Text, nullable=True)

    status = Column(
        Enum(
            *[s.value for s in IssueStatus],
            name="issue_status",
            native_enum=False,
            create_constraint=True,
        ),
        nullable=False,
        default=IssueStatus.REPORTED.value,
    )
    pr_url = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)

    created_by = Column(String(200), nullable=True)
    approved_by = Column(String(200), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    claimed_by = Column(String(200), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    attempt_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        # Claim scans approved rows oldest-first
        Index("issues_status_created_at_idx", "status", "created_at"),
    )
