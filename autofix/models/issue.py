"""
Issue Models
============
Pydantic models for the issue record, the sole persisted entity.

    IssueStatus   — lifecycle states (see autofix/state/issue_machine.py)
    IssueDraft    — insert payload from the producer or manual entry
    IssueRecord   — full read projection of a stored row
    ApprovalRequest — optional reviewer identity for approve/re-approve
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IssueStatus(str, Enum):
    REPORTED = "reported"
    APPROVED = "approved"
    REJECTED = "rejected"
    IN_PROGRESS = "in_progress"
    PR_RAISED = "pr_raised"
    FAILED = "failed"
    # Reserved; no transition produces it yet
    DONE = "done"


class IssueDraft(BaseModel):
    title: str
    description: Optional[str] = None
    source_url: Optional[str] = None
    manual_instructions: Optional[str] = None
    created_by: Optional[str] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()

    @field_validator("description", "source_url", "manual_instructions")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class IssueRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    updated_at: datetime
    source_url: Optional[str] = None
    title: str
    description: Optional[str] = None
    manual_instructions: Optional[str] = None
    status: IssueStatus
    pr_url: Optional[str] = None
    error_message: Optional[str] = None
    created_by: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    claimed_by: Optional[str] = None
    claimed_at: Optional[datetime] = None
    attempt_count: int = 0


class ApprovalRequest(BaseModel):
    approved_by: Optional[str] = Field(default=None, max_length=200)
