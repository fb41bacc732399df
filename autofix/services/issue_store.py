"""
Issue Store
===========
Durable table of issue records with atomic claim, insert and guarded
status patches.

Contention Model:
    `claim` is the only operation that races. It runs as one guarded
    UPDATE whose target row is chosen by an oldest-first
    `FOR UPDATE SKIP LOCKED` subquery, so concurrent workers partition the
    approved backlog without blocking each other and never receive the
    same record. The trailing `status = 'approved'` guard turns the
    statement into a compare-and-set on engines that ignore SKIP LOCKED
    (SQLite serialises writers instead).

    After a claim only the claiming worker patches the record until it
    reaches a terminal status, so every other write is last-write-wins.

Invariants enforced here:
    - status changes follow autofix/state/issue_machine.py
    - pr_url is set if and only if status is pr_raised
    - error_message is present only while status is failed (truncated)
    - claimed_by / claimed_at are released when the pipeline finishes
    - updated_at is refreshed on every mutation
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, update
from sqlalchemy.orm import aliased, sessionmaker

from autofix.core.config import ERROR_MESSAGE_LIMIT, MAX_ATTEMPTS
from autofix.core.constants import PORTAL_REVIEWER, TRUNCATION_MARKER
from autofix.core.errors import (
    IssueNotFoundError,
    RetryLimitExceededError,
    ValidationError,
)
from autofix.database.models import Issue, new_issue_id, utcnow
from autofix.models.issue import IssueDraft, IssueRecord, IssueStatus
from autofix.state.issue_machine import (
    CLAIM_RELEASING_STATUSES,
    INITIAL_STATUS,
    validate_transition,
)

logger = logging.getLogger(__name__)

# Columns a caller may write through patch(); everything else is owned by the store
PATCHABLE_FIELDS = frozenset({
    "title",
    "description",
    "source_url",
    "manual_instructions",
    "status",
    "pr_url",
    "error_message",
    "created_by",
    "approved_by",
})


def truncate_message(message: str, limit: int = ERROR_MESSAGE_LIMIT) -> str:
    """Bound an error message to `limit` characters, marking the cut."""
    if limit <= 0 or len(message) <= limit:
        return message
    if limit <= len(TRUNCATION_MARKER):
        return message[:limit]
    return message[: limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER


class IssueStore:
    """
    Repository over the `issues` table.

    Every public method opens its own short transaction; records are
    returned as detached IssueRecord snapshots.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        error_message_limit: int = ERROR_MESSAGE_LIMIT,
        max_attempts: int = MAX_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self.error_message_limit = error_message_limit
        self.max_attempts = max_attempts
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, issue_id: str) -> IssueRecord:
        with self._session_factory() as session:
            issue = session.get(Issue, issue_id)
            if issue is None:
                raise IssueNotFoundError(issue_id)
            return IssueRecord.model_validate(issue)

    def list_issues(self, status: Optional[Union[IssueStatus, str]] = None) -> List[IssueRecord]:
        """Newest-first projection, optionally filtered by status."""
        stmt = select(Issue).order_by(Issue.created_at.desc(), Issue.id.desc())
        if status is not None:
            stmt = stmt.where(Issue.status == self._coerce_status(status).value)
        with self._session_factory() as session:
            return [IssueRecord.model_validate(row) for row in session.scalars(stmt)]

    # ------------------------------------------------------------------
    # Insert
    # ------------------------------------------------------------------
    def insert(self, draft: Union[IssueDraft, Mapping[str, Any]]) -> str:
        """Insert a new issue as `reported` and return its id."""
        if not isinstance(draft, IssueDraft):
            try:
                draft = IssueDraft.model_validate(dict(draft))
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid issue: {exc}") from exc
        if not draft.title:
            raise ValidationError("Issue title must not be empty")

        now = self._clock()
        issue = Issue(
            id=new_issue_id(),
            created_at=now,
            updated_at=now,
            title=draft.title,
            description=draft.description,
            source_url=draft.source_url,
            manual_instructions=draft.manual_instructions,
            created_by=draft.created_by,
            status=INITIAL_STATUS.value,
            attempt_count=0,
        )
        with self._session_factory() as session, session.begin():
            session.add(issue)
        logger.info("Inserted issue %s: %s", issue.id, issue.title)
        return issue.id

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------
    def claim(self, worker_id: str) -> Optional[IssueRecord]:
        """
        Atomically move the oldest approved issue to in_progress for
        `worker_id`. Returns None when nothing is eligible.
        """
        if not worker_id:
            raise ValidationError("worker_id must not be empty")

        now = self._clock()
        candidate = aliased(Issue, name="candidate")
        next_id = (
            select(candidate.id)
            .where(candidate.status == IssueStatus.APPROVED.value)
            .order_by(candidate.created_at, candidate.id)
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        stmt = (
            update(Issue)
            .where(Issue.id == next_id, Issue.status == IssueStatus.APPROVED.value)
            .values(
                status=IssueStatus.IN_PROGRESS.value,
                claimed_by=worker_id,
                claimed_at=now,
                updated_at=now,
                attempt_count=Issue.attempt_count + 1,
            )
            .returning(Issue.id)
            .execution_options(synchronize_session=False)
        )
        with self._session_factory() as session, session.begin():
            claimed_id = session.execute(stmt).scalar_one_or_none()

        if claimed_id is None:
            return None
        logger.info("Worker %s claimed issue %s", worker_id, claimed_id)
        return self.get(claimed_id)

    # ------------------------------------------------------------------
    # Patch
    # ------------------------------------------------------------------
    def patch(self, issue_id: str, fields: Mapping[str, Any]) -> IssueRecord:
        """
        Partial update. A `status` entry is checked against the state
        machine; entering in_progress is reserved for claim().
        """
        return self._apply(issue_id, fields, require_transition=False)

    def approve(self, issue_id: str, approved_by: Optional[str] = None) -> IssueRecord:
        """
        reported → approved, or failed → approved (re-approval). Without an
        explicit reviewer the approval is attributed to the portal.
        """
        return self._apply(
            issue_id,
            {"status": IssueStatus.APPROVED, "approved_by": approved_by or PORTAL_REVIEWER},
            require_transition=True,
        )

    def reject(self, issue_id: str) -> IssueRecord:
        return self._apply(issue_id, {"status": IssueStatus.REJECTED}, require_transition=True)

    def mark_pr_raised(self, issue_id: str, pr_url: str) -> IssueRecord:
        return self._apply(
            issue_id,
            {"status": IssueStatus.PR_RAISED, "pr_url": pr_url},
            require_transition=True,
        )

    def mark_failed(self, issue_id: str, message: str) -> IssueRecord:
        return self._apply(
            issue_id,
            {"status": IssueStatus.FAILED, "error_message": message},
            require_transition=True,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _apply(self, issue_id: str, fields: Mapping[str, Any], require_transition: bool) -> IssueRecord:
        fields = dict(fields)
        unknown = set(fields) - PATCHABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields not patchable: {', '.join(sorted(unknown))}")
        if "title" in fields and not (fields["title"] or "").strip():
            raise ValidationError("Issue title must not be empty")

        now = self._clock()
        with self._session_factory() as session, session.begin():
            issue = session.execute(
                select(Issue).where(Issue.id == issue_id).with_for_update()
            ).scalar_one_or_none()
            if issue is None:
                raise IssueNotFoundError(issue_id)

            current = IssueStatus(issue.status)
            target = self._coerce_status(fields.get("status", current))
            if require_transition and target == current:
                validate_transition(current, target)
            if target != current:
                if target == IssueStatus.IN_PROGRESS:
                    raise ValidationError("Issues enter in_progress only through claim()")
                validate_transition(current, target)
                self._check_attempt_guard(issue, current, target)

            values = self._resolve_values(issue, current, target, fields, now)
            for key, value in values.items():
                setattr(issue, key, value)

        record = self.get(issue_id)
        if target != current:
            logger.info("Issue %s: %s -> %s", issue_id, current.value, target.value)
        return record

    @staticmethod
    def _coerce_status(status: Union[IssueStatus, str]) -> IssueStatus:
        try:
            return IssueStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown status: {status}") from exc

    def _check_attempt_guard(self, issue: Issue, current: IssueStatus, target: IssueStatus) -> None:
        if self.max_attempts <= 0:
            return
        if current == IssueStatus.FAILED and target == IssueStatus.APPROVED:
            if issue.attempt_count >= self.max_attempts:
                raise RetryLimitExceededError(issue.id, issue.attempt_count, self.max_attempts)

    def _resolve_values(
        self,
        issue: Issue,
        current: IssueStatus,
        target: IssueStatus,
        fields: Dict[str, Any],
        now: datetime,
    ) -> Dict[str, Any]:
        values = {k: v for k, v in fields.items() if k != "status"}
        values["status"] = target.value
        values["updated_at"] = now

        pr_url = values.get("pr_url", issue.pr_url)
        if target == IssueStatus.PR_RAISED:
            if not pr_url:
                raise ValidationError("pr_raised requires a pr_url")
        elif values.get("pr_url"):
            raise ValidationError("pr_url may only be set together with status pr_raised")

        if target == IssueStatus.FAILED:
            message = values.get("error_message", issue.error_message)
            if not message:
                raise ValidationError("failed requires an error_message")
            values["error_message"] = truncate_message(str(message), self.error_message_limit)
        elif values.get("error_message"):
            raise ValidationError("error_message may only be set together with status failed")
        else:
            values["error_message"] = None

        if target != current:
            if target == IssueStatus.APPROVED:
                values["approved_at"] = now
            if target in CLAIM_RELEASING_STATUSES:
                values["claimed_by"] = None
                values["claimed_at"] = None
        return values
