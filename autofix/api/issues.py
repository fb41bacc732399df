"""
Issue Routes
============
HTTP surface used by the review portal.

    GET  /issues?status=        list newest-first
    GET  /issues/{id}           single issue
    POST /issues                manual entry (always inserted as reported)
    POST /issues/{id}/approve   reported|failed → approved
    POST /issues/{id}/reject    reported → rejected

Store errors map to 404 (unknown id), 409 (illegal transition / retry
limit) and 422 (validation).
"""
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from autofix.core.errors import (
    IllegalTransitionError,
    IssueNotFoundError,
    RetryLimitExceededError,
    ValidationError,
)
from autofix.database.config import get_session_factory
from autofix.models.issue import ApprovalRequest, IssueDraft, IssueRecord, IssueStatus
from autofix.parser.finding_normalizer import strip_citations
from autofix.services.issue_store import IssueStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/issues", tags=["Issues"])


class IssueResponse(IssueRecord):
    description_clean: Optional[str] = None


def get_store() -> IssueStore:
    return IssueStore(get_session_factory())


def _to_response(record: IssueRecord) -> IssueResponse:
    return IssueResponse(
        **record.model_dump(),
        description_clean=strip_citations(record.description),
    )


def _raise_http(exc: Exception) -> NoReturn:
    if isinstance(exc, IssueNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, (IllegalTransitionError, RetryLimitExceededError)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, ValidationError):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    raise exc


@router.get("", response_model=List[IssueResponse])
def list_issues(
    status_filter: Optional[IssueStatus] = Query(default=None, alias="status"),
    store: IssueStore = Depends(get_store),
):
    """List issues, optionally filtered by `?status=`."""
    return [_to_response(r) for r in store.list_issues(status_filter)]


@router.get("/{issue_id}", response_model=IssueResponse)
def get_issue(issue_id: str, store: IssueStore = Depends(get_store)):
    try:
        return _to_response(store.get(issue_id))
    except IssueNotFoundError as e:
        _raise_http(e)


@router.post("", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
def create_issue(payload: IssueDraft, store: IssueStore = Depends(get_store)):
    """Manual entry path; lands as reported like producer findings."""
    try:
        issue_id = store.insert(payload)
    except ValidationError as e:
        _raise_http(e)
    return _to_response(store.get(issue_id))


@router.post("/{issue_id}/approve", response_model=IssueResponse)
def approve_issue(
    issue_id: str,
    payload: Optional[ApprovalRequest] = None,
    store: IssueStore = Depends(get_store),
):
    approved_by = payload.approved_by if payload else None
    try:
        return _to_response(store.approve(issue_id, approved_by=approved_by))
    except (IssueNotFoundError, IllegalTransitionError, RetryLimitExceededError, ValidationError) as e:
        _raise_http(e)


@router.post("/{issue_id}/reject", response_model=IssueResponse)
def reject_issue(issue_id: str, store: IssueStore = Depends(get_store)):
    try:
        return _to_response(store.reject(issue_id))
    except (IssueNotFoundError, IllegalTransitionError, ValidationError) as e:
        _raise_http(e)
