"""
Issue State Machine
===================
Authoritative statuses and legal transitions for an issue record.

    reported    → approved | rejected     (approval gate)
    approved    → in_progress             (worker claim)
    in_progress → pr_raised | failed      (pipeline outcome)
    failed      → approved                (human re-approval)

`rejected`, `pr_raised` and `done` have no outgoing transitions. `failed`
is terminal for the worker but recoverable by a human.
"""
from typing import Dict, FrozenSet, Union

from autofix.core.errors import IllegalTransitionError
from autofix.models.issue import IssueStatus

TRANSITIONS: Dict[IssueStatus, FrozenSet[IssueStatus]] = {
    IssueStatus.REPORTED: frozenset({IssueStatus.APPROVED, IssueStatus.REJECTED}),
    IssueStatus.APPROVED: frozenset({IssueStatus.IN_PROGRESS}),
    IssueStatus.IN_PROGRESS: frozenset({IssueStatus.PR_RAISED, IssueStatus.FAILED}),
    IssueStatus.FAILED: frozenset({IssueStatus.APPROVED}),
    IssueStatus.REJECTED: frozenset(),
    IssueStatus.PR_RAISED: frozenset(),
    IssueStatus.DONE: frozenset(),
}

INITIAL_STATUS = IssueStatus.REPORTED
# Statuses the claim releases into; claimed_by is cleared on entry
CLAIM_RELEASING_STATUSES = frozenset({IssueStatus.PR_RAISED, IssueStatus.FAILED})

StatusLike = Union[IssueStatus, str]


def can_transition(current: StatusLike, target: StatusLike) -> bool:
    return IssueStatus(target) in TRANSITIONS[IssueStatus(current)]


def validate_transition(current: StatusLike, target: StatusLike) -> None:
    """Raise IllegalTransitionError unless current → target is in the table."""
    if not can_transition(current, target):
        raise IllegalTransitionError(IssueStatus(current).value, IssueStatus(target).value)
