"""
Orchestrator
============
The remediation pipeline for one claimed issue.

    1. Sync base branch   (fetch → checkout → pull --ff-only)
    2. Working branch     (checkout -B auto/<id>)
    3. Remediate          (external Codex agent edits the working copy)
    4. Clear stale lock   (.git/index.lock left by the agent; never fails)
    5. Inspect            (status --porcelain; empty → failed "no changes")
    6. Publish            (add → commit → push -u → gh pr create)
    7. Record             (pr_raised + URL; no URL → failed)

Failure Contract:
    Any exception from steps 1–6 is caught at the pipeline boundary and
    written as `failed` with a bounded message. The pipeline always
    finishes with a terminal write for the claimed issue. Only a failure
    of that store write itself escapes to the worker loop.

Collaborators are injected (VersionControl, RemediationAgent,
PullRequestHost) so tests can substitute fakes for the CLIs.
"""
import logging
from typing import Protocol

from autofix.agents.git_agent import branch_name_for
from autofix.core.config import BASE_BRANCH
from autofix.core.constants import (
    COMMIT_TEMPLATE,
    NO_CHANGES_MESSAGE,
    NO_PR_URL_MESSAGE,
    PR_BODY_TEMPLATE,
    PR_TITLE_TEMPLATE,
)
from autofix.core.errors import NoChangesProducedError, PipelineStepFailure
from autofix.models.issue import IssueRecord
from autofix.services.issue_store import IssueStore

logger = logging.getLogger(__name__)


class VersionControl(Protocol):
    def sync_base(self, base_branch: str) -> None: ...
    def checkout_fresh_branch(self, branch: str) -> None: ...
    def clear_index_lock(self) -> bool: ...
    def has_changes(self) -> bool: ...
    def add_all(self) -> None: ...
    def commit(self, message: str) -> None: ...
    def push_upstream(self, branch: str) -> None: ...


class RemediationAgent(Protocol):
    def remediate(self, issue: IssueRecord) -> object: ...


class PullRequestHost(Protocol):
    def create_pull_request(self, head: str, base: str, title: str, body: str) -> str: ...


def _describe_failure(exc: BaseException) -> str:
    if isinstance(exc, PipelineStepFailure):
        return str(exc) or exc.__class__.__name__
    text = str(exc)
    return f"{exc.__class__.__name__}: {text}" if text else exc.__class__.__name__


class Orchestrator:
    """
    Drives one claimed issue through the remediation pipeline and writes
    its terminal status. Requires exclusive use of the working copy.
    """

    def __init__(
        self,
        store: IssueStore,
        vcs: VersionControl,
        fix_agent: RemediationAgent,
        pr_host: PullRequestHost,
        base_branch: str = BASE_BRANCH,
    ) -> None:
        self.store = store
        self.vcs = vcs
        self.fix_agent = fix_agent
        self.pr_host = pr_host
        self.base_branch = base_branch

    def run(self, issue: IssueRecord) -> IssueRecord:
        """Execute the pipeline; returns the issue after its terminal write."""
        logger.info("Processing issue %s: %s", issue.id, issue.title)
        branch = branch_name_for(issue.id)

        try:
            pr_url = self._remediate_and_publish(issue, branch)
        except Exception as exc:
            message = _describe_failure(exc)
            if isinstance(exc, PipelineStepFailure):
                logger.warning("Issue %s failed: %s", issue.id, message)
            else:
                logger.exception("Issue %s failed with unexpected error", issue.id)
            return self.store.mark_failed(issue.id, message)

        return self.store.mark_pr_raised(issue.id, pr_url)

    def _remediate_and_publish(self, issue: IssueRecord, branch: str) -> str:
        logger.info("Step 1: Syncing base branch %s", self.base_branch)
        self.vcs.sync_base(self.base_branch)

        logger.info("Step 2: Preparing working branch %s", branch)
        self.vcs.checkout_fresh_branch(branch)

        logger.info("Step 3: Running remediation agent")
        self.fix_agent.remediate(issue)

        # The agent may leave git's index lock behind
        self.vcs.clear_index_lock()

        logger.info("Step 4: Inspecting working copy")
        if not self.vcs.has_changes():
            raise NoChangesProducedError(NO_CHANGES_MESSAGE)

        logger.info("Step 5: Committing and pushing %s", branch)
        self.vcs.add_all()
        self.vcs.commit(COMMIT_TEMPLATE.format(id=issue.id, title=issue.title))
        self.vcs.push_upstream(branch)

        logger.info("Step 6: Opening pull request")
        pr_url = self.pr_host.create_pull_request(
            head=branch,
            base=self.base_branch,
            title=PR_TITLE_TEMPLATE.format(title=issue.title),
            body=PR_BODY_TEMPLATE.format(id=issue.id),
        )
        # pr_raised requires a URL; an empty one must fail inside the pipeline
        if not pr_url or not pr_url.strip():
            raise PipelineStepFailure(NO_PR_URL_MESSAGE)
        return pr_url.strip()
