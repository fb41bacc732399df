"""
Orchestrator Tests
==================
Pipeline ordering and the failure contract, with in-memory fakes in
place of git, Codex and gh.
"""
import pytest
from unittest.mock import MagicMock

from autofix.agents.orchestrator import Orchestrator
from autofix.core.constants import NO_CHANGES_MESSAGE, NO_PR_URL_MESSAGE
from autofix.core.errors import CommandError, CommandTimeoutError
from autofix.models.issue import IssueStatus
from autofix.services.issue_store import IssueStore

from conftest import FakeVcs, StepClock


@pytest.fixture
def fix_agent():
    return MagicMock()


@pytest.fixture
def pr_host():
    host = MagicMock()
    host.create_pull_request.return_value = "https://github.com/o/r/pull/1"
    return host


def _claim(store, title="Stale year in footer"):
    issue_id = store.insert({"title": title, "source_url": "https://example.com/"})
    store.approve(issue_id, approved_by="reviewer")
    return store.claim("worker-1")


def test_success_raises_pr(store, fix_agent, pr_host):
    issue = _claim(store)
    vcs = FakeVcs()

    done = Orchestrator(store, vcs, fix_agent, pr_host, base_branch="main").run(issue)

    assert done.status == IssueStatus.PR_RAISED
    assert done.pr_url == "https://github.com/o/r/pull/1"
    assert done.error_message is None
    assert store.get(issue.id).status == IssueStatus.PR_RAISED

    branch = f"auto/{issue.id}"
    assert vcs.calls == [
        ("sync_base", "main"),
        ("checkout_fresh_branch", branch),
        ("clear_index_lock",),
        ("has_changes",),
        ("add_all",),
        ("commit", f"Fix issue {issue.id}: Stale year in footer"),
        ("push_upstream", branch),
    ]
    fix_agent.remediate.assert_called_once_with(issue)
    pr_host.create_pull_request.assert_called_once_with(
        head=branch,
        base="main",
        title="Fix: Stale year in footer",
        body=f"Automatically generated fix for issue {issue.id}.",
    )


def test_no_changes_fails_without_publishing(store, fix_agent, pr_host):
    issue = _claim(store)
    vcs = FakeVcs(changes=False)

    done = Orchestrator(store, vcs, fix_agent, pr_host).run(issue)

    assert done.status == IssueStatus.FAILED
    assert done.error_message == NO_CHANGES_MESSAGE
    assert done.pr_url is None
    assert "add_all" not in vcs.names()
    assert "push_upstream" not in vcs.names()
    pr_host.create_pull_request.assert_not_called()


@pytest.mark.parametrize("step", ["sync_base", "checkout_fresh_branch", "add_all", "commit", "push_upstream"])
def test_vcs_step_failure_is_recorded(store, fix_agent, pr_host, step):
    issue = _claim(store)
    vcs = FakeVcs(fail_on=step)

    done = Orchestrator(store, vcs, fix_agent, pr_host).run(issue)

    assert done.status == IssueStatus.FAILED
    assert "fatal: boom" in done.error_message
    assert vcs.names()[-1] == step
    pr_host.create_pull_request.assert_not_called()


def test_remediation_failure_stops_pipeline(store, fix_agent, pr_host):
    issue = _claim(store)
    vcs = FakeVcs()
    fix_agent.remediate.side_effect = CommandError(["codex", "exec", "[prompt]"], 1, "Codex exited with code 1")

    done = Orchestrator(store, vcs, fix_agent, pr_host).run(issue)

    assert done.status == IssueStatus.FAILED
    assert "Codex exited with code 1" in done.error_message
    assert vcs.names() == ["sync_base", "checkout_fresh_branch"]


def test_timeout_is_recorded(store, fix_agent, pr_host):
    issue = _claim(store)
    fix_agent.remediate.side_effect = CommandTimeoutError(["codex", "exec"], 1800)

    done = Orchestrator(store, FakeVcs(), fix_agent, pr_host).run(issue)

    assert done.status == IssueStatus.FAILED
    assert "timed out after 1800s" in done.error_message


def test_pr_failure_is_recorded(store, fix_agent, pr_host):
    issue = _claim(store)
    pr_host.create_pull_request.side_effect = CommandError(["gh", "pr", "create"], 1, "HTTP 401")

    done = Orchestrator(store, FakeVcs(), fix_agent, pr_host).run(issue)

    assert done.status == IssueStatus.FAILED
    assert "HTTP 401" in done.error_message


def test_unexpected_error_is_recorded_with_type(store, fix_agent, pr_host):
    issue = _claim(store)
    fix_agent.remediate.side_effect = RuntimeError("agent crashed")

    done = Orchestrator(store, FakeVcs(), fix_agent, pr_host).run(issue)

    assert done.status == IssueStatus.FAILED
    assert done.error_message == "RuntimeError: agent crashed"


def test_long_failure_is_truncated(session_factory, fix_agent, pr_host):
    store = IssueStore(session_factory, error_message_limit=100, clock=StepClock())
    issue = _claim(store)
    vcs = FakeVcs(fail_on="push_upstream", error=CommandError(["git", "push"], 1, "e" * 10000))

    done = Orchestrator(store, vcs, fix_agent, pr_host).run(issue)

    assert done.status == IssueStatus.FAILED
    assert len(done.error_message) == 100
    assert done.error_message.endswith("...")


def test_rerun_after_reapproval_reuses_branch(store, fix_agent, pr_host):
    issue = _claim(store)
    first_vcs = FakeVcs(changes=False)
    Orchestrator(store, first_vcs, fix_agent, pr_host).run(issue)

    store.approve(issue.id, approved_by="reviewer")
    again = store.claim("worker-1")
    second_vcs = FakeVcs()
    done = Orchestrator(store, second_vcs, fix_agent, pr_host).run(again)

    assert done.status == IssueStatus.PR_RAISED
    assert done.error_message is None
    assert first_vcs.calls[1] == second_vcs.calls[1] == ("checkout_fresh_branch", f"auto/{issue.id}")


def test_terminal_write_failure_escapes(fix_agent, pr_host):
    issue = MagicMock(id="issue-1", title="x")
    store = MagicMock()
    store.mark_pr_raised.side_effect = RuntimeError("database is gone")

    with pytest.raises(RuntimeError, match="database is gone"):
        Orchestrator(store, FakeVcs(), fix_agent, pr_host).run(issue)


@pytest.mark.parametrize("returned", ["", "   \n"])
def test_empty_pr_url_is_recorded_as_failed(store, fix_agent, pr_host, returned):
    issue = _claim(store)
    pr_host.create_pull_request.return_value = returned

    done = Orchestrator(store, FakeVcs(), fix_agent, pr_host).run(issue)

    assert done.status == IssueStatus.FAILED
    assert done.error_message == NO_PR_URL_MESSAGE
    assert done.pr_url is None
    assert done.claimed_by is None
