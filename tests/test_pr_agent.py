import pytest
import subprocess
from unittest.mock import MagicMock, patch

from autofix.agents.pr_agent import PRAgent, extract_pr_url
from autofix.core.errors import CommandError, CommandTimeoutError


@pytest.fixture
def pr_agent():
    return PRAgent("/repo", gh_bin="gh", timeout=30)


def test_extract_first_url_line():
    output = "Creating pull request for auto/1 into main\n\nhttps://github.com/o/r/pull/12\nhttps://other\n"
    assert extract_pr_url(output) == "https://github.com/o/r/pull/12"


def test_extract_falls_back_to_raw_output():
    assert extract_pr_url("  created, no link  \n") == "created, no link"


@patch("subprocess.run")
def test_create_pull_request(mock_run, pr_agent):
    mock_run.return_value = MagicMock(stdout="https://github.com/o/r/pull/3\n", returncode=0)

    url = pr_agent.create_pull_request("auto/1", "main", "Fix: Typo", "Automatically generated fix for issue 1.")

    assert url == "https://github.com/o/r/pull/3"
    assert mock_run.call_args.args[0] == [
        "gh", "pr", "create",
        "--head", "auto/1",
        "--base", "main",
        "--title", "Fix: Typo",
        "--body", "Automatically generated fix for issue 1.",
    ]
    assert mock_run.call_args.kwargs["cwd"] == "/repo"


@patch("subprocess.run")
def test_existing_pull_request_is_reused(mock_run, pr_agent):
    mock_run.side_effect = subprocess.CalledProcessError(
        1, ["gh"],
        stderr='a pull request for branch "auto/1" into branch "main" already exists:\nhttps://github.com/o/r/pull/9\n',
    )

    assert pr_agent.create_pull_request("auto/1", "main", "t", "b") == "https://github.com/o/r/pull/9"


@patch("subprocess.run")
def test_failure_raises_command_error(mock_run, pr_agent):
    mock_run.side_effect = subprocess.CalledProcessError(1, ["gh"], stderr="HTTP 401: Bad credentials")

    with pytest.raises(CommandError) as exc:
        pr_agent.create_pull_request("auto/1", "main", "t", "b")
    assert "Bad credentials" in str(exc.value)


@patch("subprocess.run")
def test_timeout(mock_run, pr_agent):
    mock_run.side_effect = subprocess.TimeoutExpired(["gh"], 30)
    with pytest.raises(CommandTimeoutError):
        pr_agent.create_pull_request("auto/1", "main", "t", "b")
