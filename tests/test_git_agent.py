import pytest
import subprocess
from unittest.mock import MagicMock, patch

from autofix.agents.git_agent import GitAgent, branch_name_for
from autofix.core.errors import CommandError, CommandTimeoutError


@pytest.fixture
def git_agent(tmp_path):
    return GitAgent(str(tmp_path), timeout=30)


def _ok(stdout=""):
    return MagicMock(stdout=stdout, returncode=0)


def _commands(mock_run):
    return [c.args[0] for c in mock_run.call_args_list]


def test_branch_name_is_deterministic():
    assert branch_name_for("6f1c2d3e-0000-4000-8000-000000000001") == "auto/6f1c2d3e-0000-4000-8000-000000000001"
    assert branch_name_for("abc") == branch_name_for("abc")


def test_branch_name_sanitises_id():
    assert branch_name_for("a b/c") == "auto/a-b-c"
    with pytest.raises(ValueError):
        branch_name_for("///")


@patch("subprocess.run")
def test_sync_base_runs_fetch_checkout_pull(mock_run, git_agent):
    mock_run.return_value = _ok()

    git_agent.sync_base("main")

    assert _commands(mock_run) == [
        ["git", "fetch", "origin"],
        ["git", "checkout", "main"],
        ["git", "pull", "--ff-only", "origin", "main"],
    ]
    for c in mock_run.call_args_list:
        assert c.kwargs["cwd"] == git_agent.workspace_path
        assert c.kwargs["check"] is True
        assert c.kwargs["capture_output"] is True
        assert c.kwargs["timeout"] == 30


@patch("subprocess.run")
def test_publish_commands(mock_run, git_agent):
    mock_run.return_value = _ok()

    git_agent.checkout_fresh_branch("auto/42")
    git_agent.add_all()
    git_agent.commit("Fix issue 42: Stale year")
    git_agent.push_upstream("auto/42")

    assert _commands(mock_run) == [
        ["git", "checkout", "-B", "auto/42"],
        ["git", "add", "."],
        ["git", "commit", "-m", "Fix issue 42: Stale year"],
        ["git", "push", "-u", "origin", "auto/42"],
    ]


@patch("subprocess.run")
def test_has_changes_reads_porcelain_status(mock_run, git_agent):
    mock_run.return_value = _ok(" M index.html\n")
    assert git_agent.has_changes() is True

    mock_run.return_value = _ok("")
    assert git_agent.has_changes() is False
    assert mock_run.call_args.args[0] == ["git", "status", "--porcelain"]


@patch("subprocess.run")
def test_non_zero_exit_raises_command_error(mock_run, git_agent):
    mock_run.side_effect = subprocess.CalledProcessError(
        128, ["git", "fetch", "origin"], stderr="fatal: could not read from remote"
    )

    with pytest.raises(CommandError) as exc:
        git_agent.fetch()

    assert exc.value.returncode == 128
    assert "could not read from remote" in str(exc.value)
    assert exc.value.command == ["git", "fetch", "origin"]


@patch("subprocess.run")
def test_timeout_raises_command_timeout(mock_run, git_agent):
    mock_run.side_effect = subprocess.TimeoutExpired(["git", "push"], 30)

    with pytest.raises(CommandTimeoutError) as exc:
        git_agent.push_upstream("auto/1")
    assert exc.value.timeout == 30


def test_clear_index_lock_removes_stale_lock(tmp_path):
    git_dir = tmp_path / ".git"
    git_dir.mkdir()
    lock = git_dir / "index.lock"
    lock.write_text("")
    agent = GitAgent(str(tmp_path))

    assert agent.clear_index_lock() is True
    assert not lock.exists()
    # Idempotent
    assert agent.clear_index_lock() is False


def test_clear_index_lock_without_git_dir(tmp_path):
    assert GitAgent(str(tmp_path / "missing")).clear_index_lock() is False

