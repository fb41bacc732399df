"""
Git Agent
=========
Version-control collaborator for the remediation pipeline.

Runs the git CLI inside the worker's exclusive working copy. Every command:
    - runs with the working copy as cwd
    - has its output captured (and logged on failure)
    - raises CommandError on non-zero exit
    - raises CommandTimeoutError when its deadline passes

The working copy is a process-exclusive resource: index and branch
pointer are not safe for concurrent mutation, so one GitAgent instance
must never be shared between concurrent pipeline runs.
"""
import os
import re
import subprocess
import logging
from typing import List

from autofix.core.config import GIT_BIN, GIT_COMMAND_TIMEOUT
from autofix.core.constants import BRANCH_PREFIX, INDEX_LOCK
from autofix.core.errors import CommandError, CommandTimeoutError

logger = logging.getLogger(__name__)


def branch_name_for(issue_id: str) -> str:
    """
    Deterministic working branch for an issue: auto/<id>.

    Reruns after re-approval reuse the same name, so `checkout -B`
    overwrites whatever a previous attempt left behind.
    """
    safe_id = re.sub(r"[^A-Za-z0-9._-]", "-", str(issue_id)).strip("-.")
    if not safe_id:
        raise ValueError(f"Cannot derive branch name from issue id {issue_id!r}")
    return f"{BRANCH_PREFIX}{safe_id}"


class GitAgent:
    """
    Agent responsible for syncing the base branch, preparing the working
    branch and publishing the remediation commit.
    """

    def __init__(
        self,
        workspace_path: str,
        git_bin: str = GIT_BIN,
        timeout: float = GIT_COMMAND_TIMEOUT,
    ) -> None:
        self.workspace_path = workspace_path
        self.git_bin = git_bin
        self.timeout = timeout

    def _run(self, *args: str) -> str:
        command: List[str] = [self.git_bin, *args]
        logger.info("> %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                cwd=self.workspace_path,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            output = (e.stderr or "") + (e.stdout or "")
            logger.error("git %s failed (%s): %s", args[0], e.returncode, output.strip())
            raise CommandError(command, e.returncode, output) from e
        except subprocess.TimeoutExpired as e:
            logger.error("git %s timed out after %ss", args[0], self.timeout)
            raise CommandTimeoutError(command, self.timeout) from e
        return result.stdout.strip()

    # -------------------------------------------------------------------
    # Base branch sync
    # -------------------------------------------------------------------
    def fetch(self) -> None:
        self._run("fetch", "origin")

    def checkout(self, branch: str) -> None:
        self._run("checkout", branch)

    def pull_ff_only(self, branch: str) -> None:
        self._run("pull", "--ff-only", "origin", branch)

    def sync_base(self, base_branch: str) -> None:
        """Fetch, checkout and fast-forward the base branch."""
        self.fetch()
        self.checkout(base_branch)
        self.pull_ff_only(base_branch)

    # -------------------------------------------------------------------
    # Working branch
    # -------------------------------------------------------------------
    def checkout_fresh_branch(self, branch: str) -> None:
        """Create or reset `branch` to the current HEAD."""
        self._run("checkout", "-B", branch)

    def clear_index_lock(self) -> bool:
        """
        Remove a stale .git/index.lock left behind by an external tool.
        Idempotent; never raises. Returns True if a lock was removed.
        """
        lock_path = os.path.join(self.workspace_path, ".git", INDEX_LOCK)
        try:
            os.remove(lock_path)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Could not remove stale git lock %s: %s", lock_path, e)
            return False
        logger.info("Cleaned up stale git lock file")
        return True

    def status_porcelain(self) -> str:
        return self._run("status", "--porcelain")

    def has_changes(self) -> bool:
        """True if the working copy has staged or unstaged changes."""
        return bool(self.status_porcelain())

    # -------------------------------------------------------------------
    # Publish
    # -------------------------------------------------------------------
    def add_all(self) -> None:
        self._run("add", ".")

    def commit(self, message: str) -> None:
        self._run("commit", "-m", message)

    def push_upstream(self, branch: str) -> None:
        self._run("push", "-u", "origin", branch)
