"""
PR Agent
========
Pull-request host collaborator, backed by the GitHub CLI (`gh`).

    gh pr create --head <branch> --base <base> --title <t> --body <b>

The PR URL is the first output line containing an http(s) URL; when no
line matches, the raw output is returned unchanged. If gh refuses because
a PR for the head branch already exists, the URL it prints in that
refusal is used, so a rerun that pushes new commits reuses the open PR.
"""
import re
import subprocess
import logging
from typing import List

from autofix.core.config import GH_BIN, PR_COMMAND_TIMEOUT
from autofix.core.errors import CommandError, CommandTimeoutError

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"https?://\S+")
_ALREADY_EXISTS_RE = re.compile(r"already exists", re.IGNORECASE)


def extract_pr_url(output: str) -> str:
    """First line carrying an http(s) URL, else the raw output."""
    for line in output.splitlines():
        if _URL_RE.search(line):
            return line.strip()
    return output.strip()


class PRAgent:
    """Opens pull requests through the gh CLI in the working copy."""

    def __init__(
        self,
        workspace_path: str,
        gh_bin: str = GH_BIN,
        timeout: float = PR_COMMAND_TIMEOUT,
    ) -> None:
        self.workspace_path = workspace_path
        self.gh_bin = gh_bin
        self.timeout = timeout

    def build_command(self, head: str, base: str, title: str, body: str) -> List[str]:
        return [
            self.gh_bin, "pr", "create",
            "--head", head,
            "--base", base,
            "--title", title,
            "--body", body,
        ]

    def create_pull_request(self, head: str, base: str, title: str, body: str) -> str:
        """Open a PR and return its URL."""
        command = self.build_command(head, base, title, body)
        logger.info("> %s pr create --head %s --base %s", self.gh_bin, head, base)
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
            if _ALREADY_EXISTS_RE.search(output) and _URL_RE.search(output):
                existing = _URL_RE.search(output).group(0)
                logger.warning("PR for %s already exists, reusing %s", head, existing)
                return existing
            logger.error("gh pr create failed (%s): %s", e.returncode, output.strip())
            raise CommandError(command, e.returncode, output) from e
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(command, self.timeout) from e

        pr_url = extract_pr_url(result.stdout)
        logger.info("Opened pull request: %s", pr_url)
        return pr_url
