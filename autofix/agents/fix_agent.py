"""
Fix Agent
=========
Remediation collaborator: hands one approved issue to the external Codex
coding agent, which edits the working copy in place.

BOUNDARY RULES:
    - The agent is trusted to operate inside the working copy.
    - Success is exit code 0. The diff is NOT validated here; the pipeline
      only checks that one exists.
    - stdout is streamed to the log but never parsed.
"""
import logging
from typing import List

from autofix.core.config import CODEX_BIN, REMEDIATION_TIMEOUT
from autofix.core.errors import CommandError
from autofix.executor.process_runner import ProcessResult, run_streaming
from autofix.llm.prompts import build_remediation_prompt
from autofix.models.issue import IssueRecord

logger = logging.getLogger(__name__)

# Non-interactive, network-enabled, allowed to write the workspace
CODEX_EXEC_FLAGS = [
    "exec",
    "--skip-git-repo-check",
    "--dangerously-bypass-approvals-and-sandbox",
    "--enable",
    "web_search_request",
    "-s",
    "workspace-write",
]


class FixAgent:
    """Runs `codex exec` against the worker's working copy."""

    def __init__(
        self,
        workspace_path: str,
        codex_bin: str = CODEX_BIN,
        timeout: float = REMEDIATION_TIMEOUT,
    ) -> None:
        self.workspace_path = workspace_path
        self.codex_bin = codex_bin
        self.timeout = timeout

    def build_prompt(self, issue: IssueRecord) -> str:
        return build_remediation_prompt(issue, self.workspace_path)

    def build_command(self, prompt: str) -> List[str]:
        return [self.codex_bin, *CODEX_EXEC_FLAGS, prompt]

    def remediate(self, issue: IssueRecord) -> ProcessResult:
        """
        Ask the agent to fix `issue`. Raises CommandError on a non-zero
        exit or when the binary cannot be started, CommandTimeoutError
        past the deadline.
        """
        command = self.build_command(self.build_prompt(issue))
        display = [*command[:-1], "[prompt]"]
        logger.info("Invoking remediation agent for issue %s", issue.id)
        try:
            result = run_streaming(
                command,
                cwd=self.workspace_path,
                timeout=self.timeout,
                display=display,
                log_prefix="[codex]",
            )
        except OSError as e:
            raise CommandError(display, -1, f"Failed to spawn codex: {e}") from e

        if result.exit_code != 0:
            raise CommandError(display, result.exit_code, f"Codex exited with code {result.exit_code}")
        logger.info(
            "Remediation agent finished for issue %s in %.1fs",
            issue.id, result.execution_time_seconds,
        )
        return result
