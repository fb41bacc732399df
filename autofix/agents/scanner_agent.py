"""
Scanner Agent
=============
Detector collaborator: asks the Codex CLI (with web search and network
access) to audit the target site and returns its raw output.

The output is free text; turning it into findings is the extractor's job.
A non-zero exit is logged and the partial output is still returned so the
extractor can salvage what the agent reported.
"""
import logging
from typing import Iterable, List, Mapping, Optional

from autofix.core.config import CODEX_BIN, RULE_FOCUS, SCAN_TIMEOUT
from autofix.core.errors import CommandError
from autofix.executor.process_runner import create_log_excerpt, run_streaming
from autofix.llm.prompts import build_scan_prompt

logger = logging.getLogger(__name__)

CODEX_SCAN_FLAGS = [
    "exec",
    "--skip-git-repo-check",
    "--dangerously-bypass-approvals-and-sandbox",
    "--enable",
    "web_search_request",
    "-c",
    "sandbox_workspace_write.network_access=true",
]


class ScannerAgent:
    def __init__(
        self,
        codex_bin: str = CODEX_BIN,
        timeout: float = SCAN_TIMEOUT,
        focus: str = RULE_FOCUS,
        workspace_path: Optional[str] = None,
    ) -> None:
        self.codex_bin = codex_bin
        self.timeout = timeout
        self.focus = focus
        self.workspace_path = workspace_path

    def build_command(self, prompt: str) -> List[str]:
        return [self.codex_bin, *CODEX_SCAN_FLAGS, prompt]

    def scan(self, site_url: str, existing: Iterable[Mapping[str, Optional[str]]] = ()) -> str:
        prompt = build_scan_prompt(site_url, existing, self.focus)
        command = self.build_command(prompt)
        display = [*command[:-1], "[instruction]"]
        try:
            result = run_streaming(
                command,
                cwd=self.workspace_path,
                timeout=self.timeout,
                display=display,
                log_prefix="[scan]",
            )
        except OSError as e:
            raise CommandError(display, -1, f"Failed to spawn codex: {e}") from e

        if result.exit_code != 0:
            logger.warning(
                "Codex exited with code %s, attempting extraction anyway", result.exit_code
            )
        logger.debug("Scan output excerpt:\n%s", create_log_excerpt(result.output))
        return result.output
