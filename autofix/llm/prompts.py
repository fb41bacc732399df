"""
Prompts
=======
Centralised store for the instructions handed to the external Codex agent
and to the extraction model.

Prompt Design Rules:
    - Remediation: fix ONLY the issue described, minimal targeted diff
    - Scan: report concrete content problems, never re-report known issues
    - Extraction: return a bare JSON object {"issues": [...]}, nothing else
"""
import json
from typing import Iterable, Mapping, Optional

from autofix.core.constants import NO_INSTRUCTIONS
from autofix.models.issue import IssueRecord


# ---------------------------------------------------------------------------
# Remediation
# ---------------------------------------------------------------------------
REMEDIATION_TEMPLATE = """
You are maintaining the website repo at {repo_dir}.
You have access to web_search to verify facts before making changes.

Issue JSON:
{issue_json}

Manual instructions (if any):
{manual_instructions}

Task:
- Understand the SPECIFIC issue described above. Use web_search if you need to verify facts or get current information.
- Make minimal, high-quality changes to fix ONLY this specific issue.
- DO NOT investigate or fix other issues you may notice - stay focused on the reported issue only.
- Keep your changes minimal and targeted to the specific problem.
"""


def build_remediation_prompt(issue: IssueRecord, repo_dir: str) -> str:
    """Full structured issue data plus its manual instructions (or the none sentinel)."""
    issue_json = json.dumps(issue.model_dump(mode="json"), indent=2)
    return REMEDIATION_TEMPLATE.format(
        repo_dir=repo_dir,
        issue_json=issue_json,
        manual_instructions=issue.manual_instructions or NO_INSTRUCTIONS,
    )


# ---------------------------------------------------------------------------
# Scan
# ---------------------------------------------------------------------------
SCAN_TEMPLATE = """
You are an autonomous QA bot with access to web search.
- Use your web_search tool to investigate {site_url} and research recent information about the site's content.
- Look for outdated information, incorrect content, broken messaging, or obvious inconsistencies.
- Focus on the main content pages and articles, not just headers/footers.
{focus}{existing}
- For every concrete issue you find, append it to the "issues" array of a JSON object. Each issue needs:
  - "title": short slug in sentence case
  - "description": why it is wrong, with evidence from your search
  - "source_url": the specific URL where the issue exists
  - "manualInstructions": optional hints for the fixer (null if none)
- DO NOT report issues that are already listed above in EXISTING ISSUES.
- Your final response MUST be an object with an "issues" array.
- Return {{"issues": []}} if nothing is wrong or all issues are already reported.
"""


def build_scan_prompt(
    site_url: str,
    existing: Iterable[Mapping[str, Optional[str]]] = (),
    focus: str = "",
) -> str:
    existing = list(existing)
    existing_block = ""
    if existing:
        lines = "\n".join(
            f'- "{item.get("title")}" at {item.get("source_url")} (status: {item.get("status")})'
            for item in existing
        )
        existing_block = f"\n\nEXISTING ISSUES (DO NOT REPORT THESE AGAIN):\n{lines}"
    focus_block = f"- Pay particular attention to: {focus}\n" if focus else ""
    return SCAN_TEMPLATE.format(site_url=site_url, focus=focus_block, existing=existing_block)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------
EXTRACTION_SYSTEM_PROMPT = """You are a JSON extraction assistant. The user will provide raw output from a Codex agent that investigated a website for issues. Extract and return ONLY a valid JSON object with this structure:
{
  "issues": [
    {
      "title": "string",
      "description": "string",
      "source_url": "string",
      "manualInstructions": "string or null"
    }
  ]
}

If no issues are present, return {"issues": []}. Do not include any other text."""
