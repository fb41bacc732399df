"""
Finding Normalizer
==================
Coerces loosely-shaped detector findings into the Finding contract and
suppresses duplicates before they reach the store.

Alias keys accepted (first present wins):
    title                — title, Title, name
    description          — description, Description, details
    source_url           — source_url, sourceUrl, url, link
    manual_instructions  — manualInstructions, manual_instructions, instructions

Descriptions arrive with web-search citation artifacts
(e.g. "citeturn6view0", private-use glyphs) that are stripped here.
Only tokens carrying a digit are treated as citations, so ordinary words
like "views" or "search" survive.
"""
import re
import logging
from typing import Any, Iterable, List, Mapping, Optional, Set, Tuple

from autofix.core.constants import UNLABELED_TITLE
from autofix.models.finding import Finding

logger = logging.getLogger(__name__)

_TITLE_KEYS = ("title", "Title", "name")
_DESCRIPTION_KEYS = ("description", "Description", "details")
_URL_KEYS = ("source_url", "sourceUrl", "url", "link")
_INSTRUCTION_KEYS = ("manualInstructions", "manual_instructions", "instructions")

_BRACKETED_CITATION_RE = re.compile(r"\[(?:cite|turn|view)[^\]]*\]", re.IGNORECASE)
_CITATION_TOKEN_RE = re.compile(r"\b(?:cite|turn|view|search)[A-Za-z]*\d\w*", re.IGNORECASE)
_EMOJI_RE = re.compile("[\U0001F300-\U0001F9FF\u2600-\u26FF\u2700-\u27BF\uE000-\uF8FF]")
_WHITESPACE_RE = re.compile(r"\s+")


def _first(finding: Mapping[str, Any], keys: Tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = finding.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def strip_citations(text: Optional[str]) -> Optional[str]:
    """Remove citation markers and emoji, collapse whitespace."""
    if not text:
        return text
    cleaned = _BRACKETED_CITATION_RE.sub("", text)
    cleaned = _CITATION_TOKEN_RE.sub("", cleaned)
    cleaned = _EMOJI_RE.sub("", cleaned)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned or None


def normalize_finding(finding: Mapping[str, Any]) -> Finding:
    return Finding(
        title=_first(finding, _TITLE_KEYS) or UNLABELED_TITLE,
        description=strip_citations(_first(finding, _DESCRIPTION_KEYS)),
        source_url=_first(finding, _URL_KEYS),
        manual_instructions=_first(finding, _INSTRUCTION_KEYS),
    )


def normalize_findings(raw_findings: Iterable[Any]) -> List[Finding]:
    """Normalize every mapping in the batch; non-mapping entries are dropped."""
    findings: List[Finding] = []
    for raw in raw_findings:
        if not isinstance(raw, Mapping):
            logger.warning("Skipping malformed finding: %r", raw)
            continue
        findings.append(normalize_finding(raw))
    return findings


def dedupe_findings(
    findings: Iterable[Finding],
    existing_keys: Set[Tuple[str, Optional[str]]],
) -> List[Finding]:
    """
    Drop findings whose (title, source_url) is already stored, whatever
    its status, and repeats within the batch itself.
    """
    seen = set(existing_keys)
    unique: List[Finding] = []
    for finding in findings:
        if finding.dedup_key in seen:
            logger.info("Skipping known issue: %s", finding.title)
            continue
        seen.add(finding.dedup_key)
        unique.append(finding)
    return unique
