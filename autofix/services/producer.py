"""
Producer
========
One scan cycle of the detector side:

    fetch existing issues → scan site → extract findings
        → normalize → dedupe against (title, source_url) → insert as reported

An ExtractionFailure aborts the cycle before anything is inserted. A
failed insert is logged and the rest of the batch continues.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

from autofix.parser.finding_normalizer import dedupe_findings, normalize_findings
from autofix.services.issue_store import IssueStore

logger = logging.getLogger(__name__)


class Detector(Protocol):
    def scan(self, site_url: str, existing: List[Dict[str, Any]]) -> str: ...


class Extractor(Protocol):
    def extract(self, raw_output: str) -> List[Dict[str, Any]]: ...


@dataclass
class ScanSummary:
    found: int = 0
    inserted: int = 0
    skipped: int = 0
    failed: int = 0


def run_scan(store: IssueStore, detector: Detector, extractor: Extractor, site_url: str) -> ScanSummary:
    logger.info("Fetching existing issues...")
    existing_records = store.list_issues()
    existing = [
        {"title": r.title, "source_url": r.source_url, "status": r.status.value}
        for r in existing_records
    ]
    existing_keys = {(r.title, r.source_url) for r in existing_records}
    logger.info("Found %d existing issues in database", len(existing))

    logger.info("Scanning %s...", site_url)
    raw_output = detector.scan(site_url, existing)
    raw_findings = extractor.extract(raw_output)

    findings = normalize_findings(raw_findings)
    fresh = dedupe_findings(findings, existing_keys)
    summary = ScanSummary(found=len(findings), skipped=len(findings) - len(fresh))

    if not fresh:
        logger.info("No new issues reported.")
        return summary

    for finding in fresh:
        try:
            store.insert(finding.to_draft())
        except Exception as e:
            logger.error("Failed to insert issue %r: %s", finding.title, e)
            summary.failed += 1
            continue
        logger.info("Inserted NEW issue: %s", finding.title)
        summary.inserted += 1

    logger.info(
        "Scan complete: %d found, %d inserted, %d skipped, %d failed",
        summary.found, summary.inserted, summary.skipped, summary.failed,
    )
    return summary
