"""
Scanner entry point.

    python scanner.py

Runs one scan cycle against SITE_URL and inserts new findings as
reported issues. Exits non-zero when extraction fails.
"""
import sys
import logging

from autofix.agents.scanner_agent import ScannerAgent
from autofix.core import config
from autofix.core.errors import CommandError, CommandTimeoutError, ExtractionFailure
from autofix.database.config import get_engine, get_session_factory, init_db
from autofix.llm.extractor import FindingExtractor
from autofix.services.issue_store import IssueStore
from autofix.services.producer import run_scan
from autofix.utils.logging_config import setup_logging

SCANNER_VERSION = "1.1.2"

logger = logging.getLogger("scanner")


def main() -> int:
    setup_logging(level=logging.INFO, process_name="scanner")
    config.require_settings("DATABASE_URL", "OPENAI_API_KEY")
    init_db(get_engine())

    logger.info("[scanner v%s] Starting scan of %s", SCANNER_VERSION, config.SITE_URL)
    store = IssueStore(get_session_factory())
    try:
        summary = run_scan(
            store=store,
            detector=ScannerAgent(),
            extractor=FindingExtractor(),
            site_url=config.SITE_URL,
        )
    except (ExtractionFailure, CommandError, CommandTimeoutError) as e:
        logger.error("Scan cycle failed: %s", e)
        return 1

    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
