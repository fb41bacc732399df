"""
Worker entry point.

    python worker.py

Claims approved issues as WORKER_ID and remediates them in REPO_DIR.
Run one process per working copy; scale out with distinct WORKER_IDs.
"""
import logging

from autofix.agents.fix_agent import FixAgent
from autofix.agents.git_agent import GitAgent
from autofix.agents.orchestrator import Orchestrator
from autofix.agents.pr_agent import PRAgent
from autofix.agents.worker import Worker
from autofix.core import config
from autofix.database.config import get_engine, get_session_factory, init_db
from autofix.services.issue_store import IssueStore
from autofix.utils.logging_config import setup_logging

logger = logging.getLogger("worker")


def build_worker() -> Worker:
    config.require_settings("DATABASE_URL", "WORKER_ID", "REPO_DIR", "BASE_BRANCH")
    init_db(get_engine())

    store = IssueStore(get_session_factory())
    orchestrator = Orchestrator(
        store=store,
        vcs=GitAgent(config.REPO_DIR),
        fix_agent=FixAgent(config.REPO_DIR),
        pr_host=PRAgent(config.REPO_DIR),
        base_branch=config.BASE_BRANCH,
    )
    return Worker(
        store=store,
        orchestrator=orchestrator,
        worker_id=config.WORKER_ID,
        idle_sleep_ms=config.WORKER_IDLE_SLEEP_MS,
        error_sleep_ms=config.WORKER_ERROR_SLEEP_MS,
    )


def main() -> None:
    setup_logging(level=logging.INFO, process_name="worker")
    worker = build_worker()
    logger.info(
        "Worker %s using %s (base branch %s)",
        config.WORKER_ID, config.REPO_DIR, config.BASE_BRANCH,
    )
    worker.run_forever()


if __name__ == "__main__":
    main()
