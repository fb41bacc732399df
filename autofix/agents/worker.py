"""
Worker
======
Polling control loop: claim → remediate → repeat.

    1. claim(worker_id)
    2. nothing claimable   → sleep idle interval, restart
    3. claimed issue       → run the pipeline (which always writes a terminal status)
    4. anything escaping   → log, sleep error interval, restart

The loop never exits because of one issue. An UnexpectedLoopFailure
(e.g. the terminal store write itself failing) can leave that issue
`in_progress`; that record needs operator attention.
"""
import time
import logging
from typing import Callable, Optional

from autofix.agents.orchestrator import Orchestrator
from autofix.core.config import WORKER_ERROR_SLEEP_MS, WORKER_ID, WORKER_IDLE_SLEEP_MS
from autofix.models.issue import IssueRecord
from autofix.services.issue_store import IssueStore

logger = logging.getLogger(__name__)


class Worker:
    """Single-threaded consumer of the approved backlog."""

    def __init__(
        self,
        store: IssueStore,
        orchestrator: Orchestrator,
        worker_id: str = WORKER_ID,
        idle_sleep_ms: int = WORKER_IDLE_SLEEP_MS,
        error_sleep_ms: int = WORKER_ERROR_SLEEP_MS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.worker_id = worker_id
        self.idle_sleep_ms = idle_sleep_ms
        self.error_sleep_ms = error_sleep_ms
        self._sleep = sleep

    def run_once(self) -> Optional[IssueRecord]:
        """Claim and process at most one issue. Returns the finished issue or None."""
        issue = self.store.claim(self.worker_id)
        if issue is None:
            return None
        return self.orchestrator.run(issue)

    def run_forever(self, max_cycles: Optional[int] = None) -> None:
        """
        Poll indefinitely. `max_cycles` bounds the number of iterations
        (used by tests and one-shot runs); None means run until killed.
        """
        logger.info("Worker %s started", self.worker_id)
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            cycles += 1
            try:
                finished = self.run_once()
            except Exception:
                logger.exception("Worker loop error")
                self._sleep(self.error_sleep_ms / 1000)
                continue

            if finished is None:
                logger.info("No approved issues. Sleeping %ss...", self.idle_sleep_ms / 1000)
                self._sleep(self.idle_sleep_ms / 1000)
                continue

            logger.info("Issue %s finished as %s", finished.id, finished.status.value)
