import pytest
from datetime import datetime, timedelta, timezone

from autofix.core.errors import CommandError
from autofix.database.config import build_engine, build_session_factory, init_db
from autofix.services.issue_store import IssueStore


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start=datetime(2026, 1, 1, tzinfo=timezone.utc), step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        self.now = self.now + self.step
        return self.now


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'issues.db'}")
    init_db(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return IssueStore(session_factory, clock=StepClock())


class FakeVcs:
    """In-memory VersionControl that records every call."""

    def __init__(self, changes=True, fail_on=None, error=None):
        self.calls = []
        self.changes = changes
        self.fail_on = fail_on
        self.error = error or CommandError(["git", str(fail_on)], 1, "fatal: boom")

    def _record(self, name, *args):
        self.calls.append((name, *args))
        if name == self.fail_on:
            raise self.error

    def sync_base(self, base_branch):
        self._record("sync_base", base_branch)

    def checkout_fresh_branch(self, branch):
        self._record("checkout_fresh_branch", branch)

    def clear_index_lock(self):
        self._record("clear_index_lock")
        return False

    def has_changes(self):
        self._record("has_changes")
        return self.changes

    def add_all(self):
        self._record("add_all")

    def commit(self, message):
        self._record("commit", message)

    def push_upstream(self, branch):
        self._record("push_upstream", branch)

    def names(self):
        return [c[0] for c in self.calls]
