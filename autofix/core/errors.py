"""
Errors
======
Exception taxonomy for the issue lifecycle.

Store boundary:
    ValidationError          — malformed insert/patch, never reaches the worker
    IssueNotFoundError       — unknown issue id
    IllegalTransitionError   — status change not allowed by the state machine
    RetryLimitExceededError  — re-approval refused by the attempt guard

Pipeline (recorded as `failed`, never propagated to the worker loop):
    PipelineStepFailure      — base class
    CommandError             — external process exited non-zero
    CommandTimeoutError      — external process exceeded its deadline
    NoChangesProducedError   — remediation left the working copy clean

Producer side:
    ExtractionFailure        — detector output could not be coerced into findings

Startup:
    ConfigurationError       — required settings missing (the only fatal class)
"""
from typing import Sequence


class AutofixError(Exception):
    """Base class for all domain errors."""


class ValidationError(AutofixError):
    pass


class IssueNotFoundError(AutofixError):
    def __init__(self, issue_id: str) -> None:
        super().__init__(f"Issue {issue_id} not found")
        self.issue_id = issue_id


class IllegalTransitionError(AutofixError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Illegal transition: {current} -> {target}")
        self.current = current
        self.target = target


class RetryLimitExceededError(AutofixError):
    def __init__(self, issue_id: str, attempts: int, limit: int) -> None:
        super().__init__(
            f"Issue {issue_id} has used {attempts} of {limit} allowed attempts"
        )
        self.issue_id = issue_id
        self.attempts = attempts
        self.limit = limit


class PipelineStepFailure(AutofixError):
    """Expected failure of one remediation step."""


class CommandError(PipelineStepFailure):
    def __init__(self, command: Sequence[str], returncode: int, output: str = "") -> None:
        self.command = list(command)
        self.returncode = returncode
        self.output = output or ""
        message = f"Command failed ({returncode}): {' '.join(self.command)}"
        if self.output.strip():
            message += f"\n{self.output.strip()}"
        super().__init__(message)


class CommandTimeoutError(PipelineStepFailure):
    def __init__(self, command: Sequence[str], timeout: float) -> None:
        self.command = list(command)
        self.timeout = timeout
        super().__init__(
            f"Command timed out after {timeout}s: {' '.join(self.command)}"
        )


class NoChangesProducedError(PipelineStepFailure):
    pass


class ExtractionFailure(AutofixError):
    pass


class ConfigurationError(AutofixError):
    pass
