"""
Process Runner
==============
Runs a long-lived external agent process (the Codex CLI) with a deadline,
streaming its stdout to the log line by line as it arrives.

BOUNDARY RULES:
    - Runner ONLY executes and observes.
    - Runner NEVER interprets the output; callers decide what it means.
    - A process still running at its deadline is killed and reported as
      CommandTimeoutError.

The command line itself may carry a very long prompt, so callers pass a
short `display` form used for logging and error messages.
"""
import time
import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import List, Optional, Sequence

from autofix.core.errors import CommandTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """
    Outcome of one streamed process run.

    Fields
    ------
    exit_code : int
        Process exit code (0 = success).
    output : str
        Full captured stdout.
    execution_time_seconds : float
        Wall clock duration.
    """
    exit_code: int = -1
    output: str = ""
    execution_time_seconds: float = 0.0


def create_log_excerpt(full_log: str, head: int = 20, tail: int = 20) -> str:
    """First and last N lines of a long log."""
    lines = full_log.splitlines()
    if len(lines) <= head + tail:
        return full_log
    omitted = len(lines) - head - tail
    return "\n".join(lines[:head] + [f"... ({omitted} lines omitted) ..."] + lines[-tail:])


def _pump(stream, sink: List[str], log_prefix: str) -> None:
    for line in iter(stream.readline, ""):
        sink.append(line)
        logger.info("%s %s", log_prefix, line.rstrip("\n"))
    stream.close()


def run_streaming(
    command: Sequence[str],
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
    display: Optional[Sequence[str]] = None,
    log_prefix: str = "|",
) -> ProcessResult:
    """
    Run `command`, streaming stdout to the log, and wait up to `timeout`
    seconds. stderr is inherited so the tool's own diagnostics stay visible.

    Raises
    ------
    CommandTimeoutError
        The process outlived its deadline and was killed.
    OSError
        The executable could not be started.
    """
    shown = list(display or command)
    logger.info("> %s", " ".join(shown))
    start = time.monotonic()

    proc = subprocess.Popen(
        list(command),
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=None,
        text=True,
        bufsize=1,
    )
    chunks: List[str] = []
    reader = threading.Thread(target=_pump, args=(proc.stdout, chunks, log_prefix), daemon=True)
    reader.start()

    try:
        exit_code = proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired as e:
        proc.kill()
        proc.wait()
        reader.join(timeout=5)
        logger.error("%s killed after %ss", shown[0], timeout)
        raise CommandTimeoutError(shown, timeout) from e

    reader.join()
    return ProcessResult(
        exit_code=exit_code,
        output="".join(chunks),
        execution_time_seconds=time.monotonic() - start,
    )
