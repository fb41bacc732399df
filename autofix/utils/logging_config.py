"""
Logging Setup
=============
One console handler on stderr and one daily file per process
(logs/<process_name>_YYYYMMDD.log), so the worker, scanner and portal API
can share a logs/ directory.

Console lines are colored by level when stderr is a terminal; container
log collectors get the plain format.
"""
import logging
import sys
import os
from datetime import datetime
from typing import Dict, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVEL_COLORS = {
    logging.DEBUG: "\x1b[36m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[31;1m",
}
RESET = "\x1b[0m"

# Loggers whose level follows the process level
PROCESS_LOGGERS = ("autofix", "uvicorn", "uvicorn.error", "uvicorn.access", "main", "worker", "scanner")


class ColoredFormatter(logging.Formatter):
    """Wraps each record in its level's ANSI color."""

    def __init__(self, use_color: bool = True) -> None:
        super().__init__(LOG_FORMAT, datefmt=DATE_FORMAT)
        self.use_color = use_color
        self._by_level: Dict[int, logging.Formatter] = {
            level: logging.Formatter(color + LOG_FORMAT + RESET, datefmt=DATE_FORMAT)
            for level, color in LEVEL_COLORS.items()
        }

    def format(self, record: logging.LogRecord) -> str:
        formatter = self._by_level.get(record.levelno) if self.use_color else None
        # Non-standard levels fall back to the plain format
        if formatter is None:
            return super().format(record)
        return formatter.format(record)


def _stream_is_tty(stream) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def setup_logging(
    level=logging.INFO,
    process_name: str = "autofix",
    log_dir: str = "logs",
    use_color: Optional[bool] = None,
):
    """
    Setup centralized logging configuration.

    `use_color` defaults to whether stderr is a terminal.
    """
    root_logger = logging.getLogger()

    # Clear existing handlers to prevent duplicate logs
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(level)

    if use_color is None:
        use_color = _stream_is_tty(sys.stderr)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter(use_color=use_color))
    root_logger.addHandler(console_handler)

    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, f"{process_name}_{datetime.now().strftime('%Y%m%d')}.log")
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(file_handler)

    for logger_name in PROCESS_LOGGERS:
        l = logging.getLogger(logger_name)
        l.setLevel(level)
        l.propagate = True

    # SQL echo is noise at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    root_logger.info("Logging initialized for %s (Console + File) -> %s", process_name, log_file)
