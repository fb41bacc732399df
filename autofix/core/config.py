"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    DATABASE_URL           — SQLAlchemy URL of the issue store (required)
    WORKER_ID              — claimant identity written to claimed_by (default: worker-1)
    REPO_DIR               — exclusive working copy of the target repo (default: /repo)
    BASE_BRANCH            — branch PRs are opened against (default: main)
    WORKER_IDLE_SLEEP_MS   — sleep when no approved issue is claimable (default: 60000)
    WORKER_ERROR_SLEEP_MS  — sleep after a loop-level fault (default: 10000)
    ERROR_MESSAGE_LIMIT    — max stored length of error_message (default: 2000)
    MAX_ATTEMPTS           — claims allowed before re-approval is refused (default: 0 = unlimited)
    OPENAI_API_KEY         — extraction model key, required by the scanner only

Timeout Philosophy:
    Every external process gets a deadline. A hung git/codex/gh process is
    killed and the issue is written as failed, instead of holding its claim
    forever. Values are in seconds.
"""
import os
from typing import List

from dotenv import load_dotenv

from autofix.core.errors import ConfigurationError

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")

# Worker
WORKER_ID = os.getenv("WORKER_ID", "worker-1")
REPO_DIR = os.getenv("REPO_DIR", "/repo")
BASE_BRANCH = os.getenv("BASE_BRANCH", "main")
WORKER_IDLE_SLEEP_MS = int(os.getenv("WORKER_IDLE_SLEEP_MS", 60000))
WORKER_ERROR_SLEEP_MS = int(os.getenv("WORKER_ERROR_SLEEP_MS", 10000))

# Store
ERROR_MESSAGE_LIMIT = int(os.getenv("ERROR_MESSAGE_LIMIT", 2000))
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", 0))

# External process deadlines (seconds)
GIT_COMMAND_TIMEOUT = int(os.getenv("GIT_COMMAND_TIMEOUT", 300))
REMEDIATION_TIMEOUT = int(os.getenv("REMEDIATION_TIMEOUT", 1800))
PR_COMMAND_TIMEOUT = int(os.getenv("PR_COMMAND_TIMEOUT", 120))
SCAN_TIMEOUT = int(os.getenv("SCAN_TIMEOUT", 1800))

# Binaries
GIT_BIN = os.getenv("GIT_BIN", "git")
CODEX_BIN = os.getenv("CODEX_BIN", "codex")
GH_BIN = os.getenv("GH_BIN", "gh")

# Scanner
SITE_URL = os.getenv("SITE_URL", "https://example.com")
RULE_FOCUS = os.getenv("RULE_FOCUS", "")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
EXTRACTION_MODEL = os.getenv("EXTRACTION_MODEL", "gpt-5-mini")
EXTRACTION_TIMEOUT = int(os.getenv("EXTRACTION_TIMEOUT", 120))

# Portal API
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]


def require_settings(*names: str) -> None:
    """
    Fail fast at startup when required settings are missing.

    Looks names up in this module first (so tests can patch them) and
    raises a single ConfigurationError listing every missing variable.
    """
    module_globals = globals()
    missing = [name for name in names if not module_globals.get(name)]
    if missing:
        raise ConfigurationError(
            f"Missing required configuration: {', '.join(missing)}"
        )
