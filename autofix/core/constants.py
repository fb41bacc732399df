"""
Constants
Centralised storage for branch naming, commit/PR wording and pipeline messages.
"""
BRANCH_PREFIX = "auto/"
COMMIT_TEMPLATE = "Fix issue {id}: {title}"
PR_TITLE_TEMPLATE = "Fix: {title}"
PR_BODY_TEMPLATE = "Automatically generated fix for issue {id}."
NO_CHANGES_MESSAGE = "No changes were produced by the remediation agent for this issue."
NO_INSTRUCTIONS = "None."
UNLABELED_TITLE = "Unlabeled issue"
TRUNCATION_MARKER = "..."
INDEX_LOCK = "index.lock"
PORTAL_REVIEWER = "portal"
NO_PR_URL_MESSAGE = "PR host returned no URL for the pull request."
