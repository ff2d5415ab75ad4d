"""
Exception taxonomy and error logging for answerbank.

Internal layers raise these; the AnswerBank facade turns them into
structured results. The CLI logs full stack traces for debugging while
showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class AnswerBankError(Exception):
    """Base class for expected, caller-reportable failures."""


class NotFound(AnswerBankError):
    """Requested content id is absent from the store."""

    def __init__(self, id: str, role: str = "Content"):
        self.id = id
        super().__init__(f'{role} "{id}" not found')


class BackingStoreUnavailable(AnswerBankError):
    """The key-value collaborator is missing or failing."""

    def __init__(self, message: str = "Backing store unavailable; the store is read-only"):
        super().__init__(message)


class InvalidOperation(AnswerBankError):
    """Rejected before any mutation was applied."""


def _error_log_path() -> Path:
    """Resolve error log path, respecting ANSWERBANK_STORE_PATH."""
    store = os.environ.get("ANSWERBANK_STORE_PATH")
    if store:
        return Path(store) / "answerbank-errors.log"
    return Path.home() / ".answerbank" / "answerbank-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log; don't crash over it
    return log_path
