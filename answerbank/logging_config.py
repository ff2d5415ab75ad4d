"""
Logging configuration for answerbank.

Quiet by default; debug output to stderr on request; a persistent
operations log per store.
"""

import logging
import sys
import warnings


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging to suppress verbose output.

    Args:
        quiet: If True, only warnings and above reach the console.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        logging.getLogger("answerbank").setLevel(logging.WARNING)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    # Re-enable warnings
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("answerbank").setLevel(logging.DEBUG)


def configure_ops_log(store_path):
    """Configure a persistent operations log for a store.

    Writes to {store_path}/answerbank-ops.log using a rotating file handler
    (1MB max, 3 backups). Always active regardless of --verbose.
    Returns the handler so it can be removed on close().
    """
    from logging.handlers import RotatingFileHandler
    from pathlib import Path

    log_path = Path(store_path) / "answerbank-ops.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    bank_logger = logging.getLogger("answerbank")
    bank_logger.addHandler(handler)
    # Ensure INFO gets through to the file even in quiet mode
    if bank_logger.level == logging.NOTSET or bank_logger.level > logging.INFO:
        bank_logger.setLevel(logging.INFO)

    return handler
