"""
logging.py — Application-Wide Logging Configuration

Purpose:
- Configure a standardized logging format for the entire backend.
- Keep aggregation fan-out and write-back logs readable side by side.

Per-project failures during aggregation are reported here and nowhere else,
so the log is the operator's only view of which apps were skipped.
"""

import logging

# -----------------------------------------------------------------------------
# Log Format
# -----------------------------------------------------------------------------

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)

# -----------------------------------------------------------------------------
# Root Logger Initialization
# -----------------------------------------------------------------------------

def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging settings.

    Parameters:
        level (str): "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"

    Should be called ONCE, in `main.py` at app startup.
    """

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT
    )

    logging.getLogger(__name__).info("Logging initialized with level %s", level)

# -----------------------------------------------------------------------------
# Logger Access Helper
# -----------------------------------------------------------------------------

def get_logger(name: str) -> logging.Logger:
    """
    Return a logger instance to be used in any module.

    In any module:
        from watchtower.core.logging import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)
