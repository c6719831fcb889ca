"""Observability module for structured logging."""

from .logging import (
    SessionContext,
    get_logger,
    log_termination,
    session_id_var,
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    # Context
    "SessionContext",
    "session_id_var",
    # Logging helpers
    "log_termination",
]
