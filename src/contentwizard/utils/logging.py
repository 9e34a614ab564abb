"""Structured logging setup for the content wizard."""

import structlog
from pathlib import Path
from typing import Any, Optional
import logging
import os


VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def default_log_path() -> Path:
    """Return the JSON log file location, ~/.cache/contentwizard/logs/contentwizard.log."""
    return Path.home() / ".cache" / "contentwizard" / "logs" / "contentwizard.log"


def resolve_log_level(value: Optional[str]) -> str:
    """Normalize a level name, falling back to INFO for anything unrecognized."""
    level = (value or "INFO").upper()
    if level not in VALID_LEVELS:
        return "INFO"
    return level


def configure_logging(log_file: Optional[Path] = None) -> None:
    """
    Configure structlog for JSON logging.

    Log level is controlled via the CONTENTWIZARD_LOG_LEVEL environment variable:
    - DEBUG: prompt payloads, raw AI responses, mapping pairs
    - INFO: step changes, plan generation/refinement, page creation
    - WARNING: retry attempts, component type mismatches, unmapped sections
    - ERROR: operation failures, validation errors, listener failures

    Example:
        CONTENTWIZARD_LOG_LEVEL=DEBUG contentwizard generate

        # View logs with jq for readability:
        tail -f ~/.cache/contentwizard/logs/contentwizard.log | jq .

    Args:
        log_file: Override the log destination (defaults to default_log_path())
    """
    log_file = log_file or default_log_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    log_level = resolve_log_level(os.environ.get("CONTENTWIZARD_LOG_LEVEL"))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level)),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=open(log_file, "a")),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("plan_generated", section_count=4, provider="openai")
    """
    return structlog.get_logger(name)
