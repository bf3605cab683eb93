"""
Centralized logging configuration for w3gallery.

Structured logging is set up with structlog so that storage, routing and
view events share the same processors and output format.
"""

import logging
import os
import sys
from typing import Any

import structlog


class ColoredJSONRenderer:
    """JSON renderer that colors each line by level when writing to a terminal."""

    COLOR_CODES = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET_CODE = "\033[0m"

    def __init__(self, colors: bool = False):
        self.colors = colors
        self.json_renderer = structlog.processors.JSONRenderer()

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> str:
        level = str(event_dict.get("level", "")).upper()
        json_output = self.json_renderer(logger, method_name, event_dict)

        if not self.colors:
            return str(json_output)

        color = self.COLOR_CODES.get(level, "")
        return f"{color}{json_output}{self.RESET_CODE}"


def get_log_level() -> int:
    """
    Get log level from the LOG_LEVEL environment variable.

    Returns:
        int: Log level constant from the logging module (INFO when unset or unknown)
    """
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()

    level_mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    return level_mapping.get(level_name, logging.INFO)


def is_development_environment() -> bool:
    """Check if running in development environment."""
    return os.getenv("ENVIRONMENT", "development").lower() in ["development", "dev", "local"]


def configure_structured_logging() -> None:
    """
    Configure structured logging for the whole application.

    Development gets a console renderer (or colored JSON on a TTY),
    production gets one JSON object per line.
    """
    log_level = get_log_level()
    is_dev = is_development_environment()
    use_colors = is_dev and sys.stderr.isatty()

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        stream=sys.stderr,
    )

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if is_dev:
        processors.append(ColoredJSONRenderer(colors=True) if use_colors else structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger().setLevel(log_level)

    logger = structlog.get_logger("w3gallery.logging")
    logger.info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        environment="development" if is_dev else "production",
        colors_enabled=use_colors,
    )


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (optional, defaults to calling module)

    Returns:
        structlog.BoundLogger: Configured logger instance
    """
    if name is None:
        import inspect

        frame = inspect.currentframe()
        if frame and frame.f_back:
            name = frame.f_back.f_globals.get("__name__", "unknown")

    return structlog.get_logger(name)


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """
    Log performance metrics.

    Args:
        operation: Name of the operation
        duration: Duration in seconds
        **context: Additional context information
    """
    logger = get_logger("w3gallery.performance")
    logger.info("performance_metric", operation=operation, duration_seconds=duration, **context)


def log_user_action(user_id: str, action: str, **context: Any) -> None:
    """
    Log user actions for audit trail.

    Args:
        user_id: Credential key or display name of the acting user
        action: Action performed
        **context: Additional context information
    """
    logger = get_logger("w3gallery.user_actions")
    logger.info("user_action", user_id=user_id, action=action, **context)


def log_error(error: Exception, context: dict[str, Any] | None = None) -> None:
    """
    Log errors with structured context.

    Args:
        error: Exception that occurred
        context: Additional context information
    """
    logger = get_logger("w3gallery.errors")

    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if context:
        error_context.update(context)

    logger.error("error_occurred", **error_context, exc_info=error)


def log_security_event(event_type: str, user_id: str | None = None, **context: Any) -> None:
    """
    Log security-related events.

    Args:
        event_type: Type of security event
        user_id: User identifier (if applicable)
        **context: Additional context information
    """
    logger = get_logger("w3gallery.security")
    logger.warning("security_event", event_type=event_type, user_id=user_id, **context)
