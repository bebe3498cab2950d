"""Structlog configuration and logger setup.

Configures structlog once per process: console rendering for development,
JSON for production, and silence while the test suite runs. Sensitive
fields (passwords, tokens) are masked before rendering because provider
auth operations routinely carry them in log context.

Usage:
    from infrastructure.logging import configure_logging, get_module_logger

    configure_logging()

    logger = get_module_logger()
    logger.info("backend_initialized", backend_kind="local")
"""

import inspect
import logging
import sys
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger

from infrastructure.configuration import Settings
from infrastructure.logging.formatters import (
    mask_sensitive_data,
    truncate_large_values,
)


def _is_test_environment() -> bool:
    """Detect if running under pytest."""
    return "pytest" in sys.modules


def _configure_silent() -> BoundLogger:
    logging.root.setLevel(logging.CRITICAL + 1)
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        level=logging.CRITICAL + 1,
        force=True,
    )
    return structlog.stdlib.get_logger()


def configure_logging(
    log_level: Optional[str] = None,
    is_production: Optional[bool] = None,
    max_value_length: int = 500,
) -> BoundLogger:
    """Configure structured logging for the process.

    Args:
        log_level: Override for the log level. Defaults to ``LOG_LEVEL``.
        is_production: Override for production mode. Defaults to
            ``Settings.is_production``; controls JSON vs console output.
        max_value_length: String values longer than this are truncated.

    Returns:
        Configured logger instance.
    """
    if _is_test_environment():
        return _configure_silent()

    settings: Optional[Settings] = None
    if log_level is None or is_production is None:
        settings = Settings()

    prod_mode = is_production if is_production is not None else settings.is_production
    effective_log_level = log_level or settings.LOG_LEVEL

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        mask_sensitive_data(),
        truncate_large_values(max_length=max_value_length),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if prod_mode:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, effective_log_level.upper(), logging.INFO),
    )

    return structlog.stdlib.get_logger()


def get_module_logger() -> BoundLogger:
    """Get a logger bound to the calling module.

    Binds ``component`` (last dotted segment) and ``module_path`` so every
    event can be traced back to the module that emitted it.

    Example:
        # In infrastructure/resilience/circuit_breaker.py
        logger = get_module_logger()
        # context: {"component": "circuit_breaker",
        #           "module_path": "infrastructure.resilience.circuit_breaker"}
    """
    base = structlog.stdlib.get_logger()

    current_frame = inspect.currentframe()
    frame = current_frame.f_back if current_frame is not None else None
    module = inspect.getmodule(frame) if frame is not None else None
    if module is None:
        return base.bind(component="unknown")

    module_name = module.__name__
    return base.bind(component=module_name.split(".")[-1], module_path=module_name)
