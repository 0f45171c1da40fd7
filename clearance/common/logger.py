"""Logging setup for the RBAC core.

Modules log through ``logging.getLogger(__name__)``; their records propagate
to the ``clearance`` package logger configured here. Audit events are
emitted on the ``clearance.audit`` child at the level matching their
severity, so a deployment can route them to their own handler.
"""

import logging
import logging.handlers
import os
from typing import Any, List, Optional

PACKAGE_LOGGER = "clearance"
AUDIT_LOGGER = "clearance.audit"

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"  # ISO 8601

# Set on handlers installed by configure_logging
_OWNED_HANDLER = "_clearance_owned"


def parse_level(level: str) -> int:
    """Logging level number for a level name, case-insensitive.

    Raises:
        ValueError: If the name is not one of VALID_LEVELS
    """
    level_upper = str(level).upper()
    if level_upper not in VALID_LEVELS:
        raise ValueError(
            f"Invalid log level: {level}. Must be one of: {', '.join(VALID_LEVELS)}"
        )
    return getattr(logging, level_upper)


def _build_handlers(
    log_dir: str,
    file_logging: bool,
    console_logging: bool,
    max_bytes: int,
    backup_count: int,
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                os.path.join(log_dir, f"{PACKAGE_LOGGER}.log"),
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
        )
    if console_logging:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _OWNED_HANDLER, True)
    return handlers


def configure_logging(
    level: str = "INFO",
    *,
    log_dir: str = "/var/log/clearance",
    file_logging: bool = False,
    console_logging: bool = True,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Configure the ``clearance`` package logger.

    Calling again replaces the handlers from the previous call, so building
    the service more than once does not duplicate output. Handlers attached
    by the host application are left alone.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for ``clearance.log`` when file logging is on
        file_logging: Enable rotating file logging
        console_logging: Enable console logging
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(parse_level(level))

    for handler in list(logger.handlers):
        if getattr(handler, _OWNED_HANDLER, False):
            logger.removeHandler(handler)
            handler.close()

    for handler in _build_handlers(
        log_dir, file_logging, console_logging, max_bytes, backup_count
    ):
        logger.addHandler(handler)
    return logger


def setup_from_settings(settings) -> logging.Logger:
    """Configure the package logger from application Settings."""
    return configure_logging(
        settings.log_level,
        log_dir=settings.log_dir,
        file_logging=settings.log_to_file,
    )


def log_audit_event(event: Any, logger: Optional[logging.Logger] = None) -> None:
    """Emit an AuditEvent at the logging level of its severity.

    The full record travels in ``extra`` as ``audit_event``.
    """
    logger = logger or logging.getLogger(AUDIT_LOGGER)
    level = parse_level(event.severity.value)
    if not logger.isEnabledFor(level):
        return

    actor = event.actor.get("role_id", event.actor.get("id"))
    message = f"{event.action} {event.verdict} actor={actor}"
    if event.reason:
        message += f" reason={event.reason}"
    if event.request_id:
        message += f" request_id={event.request_id}"
    logger.log(level, message, extra={"audit_event": event.to_dict()})
