"""Common utilities for clearance."""

from .logger import configure_logging, log_audit_event, setup_from_settings
from .config import load_config, load_catalog_config

__all__ = [
    "configure_logging",
    "load_catalog_config",
    "load_config",
    "log_audit_event",
    "setup_from_settings",
]
