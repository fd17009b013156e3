"""
Shared utilities used across domains.
"""

from clinicbook.core.shared.logger import (
    ColoredFormatter,
    ContextLogger,
    JSONFormatter,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    get_service_logger,
)

__all__ = [
    "ColoredFormatter",
    "ContextLogger",
    "JSONFormatter",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "get_service_logger",
]
