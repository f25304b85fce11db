"""
Logging setup for command-line entry points.

Library modules only create module-level loggers; handlers are attached here.
"""

import logging
from typing import Optional

from levelscope.core.config import Settings, get_settings


def setup_logging(settings: Optional[Settings] = None, level: Optional[str] = None) -> None:
    """Configure the root logger from settings (an explicit level wins)."""
    settings = settings or get_settings()
    resolved = (level or settings.log_level).upper()

    logging.basicConfig(
        level=getattr(logging, resolved, logging.INFO),
        format=settings.log_format,
        force=True,
    )
    logging.getLogger(__name__).debug(
        f"{settings.app_name} v{settings.app_version} ({settings.environment}): logging at {resolved}"
    )
