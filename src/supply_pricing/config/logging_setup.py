"""
Logging setup for supply pricing.

Configures the root logger once with a console handler; modules log
through logging.getLogger(__name__).
"""
import logging
import sys
from typing import Optional

from .settings import Settings, get_settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_configured = False


def configure_logging(settings: Optional[Settings] = None, force: bool = False) -> None:
    """Attach a console handler to the root logger at the configured level."""
    global _configured
    if _configured and not force:
        return

    settings = settings or get_settings()
    level = getattr(logging, settings.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)

    _configured = True
