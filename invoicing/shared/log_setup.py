"""Process-wide logging setup.

Every module logs through ``logging.getLogger(__name__)``; this only decides
level and format for the running process.
"""

import logging

from invoicing.shared.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings.

    Args:
        settings: Application settings (uses log_level)
    """
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logging.getLogger("invoicing").setLevel(settings.log_level)
