"""
Logging setup. Every module logs through logging.getLogger(__name__);
this only configures the root logger once at startup.
"""

import logging
import sys

from app.core.settings import settings


def setup_logging() -> None:
    level = logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stdout,
    )
    # google-cloud clients are chatty at INFO
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
