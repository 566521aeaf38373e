"""Process logging setup for hosts and scripts embedding authz."""

import logging
import sys

from authz.core.config import Settings, get_settings
from authz.infrastructure.services.audit_sink import AUDIT_LOGGER_NAME

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: Settings | None = None, audit_level: int | None = None) -> None:
    """Configure root logging to stdout.

    Root level is DEBUG when settings.debug is set, otherwise INFO. SQL echo
    is left to database_echo. audit_level overrides the decision logger only,
    e.g. logging.DEBUG to see every grant.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    if audit_level is not None:
        logging.getLogger(AUDIT_LOGGER_NAME).setLevel(audit_level)
