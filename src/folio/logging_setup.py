"""Logging configuration for folio entry points.

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
installed here, once, by the CLI and the RPC server.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from .settings import settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_configured = False


def configure_logging(level: str | None = None) -> None:
    """Install stderr and rotating file handlers on the root logger.

    Calling this more than once only adjusts the level.
    """
    global _configured

    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    if _configured:
        return

    formatter = logging.Formatter(_FORMAT)

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if settings.log_to_file:
        try:
            settings.log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                settings.log_path,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            root.warning("File logging disabled (%s): %s", settings.log_path, e)
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    _configured = True
