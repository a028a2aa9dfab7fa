"""Logging configuration for the speedtest exporter."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

LOG_LEVEL_ENV = 'SPEEDTEST_EXPORTER_LOG_LEVEL'

_LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}


class JsonFormatter(logging.Formatter):
    """Format each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            '@timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            '@level': record.levelname.lower(),
            '@module': record.name,
            '@message': record.getMessage(),
        }
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(level: Optional[str] = None, json_format: bool = False) -> None:
    """Configure application-wide logging on stdout.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL). Falls back
            to the SPEEDTEST_EXPORTER_LOG_LEVEL environment variable, then INFO.
        json_format: Emit one JSON object per line instead of plain text
    """
    level_str = (level or os.environ.get(LOG_LEVEL_ENV, 'INFO')).upper()
    log_level = _LOG_LEVELS.get(level_str, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        ))

    logging.basicConfig(level=log_level, handlers=[handler], force=True)
    logging.getLogger(__name__).debug("Logging configured: level=%s", logging.getLevelName(log_level))
