"""
=============================================================================
LOGGING SETUP
=============================================================================

Every module logs through its own namespaced logger:

    logging.getLogger("httptunnel.negotiator").setLevel(logging.DEBUG)

and lines about one negotiation share its short id:

    [a1b2c3d4] CONNECT example.com:22 (attempt 1, without credentials)
    [a1b2c3d4] HTTP/1.1 407 Proxy Authentication Required
    [a1b2c3d4] CONNECT example.com:22 (attempt 2, with credentials)
    [a1b2c3d4] Tunnel to example.com:22 established

Two output formats, as for access logs:

    text   human-readable, the default
    json   one object per line, for log aggregators

Logs always go to stderr: when we run as a ProxyCommand, stdout belongs to
the tunnel. Credentials are never logged, at any level.

=============================================================================
"""

import json
import logging
import sys
from datetime import datetime, timezone


TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(level: str = "WARNING", log_format: str = "text") -> None:
    """
    Configure the root logger and the httptunnel logger.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: 'text' or 'json'.
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)
    logging.getLogger("httptunnel").setLevel(numeric_level)
