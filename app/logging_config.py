"""Logging Configuration.

Provides JSON-formatted logging for the profile verifier service.

Every line carries the service name; request-scoped context (request id,
route, web3name, platform, error code) is attached through ``extra=`` and
emitted only when present.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

SERVICE_NAME = "profile-verifier"

# Record attributes copied into the payload when a log call supplies them
CONTEXT_KEYS = (
    "request_id",
    "route",
    "remote_addr",
    "web3_name",
    "platform",
    "error_code",
)


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def __init__(self, service: str = SERVICE_NAME):
        super().__init__()
        self.service = service

    def format(self, record):
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k in CONTEXT_KEYS:
            value = getattr(record, k, None)
            if value is not None:
                payload[k] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(
    log_file: str = None,
    log_level: str = None,
):
    """Configure logging with JSON formatter.

    Args:
        log_file: Path to log file. Defaults to LOG_FILE env var; no file
            handler is installed when neither is set.
        log_level: Log level. Defaults to LOG_LEVEL env var or 'INFO'.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    log_file = log_file or os.getenv("LOG_FILE")
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a"))

    for handler in handlers:
        handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root.setLevel(getattr(logging, log_level, logging.INFO))
    root.handlers = handlers

    # httpx logs every request at INFO; keep it to warnings
    logging.getLogger("httpx").setLevel(logging.WARNING)
