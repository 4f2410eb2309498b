"""
Logging setup for Reasonet.

Configures the ``reasonet`` logger hierarchy with a console handler and a
size-rotated file handler per process context (``api``, ``cli``).
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from typing import Optional

from reasonet.config import Settings, settings as default_settings

STANDARD_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

_configured_contexts: set[str] = set()


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("delivery_id", "repository", "pr_number", "analysis_id"):
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _build_formatter(config: Settings) -> logging.Formatter:
    if config.log_format == "json":
        return JsonFormatter()
    return logging.Formatter(STANDARD_FORMAT)


def setup_logging(context: str = "api", config: Optional[Settings] = None) -> logging.Logger:
    """
    Configure logging for a process context.

    Safe to call more than once: handlers are only attached the first time a
    context is configured.

    Args:
        context: Name of the running process ("api", "cli"); used as the log
            file name.
        config: Settings to read logging options from (defaults to global).

    Returns:
        The configured ``reasonet`` logger.

    Raises:
        PermissionError: If the log directory cannot be created.
    """
    config = config or default_settings
    logger = logging.getLogger("reasonet")
    logger.setLevel(config.log_level.upper())

    if context in _configured_contexts:
        return logger

    formatter = _build_formatter(config)

    if config.log_console_enabled:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)
        logger.addHandler(console)

    if config.log_file_enabled:
        log_dir = config.log_directory
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{context}.log",
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    _configured_contexts.add(context)
    logger.debug(f"Logging configured for context={context}")
    return logger
