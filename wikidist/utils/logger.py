"""
Logging setup for the wikidist crawler.
"""

import logging
import logging.handlers
import json
import sys
from pathlib import Path
from datetime import datetime, timezone

from .config import LoggingConfig


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        # Add exception info if present
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False)


MEGABYTE = 1024 * 1024

# Chatty client libraries, kept at `library_level`
LIBRARY_LOGGERS = ('aiohttp', 'redis', 'asyncio')


def _rotating_handler(path: str, max_file_size_mb: int, backup_count: int,
                      formatter: logging.Formatter,
                      level: int = logging.NOTSET) -> logging.Handler:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=max_file_size_mb * MEGABYTE,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: LoggingConfig) -> logging.Logger:
    """
    Route every record to stdout and `config.file`, errors also to `config.error_file`.

    Existing root handlers are replaced, so calling it twice does not
    duplicate output.

    Returns:
        Configured root logger
    """
    formatter = JSONFormatter() if config.json else logging.Formatter(config.format)

    root_logger = logging.getLogger()
    root_logger.setLevel(config.level.upper())
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_rotating_handler(
        config.file, config.max_file_size_mb, config.backup_count, formatter
    ))
    root_logger.addHandler(_rotating_handler(
        config.error_file, config.error_max_file_size_mb, config.error_backup_count,
        formatter, level=logging.ERROR
    ))

    for logger_name in LIBRARY_LOGGERS:
        logging.getLogger(logger_name).setLevel(config.library_level.upper())

    root_logger.info(f"Logging to {config.file} at {config.level}, errors to {config.error_file}")
    return root_logger
