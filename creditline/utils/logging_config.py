"""Logging configuration for the application."""

import logging
import logging.handlers
import os
import sys
import time
from pathlib import Path
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from creditline.config import LOGS_DIR, settings

# Initialize logger
logger = logging.getLogger(__name__)

REDACTED_HEADERS = {"authorization", "cookie", "x-key", "x-razorpay-signature"}


def _prune_rotated_logs(log_file: Path, keep: int) -> int:
    """Delete rotated copies of ``log_file`` beyond the newest ``keep``.

    The live file is never touched. Returns the number of files removed.
    """
    rotated = sorted(
        (f for f in log_file.parent.glob(f"{log_file.name}.*") if f.is_file()),
        key=lambda f: f.stat().st_mtime,
        reverse=True,
    )
    removed = 0
    for old_file in rotated[keep:]:
        try:
            old_file.unlink()
            removed += 1
        except OSError as e:
            logger.error(f"Failed to delete old log file {old_file}: {e}")
    return removed


def setup_logging(log_dir: Optional[Path] = None) -> Path:
    """Set up console and rotating file logging for the ledger service.

    Args:
        log_dir: Directory for the log file, defaults to ``LOGS_DIR``

    Returns:
        Path of the live log file
    """
    log_dir = Path(log_dir or LOGS_DIR)
    os.makedirs(log_dir, exist_ok=True)
    log_settings = settings.logging
    log_file = log_dir / log_settings.log_file_name

    # Capture everything at the root, handlers filter
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_settings.log_level)
    console_handler.setFormatter(logging.Formatter(log_settings.format))
    root_logger.addHandler(console_handler)

    file_handler = logging.handlers.TimedRotatingFileHandler(
        log_file,
        when=log_settings.rotate_when,
        backupCount=log_settings.backup_count,
        encoding="utf-8",
        delay=True,
    )
    file_handler.setLevel(log_settings.file_log_level)
    file_handler.setFormatter(logging.Formatter(log_settings.file_format))
    root_logger.addHandler(file_handler)

    for logger_name, level in log_settings.noisy_loggers.items():
        logging.getLogger(logger_name).setLevel(level)

    # The handler only prunes on rollover, so files left by earlier runs are handled here
    pruned = _prune_rotated_logs(log_file, log_settings.backup_count)
    logger.info(f"Logging to {log_file} (keeping {log_settings.backup_count} rotated files, pruned {pruned})")
    return log_file


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging request timing and response status."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        endpoint_logger = logging.getLogger("endpoint")

        endpoint_logger.debug(
            "Request received",
            extra={
                "request": {
                    "method": request.method,
                    "path": request.url.path,
                    "query_params": dict(request.query_params),
                    "headers": {k: v for k, v in request.headers.items() if k.lower() not in REDACTED_HEADERS},
                }
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            endpoint_logger.error(f"Request failed: {request.method} {request.url.path}: {e}")
            raise

        duration_ms = (time.time() - start_time) * 1000
        endpoint_logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.2f}ms)")
        return response
