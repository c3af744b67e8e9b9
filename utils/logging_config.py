"""
Logging configuration for the library curator.

Console and rotating-file output for operator-facing messages. The per-scan
JSONL record of folder results lives in utils.scan_log and is not a logging
handler.
"""

import functools
import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Optional

APP_LOGGER_NAME = 'library-curator'


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    max_file_size: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure the root logger for a curator run.

    Args:
        level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
        log_file: Path to log file (optional)
        max_file_size: Maximum log file size in bytes before rotation
        backup_count: Number of rotated files to keep
        console_output: Whether to echo log records to stdout

    Returns:
        The application logger
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    root_logger.setLevel(numeric_level)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_file),
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    configure_library_logging()

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(numeric_level)
    app_logger.debug(f"Logging initialized - Level: {level}")
    if log_file:
        app_logger.debug(f"Log file: {log_file}")

    return app_logger


def log_function_call(func):
    """
    Decorator that logs entry, exit and duration of a function at DEBUG level.

    Usage:
        @log_function_call
        def replay_log(...):
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__)
        func_name = func.__qualname__
        logger.debug(f"Entering {func_name}")

        start_time = time.time()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(f"Exception in {func_name} after {duration:.3f}s: {e}")
            raise

        duration = time.time() - start_time
        logger.debug(f"Exiting {func_name} (took {duration:.3f}s)")
        return result

    return wrapper


def log_processing_progress(
    current: int,
    total: int,
    logger: logging.Logger,
    message_template: str = "Checked {current}/{total} folders ({percentage:.1f}%)"
):
    """
    Log scan progress at intervals that scale with the size of the scan.

    Args:
        current: Number of items processed so far
        total: Total number of items
        logger: Logger instance to use
        message_template: Template for the progress message
    """
    if total == 0:
        return

    if total <= 100:
        step = max(1, total // 10)
    elif total <= 1000:
        step = max(1, total // 20)
    else:
        step = max(1, total // 100)

    if current % step == 0 or current == total:
        percentage = (current / total) * 100
        logger.info(message_template.format(
            current=current, total=total, percentage=percentage
        ))


def configure_library_logging():
    """Quieten third-party loggers."""
    for lib_name in ('mutagen', 'yaml'):
        logging.getLogger(lib_name).setLevel(logging.WARNING)
