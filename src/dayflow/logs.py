import logging
import os
import sys
from pathlib import Path

def _log_dir() -> Path:
    env_dir = os.getenv('DAYFLOW_LOG_DIR', '')
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".local" / "share" / "dayflow" / "logs"

def setup_logging():
    """Set up logging configuration for the dayflow package with environment-based levels."""
    # Determine log level from environment
    env_level = os.getenv('DAYFLOW_LOG_LEVEL', '').upper()
    is_debug = os.getenv('DAYFLOW_DEBUG', '').lower() in ('1', 'true', 'yes')

    if is_debug:
        level = logging.DEBUG
    elif env_level:
        level = getattr(logging, env_level, logging.WARNING)
    else:
        level = logging.WARNING  # Default: warnings and errors only

    log_format = '[%(asctime)s] %(levelname)-8s [%(name)s:%(funcName)s:%(lineno)d] %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    detailed_formatter = logging.Formatter(log_format, date_format)
    console_formatter = logging.Formatter(
        '%(levelname)-8s [%(name)s] %(message)s' if is_debug
        else '%(levelname)s: %(message)s'
    )

    logger = logging.getLogger('dayflow')
    logger.setLevel(logging.DEBUG)  # Logger accepts all, handlers filter
    logger.handlers.clear()

    # File handler (always detailed); skipped on read-only homes
    log_dir = _log_dir()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "dayflow.log")
    except OSError as e:
        file_handler = None
        file_error = e
    if file_handler is not None:
        file_handler.setFormatter(detailed_formatter)
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    logger.propagate = False

    if file_handler is None:
        logger.debug(f"File logging disabled, cannot use {log_dir}: {file_error}")

    return logger

# Initialize logging when package is imported
setup_logging()

def get_logger(name: str = None):
    """Get a logger instance for a specific module."""
    if name:
        return logging.getLogger(f'dayflow.{name}')
    return logging.getLogger('dayflow')
