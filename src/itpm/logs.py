import logging
import os
import sys
from pathlib import Path

DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "itpm" / "logs"

def setup_logging(log_dir: Path = None):
    """Set up logging configuration for the itpm package with environment-based levels."""
    env_level = os.getenv('ITPM_LOG_LEVEL', '').upper()
    is_debug = os.getenv('ITPM_DEBUG', '').lower() in ('1', 'true', 'yes')

    # Default to WARNING so regular CLI output stays clean
    if is_debug:
        level = logging.DEBUG
    elif env_level:
        level = getattr(logging, env_level, logging.WARNING)
    else:
        level = logging.WARNING

    log_dir = Path(log_dir or os.getenv('ITPM_LOG_DIR') or DEFAULT_LOG_DIR)

    log_format = '[%(asctime)s] %(levelname)-8s [%(name)s:%(funcName)s:%(lineno)d] %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    detailed_formatter = logging.Formatter(log_format, date_format)
    console_formatter = logging.Formatter(
        '%(levelname)-8s [%(name)s] %(message)s' if is_debug
        else '%(levelname)s: %(message)s'
    )

    # Console goes to stderr so exported documents on stdout stay clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(level)

    logger = logging.getLogger('itpm')
    logger.setLevel(logging.DEBUG)  # Logger accepts all, handlers filter
    logger.handlers.clear()
    logger.addHandler(console_handler)

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "itpm.log")
    except OSError as e:
        logger.debug(f"File logging disabled, cannot use {log_dir}: {e}")
    else:
        file_handler.setFormatter(detailed_formatter)
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger

# Initialize logging when package is imported
setup_logging()

def get_logger(name: str = None):
    """Get a logger instance for a specific module."""
    if name:
        return logging.getLogger(f'itpm.{name}')
    return logging.getLogger('itpm')
