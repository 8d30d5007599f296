"""
Logging Configuration for PlantCare AI
======================================
One setup routine shared by the API server and the CLI.

The ``plantcare`` logger (scan core, services, CLI) gets a coloured console
handler and, when a log directory is configured, a rotating file handler.
Child loggers such as ``plantcare.scan.scheduler`` propagate to it.
"""

import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler


LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOG_FILE = 'plantcare.log'
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


class ColoredFormatter(logging.Formatter):
    """Level-coloured console output (plain text when not a terminal)."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, fmt=LOG_FORMAT, datefmt=DATE_FORMAT, stream=None):
        super().__init__(fmt, datefmt=datefmt)
        self.use_color = bool(getattr(stream or sys.stdout, 'isatty', lambda: False)())

    def format(self, record):
        message = super().format(record)
        color = self.COLORS.get(record.levelname) if self.use_color else None
        return f"{color}{message}{self.RESET}" if color else message


def rotating_file_handler(log_dir, log_file=LOG_FILE, level=logging.DEBUG):
    """RotatingFileHandler in ``log_dir`` (created if missing), 10 MB x 5."""
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_path / log_file,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logger(name='plantcare', log_dir=None, console_level=logging.INFO,
                 file_level=logging.DEBUG):
    """
    Configure ``name`` with a console handler and an optional log file.

    Calling it again replaces the existing handlers.

    Args:
        name: Logger name
        log_dir: Directory for plantcare.log (no file logging if None)
        console_level: Console handler level
        file_level: File handler level

    Returns:
        logging.Logger
    """
    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.setLevel(min(console_level, file_level) if log_dir else console_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredFormatter(stream=sys.stdout))
    logger.addHandler(console_handler)

    if log_dir:
        file_handler = rotating_file_handler(log_dir, level=file_level)
        logger.addHandler(file_handler)
        logger.debug(f"Log file: {file_handler.baseFilename}")

    return logger
