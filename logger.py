"""
Logging configuration for OMWModManager.
Every module logs below the "omwmodmanager" logger. setup_logging decides
where those records end up: the console, a dated file in the config
directory, and extra handlers such as the Qt bridge's LogSignalHandler.
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Callable, Iterable, Optional

LOGGER_NAME = "omwmodmanager"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_DIR_NAME = "logs"
KEEP_LOG_FILES = 5


def log_file_path(config_dir: Path, day: Optional[date] = None) -> Path:
    """Log file for a given day (today by default) inside the config directory."""
    day = day or date.today()
    return Path(config_dir) / LOG_DIR_NAME / f"{LOGGER_NAME}_{day.strftime('%Y%m%d')}.log"


def setup_logging(config_dir: Optional[Path] = None, debug: bool = False,
                  console: bool = True,
                  extra_handlers: Iterable[logging.Handler] = ()) -> logging.Logger:
    """
    Configure the application logger.

    Handlers installed by a previous call are closed and replaced, so the
    command line and the Qt front end can each choose their outputs.
    The file handler always records debug messages; the console follows
    the debug flag. Extra handlers without a formatter get the shared one.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    for handler in extra_handlers:
        if handler.formatter is None:
            handler.setFormatter(formatter)
        logger.addHandler(handler)

    if config_dir:
        log_file = log_file_path(config_dir)
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            # Paths from legacy-encoded openmw.cfg files may not be valid UTF-8
            file_handler = logging.FileHandler(log_file, encoding='utf-8', errors='backslashreplace')
        except OSError as e:
            logger.warning(f"Could not create log file: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
            _cleanup_old_logs(log_file.parent, keep=KEEP_LOG_FILES)

    return logger


def attach_handler(handler: logging.Handler) -> Callable[[], None]:
    """
    Add a handler to the application logger without touching the others.
    Returns a function that detaches it again; calling it twice is harmless.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if handler.formatter is None:
        handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    def detach() -> None:
        logger.removeHandler(handler)

    return detach


def _cleanup_old_logs(log_dir: Path, keep: int = KEEP_LOG_FILES):
    """Remove old log files, keeping the most recent ones."""
    log_files = sorted(log_dir.glob(f"{LOGGER_NAME}_*.log"), reverse=True)
    for old_log in log_files[keep:]:
        try:
            old_log.unlink()
        except OSError:
            pass
