"""Logging setup for regroup commands."""

import logging
import sys
from datetime import datetime
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_file_logging(log_dir: Path, command_name: str, debug: bool = False, console_output: bool = False) -> logging.Logger:
    """Send every record of this run to ``<log_dir>/<timestamp>.<command_name>.log``.

    Handlers from an earlier call are replaced, so each run writes to
    exactly one log file. With ``console_output`` the same records also go
    to stdout.

    Returns:
        The ``regroup`` package logger
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%dT%H%M%S")
    log_file = log_dir / f"{timestamp}.{command_name}.log"

    handlers = [logging.FileHandler(log_file)]
    if console_output:
        handlers.append(logging.StreamHandler(sys.stdout))

    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT)
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    print(f"{timestamp} - Logging to file: {log_file}")
    logger = logging.getLogger('regroup')
    logger.debug(f"Logging {command_name} at level {logging.getLevelName(level)}")
    return logger
