"""
Logging setup for applications embedding the engine.

The engine modules only create loggers; handlers are configured here. This is
the entry point an application calls once at startup:

    from shift_hours.log_config import setup_logging
    setup_logging(logging.DEBUG, "logs/shift_hours.log")
"""

import sys
import logging
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: int = logging.INFO, log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """Setup application logging to stdout and, optionally, a log file"""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    return logging.getLogger("shift_hours")
