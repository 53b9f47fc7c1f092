"""Logging configuration shared by the headless runner, the server and the viewer."""
from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from ..sim.core.config import LoggingConfig


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger with a console handler and an optional rotating file.

    Calling it again replaces the handlers installed by a previous call.
    """
    level = config.level.upper()
    root = logging.getLogger()
    root.setLevel(level)
    if root.hasHandlers():
        root.handlers.clear()

    formatter = logging.Formatter(config.format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        # 1 MB per file, five backups.
        file_handler = logging.handlers.RotatingFileHandler(log_path, maxBytes=1024 * 1024, backupCount=5)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logging.getLogger(__name__).debug("Logging initialised at %s (file=%s)", level, config.log_file)
