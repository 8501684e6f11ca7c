# snips/utils/logger.py

import logging
import logging.handlers
from pathlib import Path

LOG_FILE_NAME = "snips.log"


class LoggerManager:
    """
    Configures application-wide logging with two handlers:

    1. Console handler, at the level chosen in settings (WARNING by default,
       so it does not interleave with the CLI's own output).
    2. Rotating file handler in the data directory, at DEBUG, rotating after
       5 MB and keeping 5 backups.
    """

    def __init__(self, log_dir: Path, console_level: str = "WARNING", log_level=logging.DEBUG):
        self.log_file_path = Path(log_dir) / LOG_FILE_NAME
        self.console_level = logging.getLevelName(console_level.upper())
        self.log_level = log_level
        self.root_logger = logging.getLogger()

    def setup(self):
        """Attaches both handlers to the root logger, once per process."""
        if self.root_logger.hasHandlers():
            return

        self.root_logger.setLevel(self.log_level)
        self.root_logger.addHandler(self._create_console_handler())
        self.root_logger.addHandler(self._create_file_handler())

        logging.debug(f"Logging configured. Writing detailed logs to '{self.log_file_path}'.")

    def _create_console_handler(self) -> logging.StreamHandler:
        handler = logging.StreamHandler()
        handler.setLevel(self.console_level)
        formatter = logging.Formatter(
            '%(asctime)s - [%(levelname)s] - %(message)s',
            datefmt='%H:%M:%S'
        )
        handler.setFormatter(formatter)
        return handler

    def _create_file_handler(self) -> logging.handlers.RotatingFileHandler:
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            self.log_file_path, maxBytes=5*1024*1024, backupCount=5, encoding='utf-8'
        )
        handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - [%(levelname)s] - %(filename)s:%(lineno)d - %(message)s'
        )
        handler.setFormatter(formatter)
        return handler


def setup_logging(log_dir: Path, console_level: str = "WARNING"):
    """Initializes and configures the application-wide logging system."""
    manager = LoggerManager(log_dir, console_level)
    manager.setup()
