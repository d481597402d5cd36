import logging
import sys

from rstrtr.settings import LOG_FORMAT


class MainFormatter(logging.Formatter):
    """Formats supervisor records; status lines from the 'status' logger are left raw."""

    def format(self, record):
        if record.name == 'status':
            return record.getMessage()
        return super().format(record)


def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the application.
    This sets up a console handler on stdout, clearing any previously
    configured handlers to prevent duplication.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)
