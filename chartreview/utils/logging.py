"""
Logging for the chart review pipeline.

Every module logs through `chartreview.*` loggers obtained from get_logger().
The library never installs handlers on import; an application that wants the
pipeline's exclusion and summary messages calls setup_logging() once.

Levels used across the package:
  DEBUG   – a resource was excluded by a selection filter
  INFO    – per-bundle selection summary, per-analyzer item counts
  WARNING – an entry failed validation and was dropped from the bundle
  ERROR   – the bundle has no Patient (raised as MissingSubjectError)
"""
import logging
import sys
from typing import Optional
from datetime import datetime, timezone

PACKAGE_LOGGER = "chartreview"


class StructuredFormatter(logging.Formatter):
    """One line per record: UTC timestamp, level, logger name, message."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        record.timestamp = datetime.fromtimestamp(record.created, timezone.utc).isoformat()

        color = self.COLORS.get(record.levelname, self.COLORS['RESET']) if self.use_color else ""
        reset = self.COLORS['RESET'] if self.use_color else ""

        log_message = (
            f"{color}[{record.timestamp}] "
            f"{record.levelname:8} "
            f"[{record.name}] "
            f"{record.getMessage()}{reset}"
        )

        if record.exc_info:
            log_message += f"\n{self.formatException(record.exc_info)}"

        return log_message


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Attach handlers to the `chartreview` logger.

    Replaces any handlers installed by a previous call, so calling it again
    changes the level or log file rather than duplicating output. Colour is
    used only when stdout is a terminal.

    Args:
        level: DEBUG shows every excluded resource; INFO shows one summary
               line per selection and per analyzer.
        log_file: Optional path; the file gets plain, uncoloured lines.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, level.upper()))
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter(use_color=sys.stdout.isatty()))
    package_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
        ))
        package_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass __name__ so records land under `chartreview.*`."""
    return logging.getLogger(name)
