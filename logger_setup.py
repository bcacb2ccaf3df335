# Module for setting up logging
import logging
import os
import sys
from datetime import datetime

import constants


def setup_logging(log_file):
    """Sets up logging to console and file."""
    log_formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO) # Set root logger level

    # Clear existing handlers (important if this function is called multiple times)
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # File handler
    try:
        # Ensure directory exists for log file if it's in a subdirectory
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(log_formatter)
        root_logger.addHandler(file_handler)
    except Exception as e:
        # Make failure to open log file fatal
        print(f"Error: Could not set up file logging to {log_file}: {e}", file=sys.stderr)
        sys.exit(1) # Exit if file logging fails

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    root_logger.addHandler(console_handler)

    logging.info("Logging setup complete.")


class ProgressFormatter(logging.Formatter):
    """Renders records as '[2024-01-31 12:00:00] message'."""

    def format(self, record):
        stamp = datetime.fromtimestamp(record.created).strftime(constants.PROGRESS_TIMESTAMP_FORMAT)
        return f"[{stamp}] {record.getMessage()}"


class ProgressLogHandler(logging.Handler):
    """
    Collects every record emitted during an export run into a list, so the
    caller can show exactly what was skipped or failed. emit() runs under
    the handler lock, which makes the list safe to share with worker threads.
    """

    def __init__(self, messages, level=logging.INFO):
        super().__init__(level=level)
        self.messages = messages
        self.setFormatter(ProgressFormatter())

    def emit(self, record):
        try:
            self.messages.append(self.format(record))
        except Exception:
            self.handleError(record)


def attach_progress_log(messages, level=logging.INFO):
    """Attaches a ProgressLogHandler to the root logger and returns it."""
    handler = ProgressLogHandler(messages, level=level)
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    # Records below the root level never reach handlers
    if root_logger.getEffectiveLevel() > level:
        root_logger.setLevel(level)
    return handler


def detach_progress_log(handler):
    logging.getLogger().removeHandler(handler)
