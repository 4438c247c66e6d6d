"""Logging configuration for the telemedicine portal."""

import logging
import sys

logger = logging.getLogger("portal")


def configure_logging(level: int = logging.INFO) -> None:
    """Set up logging configuration."""

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear all existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter('[%(asctime)s][%(levelname)s] %(message)s'))

    root_logger.addHandler(console_handler)

    # Portal modules log through the root handler
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = True

    # The socket.io client is chatty at INFO
    for logger_name in ("socketio", "engineio"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str = "portal") -> logging.Logger:
    """Get logger instance."""
    return logging.getLogger(name)
