"""Logging setup for the convoy command line."""

import logging
import sys


class MinimalFormatter(logging.Formatter):
    """Compact colored formatter with one symbol per level."""

    GREY = "\x1b[38;5;240m"
    YELLOW = "\x1b[33m"
    RED = "\x1b[31m"
    RESET = "\x1b[0m"

    def format(self, record):
        if record.levelno == logging.DEBUG:
            prefix, color = "d", self.GREY
        elif record.levelno == logging.INFO:
            prefix, color = "•", self.RESET
        elif record.levelno == logging.WARNING:
            prefix, color = "!", self.YELLOW
        else:
            prefix, color = "x", self.RED

        name = f"{self.GREY}[{record.name}]{self.RESET} "
        return f"{color}{prefix}{self.RESET} {name}{color}{record.getMessage()}{self.RESET}"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure the ``convoy`` logger with a single stderr handler.

    Args:
        verbose: If True, log DEBUG messages, otherwise WARNING and above.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger("convoy")
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(MinimalFormatter())
    logger.addHandler(handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logger
