"""Logging setup for fleetdeck commands."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO/DEBUG
NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")

_ROOT_LOGGER = "fleetdeck"


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure the fleetdeck logger hierarchy.

    Args:
        verbose: Log at DEBUG level
        quiet: Only log warnings and errors
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(level)

    # Avoid stacking handlers when commands are invoked repeatedly (tests)
    if not any(getattr(h, "_fleetdeck", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._fleetdeck = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
