"""Logging configuration for vpn-catalog."""

import logging
import sys
from pathlib import Path


LOGGER_NAME = "vpn_catalog"


def setup_logging(
    verbosity: int = 0,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure and return the logger for vpn-catalog.

    Args:
        verbosity: -1 for quiet (WARNING+), 0 for normal (INFO), 1 for verbose (DEBUG)
        log_file: Optional path to write logs to file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    if verbosity < 0:
        console_handler.setLevel(logging.WARNING)
    elif verbosity > 0:
        console_handler.setLevel(logging.DEBUG)
    else:
        console_handler.setLevel(logging.INFO)

    # Thread names matter once fetches run on the I/O pool
    if verbosity > 0:
        console_fmt = logging.Formatter("%(levelname)s [%(threadName)s]: %(message)s")
    else:
        console_fmt = logging.Formatter("%(message)s")
    console_handler.setFormatter(console_fmt)
    logger.addHandler(console_handler)

    # File handler (always DEBUG level, with timestamps)
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_fmt = logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s:%(threadName)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        file_handler.setFormatter(file_fmt)
        logger.addHandler(file_handler)

    return logger


def get_logger() -> logging.Logger:
    """Get the vpn_catalog logger instance."""
    return logging.getLogger(LOGGER_NAME)


class ManifestLogAdapter(logging.LoggerAdapter):
    """Tags records with the manifest they concern.

    The manifest file name is prefixed to the message and also set as the
    ``manifest`` attribute on the record.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return f"[{self.extra['manifest']}] {msg}", kwargs


def get_manifest_logger(manifest: str) -> ManifestLogAdapter:
    """Get a vpn_catalog logger tagged with a manifest file name."""
    return ManifestLogAdapter(get_logger(), {"manifest": manifest})
