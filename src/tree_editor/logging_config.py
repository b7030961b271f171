"""Logging configuration for the tree editor."""

import sys

from loguru import logger


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Send tree editor logs to stderr.

    ``quiet`` keeps only warnings and errors, which is what the interactive
    console and the MCP stdio server want. ``verbose`` wins over ``quiet``.
    """
    logger.remove()
    if verbose:
        level = "DEBUG"
    elif quiet:
        level = "WARNING"
    else:
        level = "INFO"
    logger.add(sys.stderr, level=level, format="{level.icon} {message}")
