"""Logging setup for the aic command."""

import logging


def verbosity_to_level(verbosity: int) -> int:
    """0 -> WARNING, 1 -> INFO, 2 or more -> DEBUG."""
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def configure_logging(verbosity: int) -> None:
    level = verbosity_to_level(verbosity)

    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # SDK and HTTP client chatter only at the highest verbosity
    if verbosity < 3:
        for name in ("httpx", "httpcore", "openai", "anthropic"):
            logging.getLogger(name).setLevel(max(level, logging.WARNING))
