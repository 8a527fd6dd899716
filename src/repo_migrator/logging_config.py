"""Root logger configuration for command line runs."""

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

_SUPPRESSED_LOGGERS = (
    "httpx",
    "httpcore",
    "anthropic",
    "anthropic._base_client",
    "openai",
    "openai._base_client",
)


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger and quiet noisy SDK loggers.

    Safe to call more than once; ``force`` replaces earlier handlers.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        force=True,
    )
    for name in _SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
