"""Logging configuration helpers."""

import logging

_NOISY_LOGGERS = ("httpx", "hpack")


def configure_logging(level: str = "INFO") -> None:
    """Configure the dupliverse logger with a single stream handler.

    Request-level logs from the Supabase HTTP stack are raised to WARNING,
    since the periodic sync would otherwise log every round trip.
    """
    logger = logging.getLogger("dupliverse")
    logger.setLevel(level.upper())
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s: %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
