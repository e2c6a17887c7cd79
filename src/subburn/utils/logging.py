from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# HTTP and image libraries chatter at INFO on every request/decode.
_QUIET_LOGGERS = ("httpx", "openai", "PIL")


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def configure_logging(level: str | int = "INFO") -> None:
    resolved = _parse_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("subburn").setLevel(resolved)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
