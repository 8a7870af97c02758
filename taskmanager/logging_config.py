import logging
import os
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
PACKAGE_LOGGER = "taskmanager"


def resolve_level(level=None) -> int:
    """Turn ``level`` (or $LOG_LEVEL) into a logging level number"""
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise RuntimeError(
            f"LOG_LEVEL must be one of DEBUG|INFO|WARNING|ERROR|CRITICAL, got {level!r}"
        )
    return resolved


def setup_logging(level=None) -> None:
    """Configure task manager logging.

    The package logger always gets the requested level, so ``LOG_LEVEL`` is
    honoured under uvicorn too. A stdout handler is attached to the root
    logger only when nothing else has configured one.
    """
    resolved = resolve_level(level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(resolved)

    root = logging.getLogger()
    if root.handlers:
        return
    root.setLevel(resolved)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
