"""
Logging setup for habitron, built on loguru.

Library modules log through ``from loguru import logger`` and never add
sinks themselves. Entry points (the CLI, an embedding UI) call
``setup_logging()`` once. The pipeline runs on several threads, so DEBUG
console output and the file sink carry the thread name.
"""

import sys
from pathlib import Path

from loguru import logger

_CONSOLE_FORMAT = "<level>[{level.name}]</level> {message}"
_DEBUG_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>[{level.name}]</level> <cyan>{thread.name}</cyan> {message}"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {thread.name} | {name}:{line} | {message}"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_dir: str | Path | None = None,
    fmt: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Configure loguru with a stderr sink and an optional rotating file sink.

    Args:
        level: Minimum log level (TRACE, DEBUG, INFO, WARNING, ERROR).
        log_file: Log file path. A relative path is placed under *log_dir*.
        log_dir: Directory for relative log files (``paths.log_dir``).
        fmt: Console format. Defaults to a compact one, with timestamps and
            thread names at DEBUG and below.
        rotation: Log file rotation size.
        retention: How long to keep rotated logs.
    """
    level = level.upper()
    if fmt is None:
        fmt = _DEBUG_CONSOLE_FORMAT if level in ("TRACE", "DEBUG") else _CONSOLE_FORMAT

    logger.remove()
    logger.add(sys.stderr, level=level, format=fmt)

    if log_file:
        path = Path(log_file).expanduser()
        if not path.is_absolute() and log_dir:
            path = Path(log_dir).expanduser() / path
        path.parent.mkdir(parents=True, exist_ok=True)
        # Workers, the flusher and the watcher all write here
        logger.add(
            str(path),
            level=level,
            format=_FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            enqueue=True,
        )
