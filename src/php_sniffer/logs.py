import inspect
import io
import logging
import sys
from pathlib import Path

from loguru import logger


def save_logs_to_file(
    file_path: Path,
    log_level: str = "INFO",
    rotation: str = "10 MB",
    retention=3,
    stdout: bool = True,
):
    if stdout is True:
        if isinstance(sys.stdout, io.TextIOWrapper):
            # reconfigure to be able to handle special symbols
            sys.stdout.reconfigure(encoding="utf-8", errors="backslashreplace")

        logger.add(sys.stdout, level=log_level)

    logger.add(
        str(file_path),
        rotation=rotation,
        retention=retention,
        level=log_level,
        # set encoding explicitly to be able to handle special symbols
        encoding="utf8",
    )
    logger.info(f"Log file: {file_path}")


class InterceptHandler(logging.Handler):
    """pygls uses standard python logger, pass its logs to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists.
        level: str | int
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message.
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def intercept_std_logging() -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
