import sys
import logging
from pathlib import Path

from loguru import logger

from app.core.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# Chatty per-request loggers from uvicorn and the Supabase HTTP stack
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "hpack")

class InterceptHandler(logging.Handler):
    """Forwards stdlib `logging` records (uvicorn, httpx, postgrest) into loguru."""

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the real call site
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())

def setup_logging(level: str = None, log_dir: str = "logs"):
    """Console sink at `level` (default LOG_LEVEL), rotated error file under `log_dir`."""
    level = level or settings.LOG_LEVEL

    logger.remove()
    logger.add(sys.stdout, level=level, format=CONSOLE_FORMAT)
    logger.add(
        Path(log_dir) / "errors.log",
        level="ERROR",
        rotation="10 MB",
        retention="1 month",
        compression="zip",
        format=FILE_FORMAT,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug(f"🪵 Logging ready (level={level}, errors -> {log_dir}/errors.log)")

__all__ = ["logger", "setup_logging", "InterceptHandler"]
