import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from app.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _get_log_level(level: str | None = None) -> int:
    name = (level or settings.LOG_LEVEL or "INFO").strip().upper()
    return getattr(logging, name, logging.INFO)


def _file_handler(log_dir: str, formatter: logging.Formatter, log_level: int) -> logging.Handler:
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(path / settings.LOG_FILE_NAME),
        when=settings.LOG_FILE_ROTATION_WHEN,
        interval=max(1, settings.LOG_FILE_ROTATION_INTERVAL),
        backupCount=max(1, settings.LOG_FILE_RETENTION_DAYS),
        encoding="utf-8",
        utc=True,
    )
    handler.setLevel(log_level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(level: str | None = None, log_dir: str | None = None) -> None:
    """Configure the root logger once per process.

    Console output always; a rotating file under LOG_DIR when it is set and
    writable. An empty LOG_DIR disables file logging.
    """
    root_logger = logging.getLogger()
    if getattr(root_logger, "_geoguard_logging_configured", False):
        return

    log_level = _get_log_level(level)
    root_logger.setLevel(log_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    log_dir = settings.LOG_DIR if log_dir is None else log_dir
    if log_dir:
        try:
            root_logger.addHandler(_file_handler(log_dir, formatter, log_level))
        except OSError as exc:
            logging.getLogger(__name__).warning("Failed to initialize file logger: %s", exc)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "app"):
        logging.getLogger(logger_name).setLevel(log_level)

    root_logger._geoguard_logging_configured = True
