"""
Centralized Logging Configuration for the Career Match Engine
"""
import functools
import inspect
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Any

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-40s | %(funcName)-24s:%(lineno)-4d | %(message)s",
}

# ENVIRONMENT -> (level, file logging, console format); None level defers to LOG_LEVEL
ENVIRONMENT_PROFILES = {
    "production": (None, True, "detailed"),
    "development": ("DEBUG", True, "detailed"),
    "testing": ("WARNING", False, "simple"),
}

MAX_LOG_BYTES = 10 * 1024 * 1024


def _rotating_file(filename: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(filename),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": 5,
        "encoding": "utf8",
    }


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed"
) -> None:
    """
    Setup centralized logging configuration

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (defaults to <LOG_DIR>/career_match_<date>.log)
        enable_console: Enable console logging
        enable_file: Enable file logging, plus a separate file for errors
        format_style: Console format, 'simple' or 'detailed'
    """
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    stamp = datetime.now().strftime('%Y%m%d')
    log_file = Path(log_file) if log_file else log_dir / f"career_match_{stamp}.log"

    handlers: Dict[str, Any] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": format_style if format_style in FORMATS else "detailed",
            "stream": "ext://sys.stdout"
        }
    if enable_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers["file"] = _rotating_file(log_file, level)
        handlers["error_file"] = _rotating_file(log_dir / f"career_match_errors_{stamp}.log", "ERROR")

    server_handlers = [h for h in ("console", "file") if h in handlers]
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            name: {"format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S"} for name, fmt in FORMATS.items()
        },
        "handlers": handlers,
        "loggers": {
            "": {"level": level, "handlers": list(handlers), "propagate": False},
            "uvicorn": {"level": "INFO", "handlers": server_handlers, "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": server_handlers[:1], "propagate": False},
            # pdfminer is noisy about malformed CVs
            "pdfminer": {"level": "ERROR", "handlers": [], "propagate": True},
        },
    })

    logger = logging.getLogger("career_match.logging")
    logger.info(f"Logging configured - Level: {level}, Console: {enable_console}, File: {enable_file}")
    if enable_file:
        logger.info(f"Log file: {log_file}")


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``career_match`` hierarchy"""
    if name.startswith("career_match"):
        return logging.getLogger(name)
    return logging.getLogger(f"career_match.{name}")


def log_function_call(func):
    """Log entry, completion time and failures of a sync or async call"""
    def entering(logger, args, kwargs):
        logger.debug(f"Entering {func.__name__} with args={len(args)}, kwargs={list(kwargs.keys())}")
        return time.time()

    def failed(logger, start_time, e):
        logger.error(f"Error in {func.__name__} after {time.time() - start_time:.3f}s: {str(e)}")

    @functools.wraps(func)
    async def async_wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = entering(logger, args, kwargs)
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            failed(logger, start_time, e)
            raise
        logger.debug(f"Completed {func.__name__} in {time.time() - start_time:.3f}s")
        return result

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = entering(logger, args, kwargs)
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            failed(logger, start_time, e)
            raise
        logger.debug(f"Completed {func.__name__} in {time.time() - start_time:.3f}s")
        return result

    if inspect.iscoroutinefunction(func):
        return async_wrapper
    return sync_wrapper


def configure_for_environment():
    """Configure logging from ENVIRONMENT and LOG_LEVEL"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    if environment not in ENVIRONMENT_PROFILES:
        setup_logging(level=log_level)
        return
    level, enable_file, format_style = ENVIRONMENT_PROFILES[environment]
    setup_logging(level=level or log_level, enable_console=True, enable_file=enable_file, format_style=format_style)


class PerformanceMonitor:
    """Context manager that logs how long a block took"""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.start_time = None
        self.elapsed_ms = 0.0

    def __enter__(self):
        self.start_time = time.time()
        self.logger.debug(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.time() - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms (exceeded threshold {self.threshold_ms}ms)")
        else:
            self.logger.info(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")
        return False
