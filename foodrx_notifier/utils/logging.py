import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from loguru import logger

from foodrx_notifier.config.settings import Settings, settings
from foodrx_notifier.utils.context import get_request_id

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[request_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level> {extra}"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[request_id]} | "
    "{name}:{function}:{line} - {message} {extra}"
)


class InterceptHandler(logging.Handler):
    loglevel_mapping = {
        50: "CRITICAL",
        40: "ERROR",
        30: "WARNING",
        20: "INFO",
        10: "DEBUG",
        0: "NOTSET",
    }

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except (AttributeError, ValueError):
            level = self.loglevel_mapping[record.levelno]

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        # Get request ID from context
        request_id = get_request_id() or "app"
        log = logger.bind(request_id=request_id)
        log.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


class CustomizeLogger:
    @classmethod
    def make_logger(cls, app_settings: Settings):
        return cls.customize_logging(
            log_dir=app_settings.LOG_DIR,
            filename=f"{date.today().strftime('%Y-%m-%d')}-foodrx-notifier.log",
            level=app_settings.LOG_LEVEL,
            rotation=app_settings.LOG_ROTATION,
            retention=app_settings.LOG_RETENTION,
            use_json_logs=app_settings.LOG_JSON,
        )

    @classmethod
    def customize_logging(
        cls,
        log_dir: Optional[str],
        filename: str,
        level: str,
        rotation: str,
        retention: str,
        use_json_logs: bool = False,
    ):
        logger.remove()
        logger.configure(extra={"request_id": "app"})

        # Console logger with colors
        logger.add(
            sys.stdout,
            enqueue=True,
            backtrace=True,
            level=level.upper(),
            format=CONSOLE_FORMAT,
            colorize=True,
        )

        # File logger without colors, only when a log directory is configured
        if log_dir:
            file_path = str(Path(log_dir) / filename)
            if use_json_logs:
                logger.add(
                    file_path,
                    rotation=rotation,
                    retention=retention,
                    enqueue=True,
                    backtrace=True,
                    level=level.upper(),
                    serialize=True,
                    colorize=False,
                )
            else:
                logger.add(
                    file_path,
                    rotation=rotation,
                    retention=retention,
                    enqueue=True,
                    backtrace=True,
                    level=level.upper(),
                    format=FILE_FORMAT,
                    colorize=False,
                )

        # Redirect standard logging to loguru
        cls._setup_intercept_handlers()

        return logger

    @staticmethod
    def _setup_intercept_handlers():
        logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

        intercepted_loggers = [
            "uvicorn",
            "uvicorn.error",
            "uvicorn.access",
            "fastapi",
            "celery",
            "sqlalchemy.engine",
        ]
        for log_name in intercepted_loggers:
            _logger = logging.getLogger(log_name)
            _logger.handlers = [InterceptHandler()]


# Initialize logger
custom_logger = CustomizeLogger.make_logger(settings)


def get_logger():
    """Get the custom logger instance with request ID binding."""
    request_id = get_request_id() or "app"
    return custom_logger.bind(request_id=request_id)
