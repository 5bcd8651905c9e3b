import inspect
import logging
import sys

from decouple import config as dconfig
from loguru import logger

# stdlib loggers of the server and the HTTP client, forwarded to loguru
_intercepted_loggers = ["uvicorn", "uvicorn.access", "aiohttp.client"]

_template = (
    "<{color}>{{time:YYYY-MM-DD HH:mm:ss}}</{color}> | "
    "<level>{{level.icon}}</level> | "
    "<level>{{name}}:{{function}}:{{line}}</level> | "
    "<level>{{message}}</level>\n"
)


def _level_color(level_no: int) -> str:
    if level_no < logging.WARNING:
        return "green"
    if level_no == logging.WARNING:
        return "yellow"

    return "red"


def format_record(record) -> str:
    fmt = _template.format(color=_level_color(record["level"].no))
    if record["exception"] is not None:
        fmt += "<level>{exception}</level>\n"

    return fmt


def configure_logger() -> None:
    level = dconfig("log_level", default="INFO", cast=str)
    log_file = dconfig("log_file", default="", cast=str)

    logger.remove()
    logger.add(sys.stdout, level=level, format=format_record, colorize=True)

    if log_file:
        logger.add(
            log_file,
            level=level,
            format=format_record,
            rotation="10 MB",
            retention="30 days",
            compression="zip",
        )

    for name in _intercepted_loggers:
        logging.getLogger(name).handlers = [InterceptHandler()]

    logger.debug(f"Logging configured with level {level}")


class InterceptHandler(logging.Handler):
    """Re-emits stdlib log records through loguru, keeping the caller's location"""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # walk out of the logging module so loguru reports the real caller
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )
