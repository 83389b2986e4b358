import logging
import os

from rich.logging import RichHandler


class CenteredFormatter(logging.Formatter):
    """Pads logger names so messages from server, sync and UI line up."""

    name_width = 14

    def __init__(self, fmt=None, datefmt=None, style="%", initial_width=14):
        super().__init__(fmt, datefmt, style)
        CenteredFormatter.name_width = initial_width

    def format(self, record):
        CenteredFormatter.name_width = max(
            CenteredFormatter.name_width, len(record.name)
        )
        record.name = record.name.center(CenteredFormatter.name_width)
        return super().format(record)


def _log_level() -> int:
    return logging.DEBUG if os.getenv("DEBUG") else logging.INFO


def _make_handler(level: int) -> logging.Handler:
    # a running Textual app owns the terminal, so it can send logs to a file
    log_file = os.getenv("WORKLIST_LOG_FILE")
    if log_file:
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(
            CenteredFormatter("%(asctime)s %(levelname)-8s [%(name)s]  %(message)s")
        )
    else:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(CenteredFormatter("[%(name)s]  %(message)s"))
    handler.setLevel(level)
    return handler


def get_logger(name=None) -> logging.Logger:
    """
    Return a logger for `name`, attaching a RichHandler (or a file handler
    when WORKLIST_LOG_FILE is set) the first time the name is seen.
    DEBUG in the environment switches the level to DEBUG.
    """
    logger = logging.getLogger(name or "worklist")
    level = _log_level()
    logger.setLevel(level)

    if not logger.handlers:
        logger.addHandler(_make_handler(level))
        logger.propagate = False
        logger.debug(f"Logger for '{logger.name}' initialized.")

    return logger
