import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers kept at WARNING unless the forecast runs at DEBUG
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite")


def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for a forecast run.

    Pipeline events are written to stdout in the EVENT | key=value style.
    """
    resolved = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=resolved,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if resolved > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
