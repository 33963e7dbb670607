import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from memobridge.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"

LIBRARY_LOGGERS = ("httpx", "httpcore", "telegram")

_configured = False


def resolve_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(settings: "Settings") -> None:
    """Send bridge logs at ``LOG_LEVEL`` to the console and the log file.

    Library loggers stay at WARNING unless ``LOG_LEVEL`` is DEBUG.
    """
    global _configured
    if _configured:
        return

    log_level = resolve_level(settings.log_level)
    handlers: list[logging.Handler] = [
        logging.StreamHandler(),
        logging.FileHandler(settings.log_file_path, encoding="utf-8"),
    ]
    logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=handlers, force=True)

    library_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    logging.getLogger(__name__).info(
        "Logging configured (level=%s, file=%s)",
        logging.getLevelName(log_level),
        settings.log_file_path,
    )
    _configured = True
