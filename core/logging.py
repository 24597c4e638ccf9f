import logging
import sys

from core.config import settings

# third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "langfuse", "watchdog")


def configure_logging(level: int | str | None = None) -> None:
    """
    Configure logging for the API, the Streamlit pages and the admin tool.
    Call once per process; LOG_LEVEL picks the level when none is passed.
    """
    logging.basicConfig(
        level=level or settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
