import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from core.config import settings

logger = logging.getLogger(__name__)


@contextmanager
def timing_metric(name: str, slow_after_s: Optional[float] = None) -> Iterator[None]:
    """Log how long the block took; WARNING once it crosses the slow threshold."""
    threshold = settings.SLOW_OPERATION_S if slow_after_s is None else slow_after_s
    start = time.perf_counter()
    try:
        yield
    finally:
        duration = time.perf_counter() - start
        level = logging.WARNING if duration > threshold else logging.DEBUG
        logger.log(level, "%s took %.3fs", name, duration)
