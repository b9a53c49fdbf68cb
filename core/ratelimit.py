# core/ratelimit.py
import threading
import time
from typing import Any, Callable, TypeVar

from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RateLimiter:
    """
    Spaces the start of consecutive requests by at least `min_interval_ms`.

    Callers are admitted one at a time under a lock. Only start spacing is
    enforced; a call that raises propagates straight back to the caller
    with no retry.
    """

    def __init__(
        self,
        min_interval_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = max(0, min_interval_ms) / 1000.0
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_start: float | None = None

    def wait(self) -> None:
        with self._lock:
            if self._last_start is not None:
                since_last = self._clock() - self._last_start
                if since_last < self.min_interval:
                    wait_for = self.min_interval - since_last
                    logger.debug(
                        "Rate limit: last request %.3fs ago; waiting %.3fs.",
                        since_last, wait_for,
                    )
                    self._sleep(wait_for)
            self._last_start = self._clock()

    def schedule(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        self.wait()
        return fn(*args, **kwargs)
