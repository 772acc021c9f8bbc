import threading
import time
from collections.abc import Callable

from statement_categorizer.logger import get_logger

logger = get_logger(__name__)

DEFAULT_REQUESTS_PER_MINUTE = 10


class RateLimiter:
    """
    Blocking limiter enforcing a minimum interval of ``60 / requests_per_minute``
    seconds between calls. Callers are serialized through one lock, so a caller
    that would exceed the budget sleeps while holding it.
    """

    def __init__(
        self,
        requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if requests_per_minute <= 0:
            requests_per_minute = DEFAULT_REQUESTS_PER_MINUTE
        self.requests_per_minute = requests_per_minute
        self.min_interval = 60.0 / requests_per_minute
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call: float | None = None

    def wait(self) -> float:
        """Block until the next call is allowed. Returns the seconds slept."""
        with self._lock:
            waited = 0.0
            if self._last_call is not None:
                elapsed = self._clock() - self._last_call
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    logger.info("[AI] Rate limiting: waiting %.0fms before next call", waited * 1000)
                    self._sleep(waited)
            self._last_call = self._clock()
            return waited
