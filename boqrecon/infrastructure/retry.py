"""Retry policy for snapshot loads with capped exponential backoff."""
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import OperationalError

from ..config import get_config
from ..domain.exceptions import SnapshotLoadError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Configuration for retrying a storage read.

    Attributes:
        attempts: Total tries, including the first one
        base_delay: Backoff seconds before the second try; doubles per retry
        max_delay: Cap on any single backoff
        jitter: Randomize each backoff in [0, delay]
        retry_on: Exception types that are worth retrying
        sleep: Injected for tests
    """

    attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 5.0
    jitter: bool = False
    retry_on: Tuple[Type[BaseException], ...] = (OperationalError,)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    @classmethod
    def from_config(cls, **overrides) -> "RetryPolicy":
        """Build a policy from the `retry` config section."""
        settings = get_config().retry
        params = {
            "attempts": int(settings.get("attempts", 3)),
            "base_delay": float(settings.get("base_delay", 0.5)),
            "max_delay": float(settings.get("max_delay", 5.0)),
        }
        params.update(overrides)
        return cls(**params)

    def backoff(self, retry_number: int) -> float:
        """Delay before retry `retry_number` (0-based)."""
        delay = min(self.max_delay, self.base_delay * (2 ** retry_number))
        if self.jitter:
            delay = random.uniform(0, delay)
        return delay

    def run(self, fn: Callable[[], T], description: str = "operation") -> T:
        """
        Call `fn` until it succeeds or runs out of attempts.

        Only `retry_on` exceptions are retried; anything else propagates
        immediately.

        Raises:
            SnapshotLoadError: When every attempt failed with a retryable error
        """
        attempts = max(1, self.attempts)
        last_error: Optional[BaseException] = None

        for attempt in range(attempts):
            try:
                return fn()
            except self.retry_on as e:
                last_error = e
                if attempt + 1 >= attempts:
                    break
                delay = self.backoff(attempt)
                logger.warning(
                    f"{description} failed (attempt {attempt + 1}/{attempts}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                self.sleep(delay)

        logger.error(f"{description} failed after {attempts} attempt(s): {last_error}")
        raise SnapshotLoadError(attempts, last_error)
