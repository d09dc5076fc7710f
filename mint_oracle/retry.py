"""
Bounded fixed-delay retry for eventually-consistent chain reads.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

T = TypeVar('T')

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry a read until it yields a value or the attempt budget runs out.

    Attributes:
        max_attempts: Total number of attempts, including the first
        delay: Seconds to sleep between attempts (no sleep after the last)
    """
    max_attempts: int = 5
    delay: float = 2.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")

    @property
    def max_wait(self) -> float:
        """Upper bound on time spent sleeping across all attempts."""
        return self.delay * (self.max_attempts - 1)

    def run(self, fn: Callable[[], Optional[T]], description: str = "operation") -> Optional[T]:
        """
        Call ``fn`` until it returns something other than None.

        Exceptions raised by ``fn`` count as "not available yet" and are
        retried like a None result.

        Args:
            fn: Zero-argument callable performing one attempt
            description: Label used in log messages

        Returns:
            The first non-None result, or None once attempts are exhausted
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = fn()
            except Exception as e:
                logger.warning(f"{description} failed (attempt {attempt}/{self.max_attempts}): {e}")
                result = None

            if result is not None:
                if attempt > 1:
                    logger.debug(f"{description} succeeded on attempt {attempt}/{self.max_attempts}")
                return result

            if attempt < self.max_attempts:
                logger.info(
                    f"{description} not available (attempt {attempt}/{self.max_attempts}), "
                    f"retrying in {self.delay}s..."
                )
                time.sleep(self.delay)

        logger.error(f"{description} not available after {self.max_attempts} attempts")
        return None
