"""Circuit breaker for the clinic services.

Purpose: Stop hammering a service that is down. After enough consecutive
transport failures every call fails fast until the cool-down has passed.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Service failing, requests fail immediately
- HALF_OPEN: Cool-down elapsed, one trial request is let through
"""
import time
from enum import Enum
from typing import Callable, Any, Optional

from doctor_booking.logging_config import get_logger

logger = get_logger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class ServiceUnavailable(Exception):
    """Raised when the circuit is open and the call was not attempted."""

    def __init__(self, service: str, retry_after: float):
        super().__init__(
            f"{service} is unavailable. Retry after {retry_after:.1f}s"
        )
        self.service = service
        self.retry_after = retry_after


class CircuitBreaker:
    """Counts consecutive failures of one service and opens after a threshold."""

    def __init__(
        self,
        name: str = "clinic-api",
        failure_threshold: int = 5,
        timeout: float = 60,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            name: Service name used in logs and errors
            failure_threshold: Consecutive failures before opening
            timeout: Seconds to stay open before allowing a trial call
            clock: Time source (monotonic seconds)
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self._clock = clock
        self._state = CircuitState.CLOSED

    @property
    def state(self) -> CircuitState:
        return self._state

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute func unless the circuit is open.

        Raises:
            ServiceUnavailable: If the circuit is open
            Exception: Whatever func raises (counted as a failure)
        """
        if self._state == CircuitState.OPEN:
            if self._time_until_retry() <= 0:
                self._state = CircuitState.HALF_OPEN
                logger.info("circuit_half_open", service=self.name)
            else:
                raise ServiceUnavailable(self.name, self._time_until_retry())

        try:
            result = func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _time_until_retry(self) -> float:
        if self.last_failure_time is None:
            return 0
        elapsed = self._clock() - self.last_failure_time
        return max(0, self.timeout - elapsed)

    def _on_success(self):
        self.failure_count = 0
        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.CLOSED
            logger.info("circuit_closed", service=self.name)

    def _on_failure(self):
        self.failure_count += 1
        self.last_failure_time = self._clock()

        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            logger.warning("circuit_reopened", service=self.name)
        elif self.failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.error(
                "circuit_opened",
                service=self.name,
                failures=self.failure_count,
                timeout=self.timeout
            )
