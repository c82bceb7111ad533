"""
Circuit breaker implementation.

Stops delivery attempts to a failing notification channel after a threshold
of consecutive failures, and lets a single trial through once the reset
timeout has elapsed.
"""

import asyncio
import enum
import time
from typing import Optional
from loguru import logger


class CircuitState(enum.Enum):
    """Circuit breaker states."""
    CLOSED = "closed"       # Normal operation, calls pass through
    OPEN = "open"           # Failing state, calls are blocked
    HALF_OPEN = "half_open" # One trial call allowed


class CircuitBreaker:
    """
    Circuit breaker implementation.

    The breaker is shared by every coroutine using a channel, so state
    transitions are guarded by an asyncio lock.
    """

    def __init__(self, name: str, failure_threshold: int = 5, reset_timeout: int = 30):
        """
        Initialize the circuit breaker.

        Args:
            name: Name used in log records
            failure_threshold: Number of failures before opening the circuit
            reset_timeout: Seconds before trying to close the circuit again
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self.state = CircuitState.CLOSED
        self._trial_in_flight = False
        self._lock = asyncio.Lock()

    async def is_allowed(self) -> bool:
        """
        Check if a call is allowed.

        Returns:
            True if the call should go ahead, False if it should be skipped
        """
        async with self._lock:
            if self.state == CircuitState.CLOSED:
                return True

            if self.state == CircuitState.OPEN:
                if (self.last_failure_time is not None and
                        time.time() - self.last_failure_time >= self.reset_timeout):
                    logger.info(
                        "Circuit breaker {name} transitioning from OPEN to HALF_OPEN",
                        name=self.name,
                    )
                    self.state = CircuitState.HALF_OPEN
                    self._trial_in_flight = True
                    return True
                return False

            # HALF_OPEN: only the trial call may run
            if self._trial_in_flight:
                return False
            self._trial_in_flight = True
            return True

    async def record_success(self) -> None:
        async with self._lock:
            if self.state == CircuitState.HALF_OPEN:
                logger.info("Circuit breaker {name} closed after successful trial", name=self.name)
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.last_failure_time = None
            self._trial_in_flight = False

    async def record_failure(self) -> None:
        async with self._lock:
            self.last_failure_time = time.time()
            self._trial_in_flight = False

            if self.state == CircuitState.HALF_OPEN:
                logger.warning("Circuit breaker {name} reopened after failed trial", name=self.name)
                self.state = CircuitState.OPEN
                return

            self.failure_count += 1
            if self.state == CircuitState.CLOSED and self.failure_count >= self.failure_threshold:
                logger.warning(
                    "Circuit breaker {name} opened after {count} failures",
                    name=self.name,
                    count=self.failure_count,
                )
                self.state = CircuitState.OPEN
