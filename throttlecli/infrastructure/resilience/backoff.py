"""Backoff hooks for the retry executor.

The executor calls its throttled hook once per rate-limited attempt; these
hooks turn that call into a log line and a sleep. Sleeping is skipped on the
attempt that exhausts the budget.
"""

import abc
import logging
import random
import time
from typing import Callable, List, Optional

from throttlecli.domain.events.retry_events import ThrottledAttempt
from throttlecli.domain.models.policy import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY_S = 3.0
# Growth factor is sqrt(2) plus up to 1.0 of jitter, drawn once per hook
BASE_BACKOFF_FACTOR = 1.4142

BACKOFF_STRATEGIES = ("exponential", "squared", "none")


class BackoffHook(abc.ABC):
    """Throttled hook that waits ``delay_for(attempt)`` seconds before a retry."""

    def __init__(self, sleep: Optional[Callable[[float], None]] = None):
        self._sleep = sleep if sleep is not None else time.sleep

    @abc.abstractmethod
    def delay_for(self, attempt_number: int) -> float:
        """Seconds to wait after the given 1-based throttled attempt."""
        pass

    def delays(self, policy: RetryPolicy) -> List[float]:
        """Previews the wait before each retry the policy allows."""
        return [self.delay_for(attempt) for attempt in range(1, policy.max_retries + 1)]

    def __call__(self, event: ThrottledAttempt) -> None:
        logger.info(str(event.error))
        if not event.will_retry:
            logger.info(f"No retries left after attempt {event.attempt_number}.")
            return
        delay = self.delay_for(event.attempt_number)
        logger.info(
            "Sleeping %0.2f seconds. Will retry %i more time(s)." % (delay, event.retries_remaining)
        )
        if delay > 0:
            self._sleep(delay)


class ExponentialBackoffHook(BackoffHook):
    """Waits ``retry_delay * base ** (attempt - 1)`` seconds, truncated to whole seconds.

    ``base`` is ``1.4142 + rng()``, drawn once when the hook is created.
    """

    def __init__(
        self,
        retry_delay: float = DEFAULT_RETRY_DELAY_S,
        max_delay: Optional[float] = None,
        sleep: Optional[Callable[[float], None]] = None,
        rng: Callable[[], float] = random.random,
    ):
        """Initializes the hook.

        Args:
            retry_delay: Delay in seconds before the first retry.
            max_delay: Optional cap applied after truncation.
            sleep: Blocking sleep function, time.sleep if omitted.
            rng: Source of jitter in [0, 1).
        """
        super().__init__(sleep=sleep)
        if retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {retry_delay}")
        if max_delay is not None and max_delay < 0:
            raise ValueError(f"max_delay must be >= 0, got {max_delay}")
        self.retry_delay = retry_delay
        self.max_delay = max_delay
        self.backoff_factor = BASE_BACKOFF_FACTOR + rng()

    def delay_for(self, attempt_number: int) -> float:
        delay = float(int(self.retry_delay * (self.backoff_factor ** (attempt_number - 1))))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay


class SquaredBackoffHook(BackoffHook):
    """Waits ``attempt ** 2`` seconds: 1, 4, 9, ..."""

    def __init__(self, max_delay: Optional[float] = None, sleep: Optional[Callable[[float], None]] = None):
        super().__init__(sleep=sleep)
        self.max_delay = max_delay

    def delay_for(self, attempt_number: int) -> float:
        delay = float(attempt_number ** 2)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay


class NoBackoffHook(BackoffHook):
    """Logs throttled attempts and retries immediately."""

    def delay_for(self, attempt_number: int) -> float:
        return 0.0


class ChainedHook:
    """Calls several throttled hooks in order with the same event."""

    def __init__(self, *hooks: Callable[[ThrottledAttempt], None]):
        self.hooks = hooks

    def __call__(self, event: ThrottledAttempt) -> None:
        for hook in self.hooks:
            hook(event)


def build_backoff_hook(
    strategy: str = "exponential",
    retry_delay: float = DEFAULT_RETRY_DELAY_S,
    max_delay: Optional[float] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> BackoffHook:
    """Creates a backoff hook by strategy name.

    Raises:
        ValueError: If ``strategy`` is not one of BACKOFF_STRATEGIES.
    """
    name = (strategy or "").strip().lower()
    if name == "exponential":
        return ExponentialBackoffHook(retry_delay=retry_delay, max_delay=max_delay, sleep=sleep)
    if name == "squared":
        return SquaredBackoffHook(max_delay=max_delay, sleep=sleep)
    if name == "none":
        return NoBackoffHook(sleep=sleep)
    raise ValueError(
        f"Unknown backoff strategy '{strategy}'. Expected one of: {', '.join(BACKOFF_STRATEGIES)}"
    )
