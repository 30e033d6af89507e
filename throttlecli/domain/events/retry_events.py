"""Domain Events emitted while a throttled operation is being retried."""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class ThrottledAttempt(DomainEvent):
    """Passed to the throttled hook each time an attempt is rate-limited."""
    attempt_number: int  # 1-based, counts throttled failures so far
    max_retries: int
    error: BaseException
    rule_name: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def retries_remaining(self) -> int:
        return max(0, self.max_retries - (self.attempt_number - 1))

    @property
    def will_retry(self) -> bool:
        """False on the attempt that exhausts the budget."""
        return self.attempt_number <= self.max_retries


@dataclass
class OperationSucceeded(DomainEvent):
    """The operation returned a result."""
    attempts: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetriesExhausted(DomainEvent):
    """The last throttled error is about to propagate."""
    attempts: int
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class NonRetryableFailure(DomainEvent):
    """The operation failed with an error that is not throttling."""
    attempt_number: int
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)
