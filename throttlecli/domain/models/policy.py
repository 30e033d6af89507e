"""Retry policy value object."""

from dataclasses import dataclass

from throttlecli.domain.errors import InvalidRetryPolicyError

DEFAULT_MAX_RETRIES = 3


@dataclass(frozen=True)
class RetryPolicy:
    """How many times a throttled operation may be retried.

    Attributes:
        max_retries: Additional attempts allowed after the first one.
            ``0`` means the operation runs once and is never retried.
    """

    max_retries: int = DEFAULT_MAX_RETRIES

    def __post_init__(self):
        # bool is an int subclass but never a meaningful budget
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise InvalidRetryPolicyError(self.max_retries)
        if self.max_retries < 0:
            raise InvalidRetryPolicyError(self.max_retries)

    @property
    def max_attempts(self) -> int:
        """Upper bound on calls to the operation in one invocation."""
        return self.max_retries + 1
