"""throttlecli: throttling-aware retry execution for remote service calls.

Runs an operation, recognises provider rate-limit failures and retries them
within a bounded budget, delegating delay and reporting to a caller hook.
"""

from throttlecli.core.retry_executor import (
    RetryExecutor,
    execute_with_throttle_retry,
    retry_on_throttling,
)
from throttlecli.domain.models.policy import RetryPolicy
from throttlecli.infrastructure.resilience.classifier import (
    RuleBasedClassifier,
    ThrottlingRule,
    default_classifier,
)

__all__ = [
    "RetryExecutor",
    "RetryPolicy",
    "RuleBasedClassifier",
    "ThrottlingRule",
    "default_classifier",
    "execute_with_throttle_retry",
    "retry_on_throttling",
]
