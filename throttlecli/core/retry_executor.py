"""Service for executing operations with retries on throttling.

Runs a zero-argument operation, and when it fails with an error the
classifier recognises as rate limiting, calls the throttled hook and tries
again until the retry budget is spent. Any other error propagates on the
first occurrence. The executor never sleeps; delays belong to the hook.
"""

import functools
import inspect
import logging
from typing import Any, Callable, Optional

from throttlecli.domain.events.retry_events import (
    NonRetryableFailure,
    OperationSucceeded,
    RetriesExhausted,
    ThrottledAttempt,
)
from throttlecli.domain.interfaces.classifier import ThrottlingClassifier
from throttlecli.domain.models.common import EventListener, Operation, T, ThrottledHook
from throttlecli.domain.models.policy import RetryPolicy
from throttlecli.infrastructure.resilience.classifier import default_classifier

logger = logging.getLogger(__name__)


def _accepts_event(hook: Callable[..., Any]) -> bool:
    """Whether the hook can be called with one positional argument."""
    try:
        signature = inspect.signature(hook)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures get the event
        return True
    for param in signature.parameters.values():
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD, param.VAR_POSITIONAL):
            return True
    return False


def _noop_hook(event: ThrottledAttempt) -> None:
    pass


class RetryExecutor:
    """Runs operations, retrying throttling failures within a RetryPolicy."""

    def __init__(
        self,
        classifier: Optional[ThrottlingClassifier] = None,
        policy: Optional[RetryPolicy] = None,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the RetryExecutor.

        Args:
            classifier: Decides which errors are throttling. Defaults to the
                built-in provider rules.
            policy: Default policy for ``execute`` calls that pass none.
            event_listener: Optional callable receiving OperationSucceeded,
                RetriesExhausted and NonRetryableFailure events.
        """
        self.classifier = classifier if classifier is not None else default_classifier()
        self.policy = policy or RetryPolicy()
        self.event_listener = event_listener

    def _emit(self, event: Any) -> None:
        if self.event_listener is not None:
            self.event_listener(event)

    def execute(
        self,
        operation: Operation,
        on_throttled: Optional[ThrottledHook] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> T:
        """Calls ``operation`` until it succeeds, fails otherwise, or runs out of retries.

        Args:
            operation: Zero-argument callable performing the protected action.
            on_throttled: Called once per throttled failure, including the one
                that exhausts the budget. A hook taking an argument receives
                a ThrottledAttempt event, not a bare attempt number; use
                ``event.attempt_number`` for that. Its own exceptions are
                not caught.
            policy: Overrides the executor's default policy for this call.

        Returns:
            Whatever ``operation`` returns.

        Raises:
            Exception: The operation's error, unchanged, when it is not
                throttling or when the retry budget is exhausted.
        """
        policy = policy or self.policy
        hook = on_throttled or _noop_hook
        pass_event = _accepts_event(hook)
        retries = 0

        while True:
            try:
                result = operation()
            except Exception as e:
                rule = self.classifier.match(e)
                if rule is None:
                    logger.debug(
                        f"Non-retryable error on attempt {retries + 1}: {type(e).__name__}: {e}"
                    )
                    self._emit(NonRetryableFailure(
                        attempt_number=retries + 1,
                        error_type=type(e).__name__,
                        error_message=str(e),
                    ))
                    raise

                event = ThrottledAttempt(
                    attempt_number=retries + 1,
                    max_retries=policy.max_retries,
                    error=e,
                    rule_name=getattr(rule, "name", None),
                )
                logger.warning(
                    f"Throttled on attempt {event.attempt_number}/{policy.max_attempts} "
                    f"({event.rule_name}): {e}"
                )
                if pass_event:
                    hook(event)
                else:
                    hook()

                if retries >= policy.max_retries:
                    logger.error(
                        f"Retries exhausted after {retries + 1} attempt(s). Last error: {e}"
                    )
                    self._emit(RetriesExhausted(
                        attempts=retries + 1,
                        error_type=type(e).__name__,
                        error_message=str(e),
                    ))
                    raise
                retries += 1
            else:
                if retries:
                    logger.debug(f"Operation succeeded after {retries} throttled attempt(s)")
                self._emit(OperationSucceeded(attempts=retries + 1))
                return result


def execute_with_throttle_retry(
    policy: RetryPolicy,
    operation: Operation,
    on_throttled: Optional[ThrottledHook] = None,
    classifier: Optional[ThrottlingClassifier] = None,
) -> T:
    """Functional form of ``RetryExecutor.execute``."""
    return RetryExecutor(classifier=classifier, policy=policy).execute(operation, on_throttled)


def retry_on_throttling(
    policy: Optional[RetryPolicy] = None,
    on_throttled: Optional[ThrottledHook] = None,
    classifier: Optional[ThrottlingClassifier] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator running every call of the wrapped function through the executor.

    Example:
        @retry_on_throttling(RetryPolicy(max_retries=5), on_throttled=backoff)
        def describe_instances(client):
            return client.describe_instances()
    """
    executor = RetryExecutor(classifier=classifier, policy=policy)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return executor.execute(lambda: func(*args, **kwargs), on_throttled)
        return wrapper

    return decorator
