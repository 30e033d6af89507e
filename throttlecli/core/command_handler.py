"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), builds the
classifier, backoff hook and retry executor they need, and reports
results through the UserInterface.
"""

import logging
from typing import Callable, Iterable, List, Optional, Sequence

from throttlecli.core.retry_executor import RetryExecutor
from throttlecli.domain.errors import CommandFailedError
from throttlecli.domain.events.retry_events import ThrottledAttempt
from throttlecli.domain.interfaces.user_interface import UserInterface
from throttlecli.domain.models.policy import RetryPolicy
from throttlecli.infrastructure.process.command_runner import CommandRunner
from throttlecli.infrastructure.resilience.backoff import ChainedHook, build_backoff_hook
from throttlecli.infrastructure.resilience.classifier import RuleBasedClassifier, default_classifier

logger = logging.getLogger(__name__)


def _no_sleep(seconds: float) -> None:
    logger.debug(f"Skipping sleep of {seconds:.2f}s")


class CommandHandler:
    """Handles incoming commands and delegates to the retry machinery."""

    def __init__(
        self,
        ui: UserInterface,
        classifier: Optional[RuleBasedClassifier] = None,
        runner_factory: Callable[..., Callable] = CommandRunner,
    ):
        """Initializes the CommandHandler.

        Args:
            ui: Where results, warnings and errors are shown.
            classifier: Throttling classifier; defaults to the provider rules.
            runner_factory: Builds the operation for ``run`` from
                ``(args, timeout=...)``.
        """
        self.ui = ui
        self.classifier = classifier if classifier is not None else default_classifier()
        self.runner_factory = runner_factory

    def _classifier_with(self, extra_patterns: Optional[Iterable[str]]) -> RuleBasedClassifier:
        patterns = list(extra_patterns or [])
        if not patterns:
            return self.classifier
        classifier = RuleBasedClassifier(self.classifier.rules)
        for index, pattern in enumerate(patterns, start=1):
            classifier.register_pattern(f"cli-{index}", pattern)
        return classifier

    def _report_throttled(self, event: ThrottledAttempt) -> None:
        if event.will_retry:
            message = (
                f"Throttled ({event.rule_name}) on attempt {event.attempt_number}. "
                f"Will retry {event.retries_remaining} more time(s)."
            )
        else:
            message = f"Throttled ({event.rule_name}) on attempt {event.attempt_number}. No retries left."
        self.ui.display_warning(message)

    def handle_classify(self, message: str, extra_patterns: Optional[Iterable[str]] = None) -> bool:
        """Handles the 'classify' command. Returns True if the message is throttling."""
        classifier = self._classifier_with(extra_patterns)
        rule = classifier.match(Exception(message))
        if rule is None:
            logger.info("Message not classified as throttling.")
            self.ui.display_info("Not a throttling error.")
            return False
        logger.info(f"Message classified as throttling by rule '{rule.name}'.")
        self.ui.display_output(f"Throttling error (rule: {rule.name})", title="classify")
        return True

    def handle_schedule(
        self,
        policy: RetryPolicy,
        strategy: str = "exponential",
        retry_delay: float = 3.0,
        max_delay: Optional[float] = None,
    ) -> List[float]:
        """Handles the 'schedule' command: shows the delay before each retry."""
        hook = build_backoff_hook(strategy, retry_delay=retry_delay, max_delay=max_delay, sleep=_no_sleep)
        delays = hook.delays(policy)
        if not delays:
            self.ui.display_info("max_retries is 0: a throttled call fails without retrying.")
            return delays
        rows = []
        total = 0.0
        for retry_number, delay in enumerate(delays, start=1):
            total += delay
            rows.append((retry_number, f"{delay:.2f}", f"{total:.2f}"))
        self.ui.display_table(
            f"{strategy} backoff, max_retries={policy.max_retries}",
            ("Retry", "Delay (s)", "Cumulative (s)"),
            rows,
        )
        return delays

    def handle_run(
        self,
        args: Sequence[str],
        policy: RetryPolicy,
        strategy: str = "exponential",
        retry_delay: float = 3.0,
        max_delay: Optional[float] = None,
        sleep: bool = True,
        timeout: Optional[float] = None,
        extra_patterns: Optional[Iterable[str]] = None,
    ) -> int:
        """Handles the 'run' command.

        Runs ``args`` through the retry executor and returns the exit code
        the CLI should finish with: 0 on success, the command's own return
        code when it fails or stays throttled.
        """
        logger.info(f"Handling 'run' command: {list(args)} with max_retries={policy.max_retries}")
        backoff = build_backoff_hook(
            strategy,
            retry_delay=retry_delay,
            max_delay=max_delay,
            sleep=None if sleep else _no_sleep,
        )
        executor = RetryExecutor(classifier=self._classifier_with(extra_patterns), policy=policy)
        operation = self.runner_factory(list(args), timeout=timeout)

        try:
            result = executor.execute(operation, ChainedHook(self._report_throttled, backoff))
        except CommandFailedError as e:
            logger.error(f"Command failed: {e}")
            if e.stdout:
                self.ui.display_output(e.stdout, title="stdout")
            self.ui.display_error(str(e))
            return e.returncode or 1

        self.ui.display_output(result.stdout, title="stdout")
        if result.stderr:
            self.ui.display_output(result.stderr, title="stderr")
        return 0
