"""Main entry point for the throttlecli application.

Sets up the Typer CLI application, wires dependencies (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from typing_extensions import Annotated

from throttlecli.core.command_handler import CommandHandler
from throttlecli.domain.errors import ConfigurationError, InvalidRetryPolicyError, InvalidRuleError
from throttlecli.domain.models.policy import RetryPolicy
from throttlecli.infrastructure.cli.display import ConsoleDisplay
from throttlecli.infrastructure.config.settings import (
    get_backoff_strategy,
    get_config,
    get_extra_throttling_patterns,
    get_max_delay,
    get_retry_delay,
    get_retry_policy,
    load_configuration,
)
from throttlecli.infrastructure.monitoring.logger_setup import resolve_log_level, setup_logging
from throttlecli.infrastructure.resilience.classifier import default_classifier

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="throttlecli",
    help="Run commands and API calls with automatic retries on rate limiting.",
    add_completion=False,
)


def create_command_handler() -> CommandHandler:
    """Creates and wires up the CommandHandler from loaded configuration."""
    ui = ConsoleDisplay()
    classifier = default_classifier(get_extra_throttling_patterns())
    return CommandHandler(ui=ui, classifier=classifier)


def _fail(message: str, code: int = 2) -> None:
    ConsoleDisplay().display_error(message)
    raise typer.Exit(code=code)


def _resolve_policy(max_retries: Optional[int]) -> RetryPolicy:
    if max_retries is None:
        return get_retry_policy()
    return RetryPolicy(max_retries=max_retries)


# --- Shared options ---

MaxRetriesOption = Annotated[
    Optional[int],
    typer.Option("--max-retries", "-n", help="Retries after the first attempt. Defaults to retry.max_retries."),
]
BackoffOption = Annotated[
    Optional[str],
    typer.Option("--backoff", "-b", help="Backoff strategy: exponential, squared or none."),
]
DelayOption = Annotated[
    Optional[float],
    typer.Option("--delay", "-d", help="Initial delay in seconds for exponential backoff."),
]
MaxDelayOption = Annotated[
    Optional[float],
    typer.Option("--max-delay", help="Upper bound for a single delay in seconds."),
]
PatternOption = Annotated[
    Optional[List[str]],
    typer.Option("--pattern", "-p", help="Extra regular expression marking a message as throttling."),
]


@app.callback()
def main_callback(
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR.")] = None,
    config: Annotated[Optional[Path], typer.Option("--config", help="Path to a YAML configuration file.")] = None,
):
    """Loads configuration and configures logging before any command runs."""
    try:
        load_configuration(config_file=config, force=config is not None)
    except ConfigurationError as e:
        _fail(str(e))
    level = resolve_log_level(log_level or get_config('logging.level'), default=logging.WARNING)
    setup_logging(
        log_level=level,
        log_file=get_config('logging.file'),
        log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
    )


@app.command()
def classify(
    message: Annotated[str, typer.Argument(help="Error message to classify.")],
    pattern: PatternOption = None,
):
    """Report whether an error message is a throttling error. Exits 1 if it is not."""
    try:
        handler = create_command_handler()
        throttled = handler.handle_classify(message, extra_patterns=pattern)
    except (ConfigurationError, InvalidRuleError) as e:
        _fail(str(e))
    if not throttled:
        raise typer.Exit(code=1)


@app.command()
def schedule(
    max_retries: MaxRetriesOption = None,
    backoff: BackoffOption = None,
    delay: DelayOption = None,
    max_delay: MaxDelayOption = None,
):
    """Show the delays a retry policy would wait between attempts."""
    try:
        policy = _resolve_policy(max_retries)
        handler = create_command_handler()
        handler.handle_schedule(
            policy,
            strategy=backoff or get_backoff_strategy(),
            retry_delay=get_retry_delay() if delay is None else delay,
            max_delay=get_max_delay() if max_delay is None else max_delay,
        )
    except (ConfigurationError, InvalidRetryPolicyError, ValueError) as e:
        _fail(str(e))


@app.command()
def run(
    command: Annotated[List[str], typer.Argument(help="Command to run, after '--'.")],
    max_retries: MaxRetriesOption = None,
    backoff: BackoffOption = None,
    delay: DelayOption = None,
    max_delay: MaxDelayOption = None,
    pattern: PatternOption = None,
    timeout: Annotated[Optional[float], typer.Option("--timeout", help="Seconds before one attempt is killed.")] = None,
    no_sleep: Annotated[bool, typer.Option("--no-sleep", help="Retry immediately instead of backing off.")] = False,
):
    """Run a command, retrying it while it fails with a throttling error."""
    try:
        policy = _resolve_policy(max_retries)
        handler = create_command_handler()
        exit_code = handler.handle_run(
            command,
            policy,
            strategy=backoff or get_backoff_strategy(),
            retry_delay=get_retry_delay() if delay is None else delay,
            max_delay=get_max_delay() if max_delay is None else max_delay,
            sleep=not no_sleep,
            timeout=timeout,
            extra_patterns=pattern,
        )
    except (ConfigurationError, InvalidRetryPolicyError, ValueError) as e:
        _fail(str(e))
    if exit_code:
        raise typer.Exit(code=exit_code)


def cli_entry_point():
    """Function called by the console script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
