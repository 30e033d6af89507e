"""Runs external commands as retryable operations.

A CommandRunner is a zero-argument callable, so it can be handed straight
to the retry executor. Failures raise CommandFailedError whose message
includes the command's error output; a CLI that prints a provider's
"RequestLimitExceeded" message is therefore classified as throttled.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from throttlecli.domain.errors import CommandFailedError

logger = logging.getLogger(__name__)

TIMEOUT_RETURNCODE = 124  # same as coreutils timeout(1)
CANNOT_EXECUTE_RETURNCODE = 126
NOT_FOUND_RETURNCODE = 127


@dataclass
class CommandResult:
    """Output of a command that exited with status 0."""
    returncode: int
    stdout: str
    stderr: str


class CommandRunner:
    """Zero-argument operation executing one command line."""

    def __init__(self, args: Sequence[str], timeout: Optional[float] = None):
        """Initializes the runner.

        Args:
            args: Program and arguments, not passed through a shell.
            timeout: Seconds before a single attempt is killed.
        """
        if not args:
            raise ValueError("A command to run is required")
        self.args = list(args)
        self.timeout = timeout
        self.calls = 0

    def __call__(self) -> CommandResult:
        self.calls += 1
        logger.debug(f"Running command (call {self.calls}): {self.args}")
        try:
            completed = subprocess.run(
                self.args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandFailedError(
                self.args,
                TIMEOUT_RETURNCODE,
                stdout=_as_text(e.stdout),
                stderr=_as_text(e.stderr),
                reason=f"timed out after {self.timeout} seconds",
            ) from e
        except FileNotFoundError as e:
            raise CommandFailedError(
                self.args, NOT_FOUND_RETURNCODE, reason=f"command not found: {self.args[0]}"
            ) from e
        except OSError as e:
            raise CommandFailedError(
                self.args, CANNOT_EXECUTE_RETURNCODE, reason=f"cannot execute: {e}"
            ) from e

        if completed.returncode != 0:
            raise CommandFailedError(
                self.args,
                completed.returncode,
                stdout=completed.stdout,
                stderr=completed.stderr,
            )
        return CommandResult(completed.returncode, completed.stdout, completed.stderr)


def _as_text(output) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output
