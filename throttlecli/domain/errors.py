"""Exception types raised by throttlecli itself.

Errors raised by a retried operation are never wrapped in these; they
propagate to the caller unchanged.
"""

from typing import Optional


class ThrottleCliError(Exception):
    """Base class for errors raised by throttlecli."""


class InvalidRetryPolicyError(ThrottleCliError, ValueError):
    """Raised when a retry policy is constructed with an invalid budget."""

    def __init__(self, max_retries: object):
        self.max_retries = max_retries
        super().__init__(
            f"max_retries must be a non-negative integer, got {max_retries!r}"
        )


class InvalidRuleError(ThrottleCliError, ValueError):
    """Raised when a throttling rule cannot match anything."""


class ConfigurationError(ThrottleCliError):
    """Raised when a configuration value is present but unusable."""

    def __init__(self, key: str, value: object, reason: str):
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration for '{key}' ({value!r}): {reason}")


class CommandFailedError(ThrottleCliError):
    """Raised when an external command exits with a non-zero status.

    The message carries the command's stderr and stdout so throttling
    signatures printed on either stream are matchable.
    """

    def __init__(
        self,
        args: list,
        returncode: int,
        stdout: str = "",
        stderr: str = "",
        reason: Optional[str] = None,
    ):
        self.command = list(args)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        output = "\n".join(s for s in (self.stderr.strip(), self.stdout.strip()) if s)
        if reason and output:
            detail = f"{reason}: {output}"
        else:
            detail = reason or output or "no output"
        super().__init__(
            f"Command '{' '.join(self.command)}' failed with exit code {returncode}: {detail}"
        )
