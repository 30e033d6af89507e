"""Defines common Value Objects used across throttlecli.

Simple semantic aliases keep signatures readable without adding runtime cost.
"""

from typing import Any, Callable, NewType, TypeVar

# === Classification ===
RuleName = NewType("RuleName", str)            # e.g. 'aws-request-limit'
ErrorCode = NewType("ErrorCode", str)          # Provider error code, e.g. 'Throttling'
BackoffStrategyName = NewType("BackoffStrategyName", str)  # 'exponential', 'squared', 'none'

# === Execution ===
T = TypeVar("T")
Operation = Callable[[], T]                    # Zero-argument protected action
ThrottledHook = Callable[..., None]            # Called with zero args or a ThrottledAttempt
EventListener = Callable[[Any], None]          # Receives terminal domain events
