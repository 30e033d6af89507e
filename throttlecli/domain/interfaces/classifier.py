"""Interface for throttling classification.

Different providers signal rate limiting differently (exception types,
error codes, HTTP status, message text). The retry executor only asks
whether a given error is a throttling condition.
"""

import abc
from typing import Any, Optional


class ThrottlingClassifier(abc.ABC):
    """Abstract Base Class for deciding whether an error is throttling."""

    @abc.abstractmethod
    def match(self, error: BaseException) -> Optional[Any]:
        """Returns the rule that recognised ``error`` as throttling, or None.

        Args:
            error: The exception raised by the operation.
        """
        pass

    def is_throttling(self, error: BaseException) -> bool:
        """True when ``error`` represents a rate-limit condition."""
        return self.match(error) is not None
