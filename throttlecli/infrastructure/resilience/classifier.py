"""Rule-based throttling classifier.

Each provider signals rate limiting its own way: AWS puts
``RequestLimitExceeded`` in the message or error code, OpenAI and Groq raise
a dedicated ``RateLimitError``, plain HTTP clients expose status 429. The
classifier walks an ordered list of rules and reports the first one that
matches, so new providers can be registered without touching the retry loop.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple, Type, Union

from groq import RateLimitError as GroqRateLimitError
from openai import RateLimitError as OpenAIRateLimitError

from throttlecli.domain.errors import InvalidRuleError
from throttlecli.domain.interfaces.classifier import ThrottlingClassifier

logger = logging.getLogger(__name__)

# Signatures used by the EC2 API and its SDK waiters
AWS_REQUEST_LIMIT_PATTERN = r"RequestLimitExceeded|Request limit exceeded"
AWS_THROTTLING_CODES = frozenset({
    "RequestLimitExceeded",
    "Throttling",
    "ThrottlingException",
    "TooManyRequestsException",
    "SlowDown",
})
HTTP_TOO_MANY_REQUESTS = 429


def extract_error_code(error: BaseException) -> Optional[str]:
    """Finds a provider error code on an exception, if it carries one.

    Looks at ``error.code``, botocore style ``error.response['Error']['Code']``
    and OpenAI style ``error.body['error']['code']``.
    """
    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code

    response = getattr(error, "response", None)
    if isinstance(response, dict):
        details = response.get("Error")
        if isinstance(details, dict):
            code = details.get("Code")
            if isinstance(code, str) and code:
                return code

    body = getattr(error, "body", None)
    if isinstance(body, dict):
        inner = body.get("error")
        if isinstance(inner, dict):
            code = inner.get("code")
            if isinstance(code, str) and code:
                return code
    return None


def extract_status_code(error: BaseException) -> Optional[int]:
    """Finds an HTTP status on an exception (``status_code`` or ``status``)."""
    for attr in ("status_code", "status"):
        status = getattr(error, attr, None)
        if isinstance(status, int) and not isinstance(status, bool):
            return status
    return None


@dataclass(frozen=True)
class ThrottlingRule:
    """One way of recognising a throttling error.

    Every criterion given must hold for the rule to match; criteria left as
    None are ignored. A rule must define at least one criterion.

    Attributes:
        name: Unique rule name, reported when the rule matches.
        error_types: Exception classes the error must be an instance of.
        message_pattern: Regular expression searched anywhere in ``str(error)``.
        error_codes: Accepted provider error codes (see ``extract_error_code``).
        status_codes: Accepted HTTP statuses (see ``extract_status_code``).
        predicate: Arbitrary check for cases the other criteria cannot express.
    """

    name: str
    error_types: Optional[Tuple[Type[BaseException], ...]] = None
    message_pattern: Optional[Union[str, re.Pattern]] = None
    error_codes: Optional[FrozenSet[str]] = None
    status_codes: Optional[FrozenSet[int]] = None
    predicate: Optional[Callable[[BaseException], bool]] = None
    _compiled: Optional[re.Pattern] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.name:
            raise InvalidRuleError("Throttling rule requires a name")
        criteria = (
            self.error_types,
            self.message_pattern,
            self.error_codes,
            self.status_codes,
            self.predicate,
        )
        if all(c is None for c in criteria):
            raise InvalidRuleError(f"Throttling rule '{self.name}' has no matching criteria")
        if self.message_pattern is not None:
            try:
                compiled = re.compile(self.message_pattern)
            except re.error as e:
                raise InvalidRuleError(
                    f"Throttling rule '{self.name}' has an invalid pattern: {e}"
                ) from e
            object.__setattr__(self, "_compiled", compiled)
        if self.error_codes is not None:
            object.__setattr__(self, "error_codes", frozenset(self.error_codes))
        if self.status_codes is not None:
            object.__setattr__(self, "status_codes", frozenset(self.status_codes))

    def matches(self, error: BaseException) -> bool:
        if self.error_types is not None and not isinstance(error, self.error_types):
            return False
        if self._compiled is not None and not self._compiled.search(str(error)):
            return False
        if self.error_codes is not None and extract_error_code(error) not in self.error_codes:
            return False
        if self.status_codes is not None and extract_status_code(error) not in self.status_codes:
            return False
        if self.predicate is not None and not self.predicate(error):
            return False
        return True


def default_rules() -> List[ThrottlingRule]:
    """The built-in provider rules, in evaluation order."""
    return [
        ThrottlingRule(name="aws-request-limit", message_pattern=AWS_REQUEST_LIMIT_PATTERN),
        ThrottlingRule(name="aws-throttling-code", error_codes=AWS_THROTTLING_CODES),
        ThrottlingRule(name="openai-rate-limit", error_types=(OpenAIRateLimitError,)),
        ThrottlingRule(name="groq-rate-limit", error_types=(GroqRateLimitError,)),
        ThrottlingRule(name="http-429", status_codes=frozenset({HTTP_TOO_MANY_REQUESTS})),
    ]


class RuleBasedClassifier(ThrottlingClassifier):
    """Classifies errors by evaluating an ordered list of ThrottlingRules."""

    def __init__(self, rules: Optional[Iterable[ThrottlingRule]] = None):
        """Initializes the classifier.

        Args:
            rules: Rules in evaluation order. Defaults to ``default_rules()``;
                pass an empty list to start with no rules at all.
        """
        self._rules: List[ThrottlingRule] = []
        for rule in default_rules() if rules is None else rules:
            self.register(rule)
        logger.debug(f"RuleBasedClassifier initialized with rules: {[r.name for r in self._rules]}")

    @property
    def rules(self) -> Tuple[ThrottlingRule, ...]:
        return tuple(self._rules)

    def register(self, rule: ThrottlingRule, first: bool = False) -> None:
        """Adds a rule, replacing any existing rule with the same name.

        Args:
            rule: The rule to add.
            first: Evaluate this rule before all others instead of last.
        """
        if self.unregister(rule.name):
            logger.debug(f"Replacing throttling rule '{rule.name}'")
        if first:
            self._rules.insert(0, rule)
        else:
            self._rules.append(rule)

    def register_pattern(self, name: str, pattern: str) -> ThrottlingRule:
        """Shortcut for a message-only rule."""
        rule = ThrottlingRule(name=name, message_pattern=pattern)
        self.register(rule)
        return rule

    def unregister(self, name: str) -> bool:
        """Removes the rule called ``name``. Returns True if one was removed."""
        for index, rule in enumerate(self._rules):
            if rule.name == name:
                del self._rules[index]
                return True
        return False

    def match(self, error: BaseException) -> Optional[ThrottlingRule]:
        for rule in self._rules:
            if rule.matches(error):
                logger.debug(f"Error {type(error).__name__} matched throttling rule '{rule.name}'")
                return rule
        return None


def default_classifier(extra_patterns: Optional[Iterable[str]] = None) -> RuleBasedClassifier:
    """Builds a classifier with the default rules plus message patterns.

    Args:
        extra_patterns: Additional regular expressions, registered as
            ``custom-1``, ``custom-2``... after the defaults.
    """
    classifier = RuleBasedClassifier()
    for index, pattern in enumerate(extra_patterns or [], start=1):
        classifier.register_pattern(f"custom-{index}", pattern)
    return classifier
