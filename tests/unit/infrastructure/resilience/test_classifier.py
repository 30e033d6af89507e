import pytest
from unittest.mock import MagicMock

from groq import RateLimitError as GroqRateLimitError
from openai import AuthenticationError, RateLimitError

from throttlecli.domain.errors import InvalidRuleError
from throttlecli.infrastructure.resilience.classifier import (
    RuleBasedClassifier,
    ThrottlingRule,
    default_classifier,
    extract_error_code,
    extract_status_code,
)


class HttpError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


@pytest.fixture
def classifier():
    return RuleBasedClassifier()


@pytest.mark.parametrize(
    "message",
    [
        "RequestLimitExceeded",
        "RequestLimitExceeded => Request limit exceeded.",
        "An error occurred (RequestLimitExceeded) when calling the RunInstances operation",
        "waiter failed: Request limit exceeded.",
        "prefix text RequestLimitExceeded suffix text",
    ],
)
def test_messages_with_signature_are_throttling(classifier, message):
    assert classifier.is_throttling(Exception(message))
    assert classifier.match(RuntimeError(message)).name == "aws-request-limit"


@pytest.mark.parametrize(
    "message",
    [
        "",
        "InvalidAMIID.NotFound",
        "UnauthorizedOperation: You are not authorized",
        "Request limit",
        "Request-Limit-Exceeded",
    ],
)
def test_messages_without_signature_are_not_throttling(classifier, message):
    assert not classifier.is_throttling(Exception(message))
    assert classifier.match(Exception(message)) is None


@pytest.mark.parametrize("code", ["Throttling", "ThrottlingException", "SlowDown", "RequestLimitExceeded"])
def test_aws_error_codes(classifier, aws_error_cls, code):
    error = aws_error_cls("Rate exceeded", code=code)
    assert classifier.match(error).name == "aws-throttling-code"


def test_aws_non_throttling_code(classifier, aws_error_cls):
    assert not classifier.is_throttling(aws_error_cls("Not found", code="InvalidInstanceID.NotFound"))


def test_openai_rate_limit_error(classifier):
    error = RateLimitError("Rate limit reached", response=MagicMock(), body=None)
    assert classifier.match(error).name == "openai-rate-limit"


def test_openai_authentication_error_is_not_throttling(classifier):
    error = AuthenticationError("Invalid API key", response=MagicMock(), body=None)
    assert not classifier.is_throttling(error)


def test_groq_rate_limit_error(classifier):
    error = GroqRateLimitError("Rate limit reached", response=MagicMock(), body=None)
    assert classifier.match(error).name == "groq-rate-limit"


def test_http_429(classifier):
    assert classifier.match(HttpError("slow down please", 429)).name == "http-429"
    assert not classifier.is_throttling(HttpError("server error", 503))


def test_rules_evaluated_in_order():
    first = ThrottlingRule(name="first", message_pattern="limit")
    second = ThrottlingRule(name="second", message_pattern="limit")
    classifier = RuleBasedClassifier([first, second])

    assert classifier.match(Exception("limit")).name == "first"

    classifier.register(ThrottlingRule(name="zeroth", message_pattern="limit"), first=True)
    assert classifier.match(Exception("limit")).name == "zeroth"


def test_register_replaces_rule_with_same_name():
    classifier = RuleBasedClassifier([])
    classifier.register_pattern("custom", "Busy")
    classifier.register_pattern("custom", "Overloaded")

    assert [r.name for r in classifier.rules] == ["custom"]
    assert classifier.is_throttling(Exception("Overloaded"))
    assert not classifier.is_throttling(Exception("Busy"))


def test_unregister(classifier):
    assert classifier.unregister("aws-request-limit")
    assert not classifier.unregister("aws-request-limit")
    assert not classifier.is_throttling(Exception("RequestLimitExceeded"))


def test_empty_classifier_matches_nothing():
    assert not RuleBasedClassifier([]).is_throttling(Exception("RequestLimitExceeded"))


def test_rule_requires_all_criteria():
    rule = ThrottlingRule(name="typed", error_types=(ConnectionError,), message_pattern="Throttled")

    assert rule.matches(ConnectionError("Throttled by upstream"))
    assert not rule.matches(ConnectionError("reset by peer"))
    assert not rule.matches(ValueError("Throttled"))


def test_predicate_rule():
    rule = ThrottlingRule(name="pred", predicate=lambda e: getattr(e, "retry_after", None) is not None)
    error = Exception("busy")
    error.retry_after = 5
    assert rule.matches(error)
    assert not rule.matches(Exception("busy"))


def test_rule_without_criteria_is_rejected():
    with pytest.raises(InvalidRuleError, match="no matching criteria"):
        ThrottlingRule(name="empty")


def test_rule_without_name_is_rejected():
    with pytest.raises(InvalidRuleError):
        ThrottlingRule(name="", message_pattern="x")


def test_invalid_pattern_is_rejected():
    with pytest.raises(InvalidRuleError, match="invalid pattern"):
        ThrottlingRule(name="broken", message_pattern="([")


def test_default_classifier_adds_extra_patterns():
    classifier = default_classifier(["TooManyRequests", "quota exhausted"])

    assert classifier.match(Exception("HTTP TooManyRequests")).name == "custom-1"
    assert classifier.match(Exception("daily quota exhausted")).name == "custom-2"
    assert classifier.match(Exception("RequestLimitExceeded")).name == "aws-request-limit"


def test_extract_error_code_sources(aws_error_cls):
    coded = Exception("x")
    coded.code = "Throttling"
    body_error = Exception("x")
    body_error.body = {"error": {"code": "rate_limit_exceeded"}}

    assert extract_error_code(coded) == "Throttling"
    assert extract_error_code(aws_error_cls("x", code="SlowDown")) == "SlowDown"
    assert extract_error_code(body_error) == "rate_limit_exceeded"
    assert extract_error_code(Exception("x")) is None


@pytest.mark.parametrize("details", [None, "RequestLimitExceeded", ["Code"]])
def test_extract_error_code_ignores_malformed_response(details):
    error = Exception("database is locked")
    error.response = {"Error": details}

    assert extract_error_code(error) is None
    assert RuleBasedClassifier().match(error) is None


def test_extract_status_code_ignores_non_integers():
    error = Exception("x")
    error.status = "429"
    assert extract_status_code(error) is None
    assert extract_status_code(HttpError("x", 429)) == 429
