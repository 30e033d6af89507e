import pytest

from throttlecli.domain.errors import ConfigurationError
from throttlecli.domain.models.policy import RetryPolicy
from throttlecli.infrastructure.config import settings


@pytest.fixture
def yaml_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "retry:\n"
        "  max_retries: 7\n"
        "  backoff: squared\n"
        "  delay: 1.5\n"
        "classifier:\n"
        "  extra_patterns: [TooManyRequests]\n"
        "logging:\n"
        "  level: DEBUG\n"
    )
    return path


def test_defaults_without_any_source():
    settings.load_configuration()

    assert settings.get_retry_policy() == RetryPolicy(max_retries=3)
    assert settings.get_backoff_strategy() == "exponential"
    assert settings.get_retry_delay() == 3.0
    assert settings.get_max_delay() is None
    assert settings.get_extra_throttling_patterns() == []


def test_yaml_nested_keys(yaml_config):
    settings.load_configuration(config_file=yaml_config)

    assert settings.get_config("retry.max_retries") == 7
    assert settings.get_retry_policy() == RetryPolicy(max_retries=7)
    assert settings.get_backoff_strategy() == "squared"
    assert settings.get_retry_delay() == 1.5
    assert settings.get_extra_throttling_patterns() == ["TooManyRequests"]
    assert settings.get_config("logging.level") == "DEBUG"


def test_environment_overrides_yaml(yaml_config, monkeypatch):
    monkeypatch.setenv("THROTTLECLI_RETRY_MAX_RETRIES", "2")
    monkeypatch.setenv("THROTTLECLI_RETRY_DELAY", "0.5")
    settings.load_configuration(config_file=yaml_config)

    assert settings.get_retry_policy().max_retries == 2
    assert settings.get_retry_delay() == 0.5


def test_dotenv_file_is_loaded(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("THROTTLECLI_RETRY_BACKOFF=none\n")
    # registers the variable with monkeypatch so teardown removes what load_dotenv sets
    monkeypatch.setenv("THROTTLECLI_RETRY_BACKOFF", "placeholder")
    monkeypatch.delenv("THROTTLECLI_RETRY_BACKOFF")

    settings.load_configuration(env_file=env_file)

    assert settings.get_backoff_strategy() == "none"


def test_dotenv_is_found_upwards(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    assert settings.find_dotenv_path() == tmp_path / ".env"


def test_test_config_has_highest_priority(monkeypatch):
    monkeypatch.setenv("THROTTLECLI_RETRY_MAX_RETRIES", "9")
    settings.set_config_for_testing({"retry.max_retries": 1})

    assert settings.get_retry_policy().max_retries == 1

    settings.clear_test_config()
    assert settings.get_retry_policy().max_retries == 9


def test_set_config():
    settings.set_config("retry.max_delay", 30)
    assert settings.get_max_delay() == 30.0


def test_env_value_coercion(monkeypatch):
    monkeypatch.setenv("THROTTLECLI_FEATURE_ENABLED", "true")
    monkeypatch.setenv("THROTTLECLI_NAME", "ec2")
    assert settings.get_config("feature.enabled") is True
    assert settings.get_config("name") == "ec2"


def test_comma_separated_patterns(monkeypatch):
    monkeypatch.setenv("THROTTLECLI_CLASSIFIER_EXTRA_PATTERNS", "SlowDown, TooManyRequests")
    assert settings.get_extra_throttling_patterns() == ["SlowDown", "TooManyRequests"]


@pytest.mark.parametrize(
    "key, value, accessor",
    [
        ("retry.max_retries", -1, settings.get_retry_policy),
        ("retry.max_retries", "many", settings.get_retry_policy),
        ("retry.backoff", "fibonacci", settings.get_backoff_strategy),
        ("retry.delay", "soon", settings.get_retry_delay),
        ("retry.delay", -2, settings.get_retry_delay),
        ("classifier.extra_patterns", 5, settings.get_extra_throttling_patterns),
    ],
)
def test_invalid_values_raise_configuration_error(key, value, accessor):
    settings.set_config_for_testing({key: value})
    with pytest.raises(ConfigurationError) as excinfo:
        accessor()
    assert excinfo.value.key == key


def test_unparseable_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("retry: [unclosed\n")
    with pytest.raises(ConfigurationError):
        settings.load_configuration(config_file=path)


def test_load_is_idempotent_unless_forced(tmp_path, yaml_config):
    settings.load_configuration(config_file=yaml_config)
    settings.load_configuration(config_file=tmp_path / "missing.yaml")
    assert settings.get_retry_policy().max_retries == 7

    settings.load_configuration(config_file=tmp_path / "missing.yaml", force=True)
    assert settings.get_retry_policy().max_retries == 3
