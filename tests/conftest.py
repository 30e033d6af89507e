import os

import pytest
from typer.testing import CliRunner

from throttlecli.infrastructure.config import settings


class FakeAwsError(Exception):
    """Stands in for an SDK error carrying a botocore-style response."""

    def __init__(self, message, code=None):
        super().__init__(message)
        if code is not None:
            self.response = {"Error": {"Code": code, "Message": message}}


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def throttling_error():
    return FakeAwsError("RequestLimitExceeded => Request limit exceeded.")


@pytest.fixture
def aws_error_cls():
    return FakeAwsError


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keeps tests away from the user's config file, .env and THROTTLECLI_ variables."""
    for key in list(os.environ):
        if key.startswith(settings.ENV_PREFIX):
            monkeypatch.delenv(key)
    monkeypatch.setattr(settings, "DEFAULT_CONFIG_FILE", tmp_path / "missing.yaml")
    monkeypatch.chdir(tmp_path)
    settings.reset_configuration()
    yield
    settings.reset_configuration()
