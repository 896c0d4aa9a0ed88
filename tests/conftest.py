"""Shared fixtures for oka scenario tests."""

import pytest
from click.testing import CliRunner

from oka.executor import RequestResult
from oka.settings import Settings


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def settings_file(tmp_path):
    return tmp_path / ".okapi-cli.yml"


@pytest.fixture
def settings(settings_file):
    """Settings bound to a temp file, never touching ~/.okapi-cli.yml."""
    return Settings(settings_file)


@pytest.fixture
def obj(settings):
    """Context object for runner.invoke: explicit settings and empty environ."""
    return {"settings": settings, "environ": {}}


def make_request_result(status_code=200, body=None, headers=None, error=None):
    """Factory for mock RequestResult objects."""
    r = RequestResult()
    r.status_code = status_code
    r.headers = headers or {}
    r.body = body
    r.error = error
    return r
