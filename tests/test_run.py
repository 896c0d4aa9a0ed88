"""Tests for the embeddable run() entry point."""

import io
from unittest.mock import patch

from oka.cli import run
from oka.settings import Settings
from tests.conftest import make_request_result


def _streams():
    return io.StringIO(), io.StringIO()


class TestRun:
    @patch("oka.executor.execute_request")
    def test_request_with_explicit_settings(self, mock_exec):
        out, err = _streams()
        settings = Settings(value={"baseUris": {"bot": "https://bot.example"}, "env": "bot", "bot": {"appKey": "b"}})
        mock_exec.return_value = make_request_result(body={"name": "n", "id": 2})

        code = run("get  v1/things", settings=settings, stdout=out, stderr=err)

        assert code == 0
        request = mock_exec.call_args[0][0]
        assert request.url == "https://bot.example/v1/things"
        assert request.app_key == "b"
        assert '"id": 2' in out.getvalue()
        assert err.getvalue() == ""

    def test_errors_go_to_stderr_stream(self):
        out, err = _streams()
        code = run("-e nowhere", stdout=out, stderr=err)
        assert code == 1
        assert out.getvalue() == ""
        assert "environment nowhere not supported" in err.getvalue()

    def test_environment_listing_without_path(self):
        out, err = _streams()
        settings = Settings()
        assert run("-e", settings=settings, stdout=out, stderr=err) == 0
        assert out.getvalue().strip() == "[o] production"

    def test_usage_error(self):
        out, err = _streams()
        code = run("x --no-such-flag", stdout=out, stderr=err)
        assert code == 1
        assert "no such option" in err.getvalue().lower()

    def test_version(self):
        out, err = _streams()
        assert run("-v", stdout=out, stderr=err) == 0
        assert out.getvalue().strip()

    @patch("oka.executor.execute_request")
    def test_does_not_read_stdin(self, mock_exec):
        out, err = _streams()
        mock_exec.return_value = make_request_result(body={})
        assert run("post x", stdout=out, stderr=err) == 0
        request = mock_exec.call_args[0][0]
        assert request.json is None
        assert request.form is None
