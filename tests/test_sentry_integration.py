"""
Unit Tests for Sentry Error Tracking

Run with: pytest tests/test_sentry_integration.py -v
"""

from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from novated_core import sentry_integration
from novated_core.config import Settings, environment_report
from novated_core.sentry_integration import (
    REDACTED,
    capture_exception,
    filter_sensitive_data,
    init_sentry,
)


class TestInitSentry:
    """Test Sentry start-up from settings."""

    def test_disabled_without_dsn(self, monkeypatch):
        calls = []
        monkeypatch.setattr(sentry_integration.sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))

        assert init_sentry(dsn=None) is False
        assert init_sentry(dsn="") is False
        assert calls == []

    def test_enabled_with_dsn(self, monkeypatch):
        calls = []
        monkeypatch.setattr(sentry_integration.sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))

        started = init_sentry(
            dsn="https://key@o0.ingest.sentry.io/1",
            environment="production",
            release="novated-core@1.0.0",
            traces_sample_rate=0.1,
        )

        assert started is True
        options = calls[0]
        assert options["environment"] == "production"
        assert options["release"] == "novated-core@1.0.0"
        assert options["send_default_pii"] is False
        assert options["before_send"] is filter_sensitive_data
        integration_types = {type(i) for i in options["integrations"]}
        assert integration_types == {FastApiIntegration, LoggingIntegration}


class TestSentrySettings:

    def test_sample_rate_defaults(self):
        assert Settings(_env_file=None, ENVIRONMENT="production").sentry_traces_sample_rate == 0.1
        assert Settings(_env_file=None, ENVIRONMENT="development").sentry_traces_sample_rate == 0.0

    def test_sample_rate_override(self):
        settings = Settings(_env_file=None, ENVIRONMENT="production", SENTRY_TRACES_SAMPLE_RATE=0.5)
        assert settings.sentry_traces_sample_rate == 0.5

    def test_dsn_reported_without_value(self):
        settings = Settings(_env_file=None, SENTRY_DSN="https://key@o0.ingest.sentry.io/1")

        variables = environment_report(settings)["variables"]

        assert variables["SENTRY_DSN"] == "set"


class TestFilterSensitiveData:
    """Test scenario salaries and credentials never leave the process."""

    def test_request_body_salary_redacted(self):
        event = {
            "request": {
                "headers": {"Authorization": "Bearer abc", "Content-Type": "application/json"},
                "data": {
                    "salary": {"gross_annual_salary": 120000, "pay_frequency": "fortnightly"},
                    "vehicle": {"purchase_price_incl_gst": 50000},
                },
            },
        }

        filtered = filter_sensitive_data(event, {})

        assert filtered["request"]["headers"]["Authorization"] == REDACTED
        assert filtered["request"]["headers"]["Content-Type"] == "application/json"
        assert filtered["request"]["data"]["salary"] == REDACTED
        assert filtered["request"]["data"]["vehicle"]["purchase_price_incl_gst"] == 50000

    def test_nested_extras_redacted(self):
        event = {"extra": {"scenarios": [{"gross_annual_salary": 90000, "term_months": 36}]}}

        filtered = filter_sensitive_data(event, {})

        assert filtered["extra"]["scenarios"][0] == {"gross_annual_salary": REDACTED, "term_months": 36}

    def test_event_without_request(self):
        event = {"message": "Reference tables loaded"}
        assert filter_sensitive_data(event, {}) == {"message": "Reference tables loaded"}


class TestCaptureException:

    def test_no_client_sends_nothing(self):
        assert capture_exception(ValueError("bad table"), path="/api/novated-lease/calculate") is None
