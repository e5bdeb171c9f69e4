"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from email_open_tracker.exceptions import IssuanceError
from tests.fakes import ComposeWindow, FakeDocument, FakeIssuer


@pytest.fixture
def document() -> FakeDocument:
    return FakeDocument()


@pytest.fixture
def compose(document: FakeDocument) -> ComposeWindow:
    return ComposeWindow(document)


@pytest.fixture
def issuer() -> FakeIssuer:
    return FakeIssuer()


@pytest.fixture
def failing_issuer() -> FakeIssuer:
    return FakeIssuer(error=IssuanceError("Marker service unreachable"))


@pytest.fixture
def mock_settings():
    """Provide settings for testing."""
    from email_open_tracker.config import Settings

    return Settings(
        service_base_url="http://tracker.test",
        owner_id="owner-1",
        public_base_url="https://pixels.example.com",
        resend_delay_seconds=0.0,
        scan_interval_seconds=0.01,
        log_level="DEBUG",
        debug=True,
    )
