"""Unit tests for the command-line interface."""

from __future__ import annotations

import pytest

from email_open_tracker.cli import main
from email_open_tracker.service.repository import TrackingRepository


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'tracking.sqlite3'}"


def test_records_lists_owner_emails(db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    repo = TrackingRepository.from_url(db_url)
    record = repo.create_record(owner_id="u1", recipient="a@b.com", subject="hello")
    repo.append_open(record.tracking_id, source_address="10.0.0.1", client_agent="MailClient/1.0")

    assert main(["records", "u1", "--db", db_url]) == 0

    out = capsys.readouterr().out
    assert record.tracking_id in out
    assert "1 opens" in out
    assert "1 emails, 1 opens" in out


def test_records_for_unknown_owner(db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["records", "nobody", "--db", db_url]) == 0

    assert "No tracked emails for nobody" in capsys.readouterr().out


def test_show_prints_opens(db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    repo = TrackingRepository.from_url(db_url)
    record = repo.create_record(owner_id="u1", subject="hello")
    repo.append_open(record.tracking_id, source_address="10.0.0.1", client_agent="MailClient/1.0")

    assert main(["show", record.tracking_id, "--db", db_url]) == 0

    out = capsys.readouterr().out
    assert "Subject: hello" in out
    assert "Opens: 1" in out
    assert "MailClient/1.0" in out


def test_show_unknown_id_fails(db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["show", "missing", "--db", db_url]) == 1

    assert "Unknown tracking id: missing" in capsys.readouterr().err
