"""Unit tests for data models."""

from datetime import datetime, timezone

from email_open_tracker.models import EmailSummary, OpenEvent, TrackingRecord, TrackRequest, TrackResponse


class TestTrackingRecord:
    """Test suite for TrackingRecord model."""

    def _record(self, opens: list[OpenEvent]) -> TrackingRecord:
        return TrackingRecord(
            tracking_id="t-1",
            owner_id="u1",
            recipient="a@b.com",
            subject="hi",
            created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            opens=opens,
        )

    def test_open_projections(self) -> None:
        """Test open count and first/last open timestamps."""
        t1 = datetime(2025, 1, 2, tzinfo=timezone.utc)
        t2 = datetime(2025, 1, 3, tzinfo=timezone.utc)
        record = self._record([OpenEvent(timestamp=t1), OpenEvent(timestamp=t2)])

        assert record.open_count == 2
        assert record.first_opened == t1
        assert record.last_opened == t2

    def test_unopened_record(self) -> None:
        """Test projections of a record nobody opened yet."""
        record = self._record([])

        assert record.open_count == 0
        assert record.first_opened is None
        assert record.last_opened is None

    def test_serializes_with_wire_names(self) -> None:
        """Test that records serialize with the camelCase wire contract."""
        data = self._record([OpenEvent(timestamp=datetime(2025, 1, 2, tzinfo=timezone.utc))]).model_dump(
            by_alias=True
        )

        assert data["trackingId"] == "t-1"
        assert data["userId"] == "u1"
        assert data["createdAt"].year == 2025
        assert data["opens"][0]["sourceAddress"] == "unknown"
        assert data["opens"][0]["clientAgent"] == "unknown"

    def test_summary_from_record(self) -> None:
        record = self._record([OpenEvent(timestamp=datetime(2025, 1, 2, tzinfo=timezone.utc))])

        summary = EmailSummary.from_record(record)

        assert summary.sent_at == record.created_at
        assert summary.open_count == 1
        assert summary.last_opened == record.last_opened


class TestIssuanceModels:
    def test_track_request_accepts_wire_names(self) -> None:
        request = TrackRequest.model_validate({"userId": "u1", "recipient": "a@b.com", "subject": "hi"})

        assert request.user_id == "u1"
        assert request.recipient == "a@b.com"

    def test_track_request_user_id_optional_at_parse_time(self) -> None:
        assert TrackRequest.model_validate({}).user_id is None

    def test_track_response_wire_names(self) -> None:
        response = TrackResponse(pixel_html="<img>", tracking_id="t-1", pixel_url="https://x/track/t-1.png")

        assert response.model_dump(by_alias=True) == {
            "pixelHtml": "<img>",
            "trackingId": "t-1",
            "pixelUrl": "https://x/track/t-1.png",
            "message": "Tracking pixel generated successfully",
        }
