"""Tracking record and issuance API models.

Field names on the wire follow the camelCase contract the compose agent
already speaks (``userId``, ``pixelHtml``, ...); Python attributes stay
snake_case.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OpenEvent(_CamelModel):
    """A single fetch of a tracking pixel."""

    timestamp: datetime = Field(description="Server time the pixel was fetched")
    source_address: str = Field(default="unknown", description="Best-effort client address")
    client_agent: str = Field(default="unknown", description="User-Agent of the fetching client")
    referer: str = Field(default="direct", description="Referer header, if any")


class TrackingRecord(_CamelModel):
    """A tracked outgoing email and the opens recorded against it."""

    tracking_id: str = Field(description="Globally unique pixel identifier")
    owner_id: str = Field(alias="userId", description="Owner the record belongs to")
    recipient: str = Field(default="", description="Recipient captured at send time")
    subject: str = Field(default="", description="Subject captured at send time")
    created_at: datetime = Field(description="Issuance time")
    opens: list[OpenEvent] = Field(default_factory=list, description="Opens in arrival order")

    @property
    def open_count(self) -> int:
        return len(self.opens)

    @property
    def first_opened(self) -> datetime | None:
        return self.opens[0].timestamp if self.opens else None

    @property
    def last_opened(self) -> datetime | None:
        return self.opens[-1].timestamp if self.opens else None


class TrackRequest(_CamelModel):
    """Issuance request sent by the compose agent."""

    user_id: str | None = Field(default=None, description="Owner identifier (required)")
    recipient: str = Field(default="", description="Recipient address")
    subject: str = Field(default="", description="Message subject")


class TrackResponse(_CamelModel):
    """Issuance response carrying the embeddable pixel markup."""

    pixel_html: str
    tracking_id: str
    pixel_url: str
    message: str = "Tracking pixel generated successfully"


class EmailSummary(_CamelModel):
    """Per-record projection used by the owner listing endpoint."""

    tracking_id: str
    recipient: str
    subject: str
    sent_at: datetime
    open_count: int
    last_opened: datetime | None = None
    opens: list[OpenEvent] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: TrackingRecord) -> EmailSummary:
        return cls(
            tracking_id=record.tracking_id,
            recipient=record.recipient,
            subject=record.subject,
            sent_at=record.created_at,
            open_count=record.open_count,
            last_opened=record.last_opened,
            opens=record.opens,
        )


class EmailListResponse(_CamelModel):
    emails: list[EmailSummary]
    total_emails: int
    total_opens: int


class EmailDetailResponse(_CamelModel):
    email: TrackingRecord
    open_count: int
    first_opened: datetime | None = None
    last_opened: datetime | None = None


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
