"""Data models for Email Open Tracker.

This module contains Pydantic models for data validation and serialization.
"""

from .tracking import EmailDetailResponse
from .tracking import EmailListResponse
from .tracking import EmailSummary
from .tracking import HealthResponse
from .tracking import OpenEvent
from .tracking import TrackingRecord
from .tracking import TrackRequest
from .tracking import TrackResponse

__all__ = [
    "EmailDetailResponse",
    "EmailListResponse",
    "EmailSummary",
    "HealthResponse",
    "OpenEvent",
    "TrackRequest",
    "TrackResponse",
    "TrackingRecord",
]
