"""Marker service: pixel issuance and open recording over HTTP."""

from .app import create_app
from .repository import TrackingRepository

__all__ = ["TrackingRepository", "create_app"]
