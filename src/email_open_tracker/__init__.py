"""Email Open Tracker - tracking pixel injection for webmail.

This package provides a compose-side agent that splices a tracking pixel into
outgoing messages just before they are sent, and the marker service that
issues those pixels and records when they are fetched.
"""

__version__ = "0.1.0"
__author__ = "Trickl"

from email_open_tracker.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__", "__author__"]
