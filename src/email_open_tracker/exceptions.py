"""Custom exceptions for Email Open Tracker."""


class EmailOpenTrackerError(Exception):
    """Base exception for all Email Open Tracker errors."""


class ConfigurationError(EmailOpenTrackerError):
    """Exception raised for configuration related errors."""


class IssuanceError(EmailOpenTrackerError):
    """Exception raised when a tracking pixel could not be issued."""


class PersistenceError(EmailOpenTrackerError):
    """Exception raised when tracking records cannot be stored or read."""


class RecordNotFoundError(EmailOpenTrackerError):
    """Exception raised when a tracking id does not resolve to a record."""
