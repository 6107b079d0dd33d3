"""
Typed errors raised by the service layer.

All of them subclass ValueError so callers that only care about
"bad request" can keep catching ValueError.
"""


class CourtsideError(ValueError):
    """Base class for expected domain errors."""


class NotFound(CourtsideError):
    """Raised when a referenced user, club, session, match or announcement does not exist."""


class CapacityExceeded(CourtsideError):
    """Raised when a new player tries to join a session whose roster is full."""


class SessionLocked(CourtsideError):
    """Raised when a roster change is attempted on a started or completed session."""


class InvalidScore(CourtsideError):
    """Raised when a match is recorded with tied scores."""


class ValidationError(CourtsideError):
    """Raised when required fields are missing or malformed."""


class DuplicateEntity(CourtsideError):
    """Raised when an email is already registered or a user is already a club member."""
