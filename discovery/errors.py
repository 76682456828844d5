from typing import Optional


class DiscoveryError(Exception):
    """Base class for discovery errors."""


class LocationUnavailable(DiscoveryError):
    """The platform could not report a position (denied, unsupported, failed)."""


class InvalidLocalPrecondition(DiscoveryError):
    """A user action that cannot produce a request, e.g. load more on the last page."""


class BackendError(DiscoveryError):
    """The search backend answered, but with a failure envelope."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SessionNotFound(DiscoveryError):
    """No live discovery session has the given id."""
