"""Exception types shared by the repositories, services and clients."""


class TrackerError(Exception):
    """Base class for all GameTracker errors."""


class ValidationError(TrackerError):
    """Raised when input is rejected at a write boundary, before any write."""


class BackendUnavailable(TrackerError):
    """Raised by a storage backend when a single call cannot be completed."""


class StorageFailure(TrackerError):
    """Raised when both the primary and the fallback backend failed."""


class UpstreamFailure(TrackerError):
    """Raised when the game catalog or the trailer service cannot be reached."""
