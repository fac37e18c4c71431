"""Exceptions raised inside the BrainBuddy progress engine."""


class BrainBuddyError(Exception):
    """Base exception class for all application-specific errors."""
    pass


# --- Local storage ---
class StorageError(BrainBuddyError):
    """Raised when a persisted record cannot be written."""
    pass


# --- Progress Service ---
class ProgressServiceError(BrainBuddyError):
    """Raised when the remote Progress Service cannot be reached or fails."""
    pass


class ProgressServiceUnauthorized(ProgressServiceError):
    """Raised when no credential is available or the service rejects it."""
    pass


# --- Content ---
class ContentError(BrainBuddyError):
    """Raised when packaged quiz or pet content is missing or malformed."""
    pass
