"""Error taxonomy shared by the engine and the API layer."""


class DatingError(Exception):
    """Base class for all domain errors."""


class NotFoundError(DatingError):
    """Referenced user, profile or match does not exist."""


class ValidationError(DatingError):
    """Malformed input, rejected before any write."""


class TransientStorageError(DatingError):
    """Store timed out or was unavailable. Safe to retry idempotent operations."""


class NotificationDeliveryError(DatingError):
    """Push delivery failed. Logged by the notifier, never surfaced to callers."""
