"""Custom exceptions for trip-ledger."""


class TripLedgerError(Exception):
    """Base exception for all trip-ledger errors."""

    pass


class ConfigurationError(TripLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class SnapshotError(TripLedgerError):
    """Raised when a stored snapshot cannot be read back."""

    pass


class GroupNotFoundError(TripLedgerError):
    """Raised when a group reference does not match any group in the snapshot."""

    def __init__(self, group_ref: str, message: str | None = None):
        self.group_ref = group_ref
        super().__init__(message or f"No group matches '{group_ref}'")


class InvalidInputError(TripLedgerError):
    """Raised when user input is rejected before it enters the snapshot."""

    pass
