"""Custom exceptions for the GigLedger backend."""

from __future__ import annotations


class GigLedgerError(Exception):
    """Base exception for all GigLedger errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(GigLedgerError):
    """Raised when required environment configuration is missing or invalid."""

    pass


class MigrationError(GigLedgerError):
    """Base exception for Firestore to Supabase migration errors."""

    pass


class NoUsersReconciledError(MigrationError):
    """Raised when no source user could be matched to a target user."""

    pass


class SourceReadError(MigrationError):
    """Raised when a bulk read from the source store fails."""

    pass


class TargetReadError(MigrationError):
    """Raised when listing users or rows from the target store fails."""

    pass


class TargetWriteError(MigrationError):
    """Raised when an insert into the target store fails."""

    def __init__(self, message: str, table: str = "", details: dict | None = None) -> None:
        super().__init__(message, details)
        self.table = table


class InvalidTimestampError(GigLedgerError):
    """Raised when a date-like value cannot be converted to a timestamp."""

    def __init__(self, message: str, value: object = None, details: dict | None = None) -> None:
        super().__init__(message, details)
        self.value = value
