"""Custom exception hierarchy for the ledger.

All application-specific exceptions inherit from LedgerError,
which carries an error code for response mapping.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    def __init__(self, message: str, *, code: str = "INTERNAL_ERROR") -> None:
        super().__init__(message)
        self.code = code


class NotFoundError(LedgerError):
    """A complete or get referenced an id absent from the record set."""

    def __init__(self, record_id: str, *, kind: str = "record") -> None:
        super().__init__(f"{kind} {record_id!r} not found", code="NOT_FOUND")
        self.record_id = record_id
        self.kind = kind


class AlreadyCompletedError(LedgerError):
    """A record that already left the running state was completed again."""

    def __init__(self, record_id: str, status: str) -> None:
        super().__init__(
            f"record {record_id!r} is already {status}", code="ALREADY_COMPLETED"
        )
        self.record_id = record_id
        self.status = status


class InvalidPayloadError(LedgerError):
    """Request payload is missing required fields or has the wrong shape."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_PARAMS")


class PersistenceError(LedgerError):
    """The durable store failed to read or acknowledge a write."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="PERSISTENCE_FAILURE")


class GatewayError(LedgerError):
    """Errors in the HTTP gateway layer."""

    def __init__(self, message: str, *, code: str = "GATEWAY_ERROR") -> None:
        super().__init__(message, code=code)


class AuthError(GatewayError):
    """Missing or invalid bearer token."""

    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message, code="UNAUTHORIZED")
