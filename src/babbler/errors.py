"""Exceptions raised by babbler operations."""


class BabblerError(Exception):
    """Base exception for babbler operations."""
    pass


class ValidationError(BabblerError):
    """Raised when caller input is rejected before touching storage."""
    pass


class StoreError(BabblerError):
    """Raised when the database refuses a write or a transaction fails."""
    pass


class QueryError(BabblerError):
    """Raised when a search pattern cannot be evaluated."""
    pass
