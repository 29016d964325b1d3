"""
Exceptions raised by the catalog core.

The API layer maps each kind to a transport status code.
"""

from typing import Optional, Dict, Any


class CatalogError(Exception):
    """Base exception for all catalog errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(CatalogError):
    """Referenced item or claim does not exist."""
    pass


class ConflictError(CatalogError):
    """Claim already exists, duplicate external id, or a concurrent modification."""
    pass


class InvalidInputError(CatalogError):
    """Missing or malformed input."""
    pass


class ForbiddenError(CatalogError):
    """Requester has no relation to the item being mutated."""
    pass


class UnauthenticatedError(CatalogError):
    """Missing or invalid credential."""
    pass


class StorageError(CatalogError):
    """Underlying persistence failure."""
    pass
