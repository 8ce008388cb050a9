# Overview: Error taxonomy shared by services and the HTTP layer.

from __future__ import annotations


class ShareWardrobeError(Exception):
    """Base class for errors that map onto a client-facing HTTP status."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(ShareWardrobeError):
    """400-level business rule violation or bad input."""
    status_code = 400


class UnauthorizedError(ShareWardrobeError):
    status_code = 401


class ForbiddenError(ShareWardrobeError):
    """Authenticated, but not allowed to act on this entity."""
    status_code = 403


class NotFoundError(ShareWardrobeError):
    """Entity missing or soft-deleted."""
    status_code = 404


class ConflictError(ShareWardrobeError):
    """409-level conflict (e.g., duplicate phone number)."""
    status_code = 409
