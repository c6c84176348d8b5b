"""
Domain error taxonomy.

Each class carries the HTTP status the boundary should use. Services raise
these (after rolling back); routes translate them into JSON bodies.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base for every expected, user-facing failure."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(DomainError):
    """400-level input problem, caught before any side effect."""
    status_code = 400


class BusinessRuleError(DomainError):
    """400-level rule violation (stock, transitions, paid orders...)."""
    status_code = 400


class AuthorizationError(DomainError):
    """403-level branch isolation or missing permission."""
    status_code = 403


class NotFoundError(DomainError):
    """404-level missing order/product/recipe/batch/party."""
    status_code = 404
