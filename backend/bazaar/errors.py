# Overview: Domain error taxonomy shared by the offer, auction and like services.

"""
Every failure a service can report is a MarketplaceError subclass carrying:

- status_code: the HTTP status the API layer responds with
- reason: a stable machine-readable code clients can dispatch on

One status policy applies to every endpoint. Clients should branch on
`reason`, the message is for humans.
"""

from __future__ import annotations


class MarketplaceError(ValueError):
    """Base class for domain failures. A raised error means nothing was written."""

    status_code = 400
    reason = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, "reason": self.reason}


class InvalidInputError(MarketplaceError):
    """Malformed, missing or out-of-range parameters."""

    status_code = 400
    reason = "invalid_input"


class InvalidStateError(MarketplaceError):
    """Action is not valid for the current state of the offer or auction."""

    status_code = 400
    reason = "invalid_state"


class UnauthenticatedError(MarketplaceError):
    status_code = 401
    reason = "unauthenticated"


class ForbiddenError(MarketplaceError):
    """Actor lacks the role or relationship the action requires."""

    status_code = 403
    reason = "forbidden"


class NotFoundError(MarketplaceError):
    status_code = 404
    reason = "not_found"


class ConflictError(MarketplaceError):
    """Single-pending-offer or single-active-auction rule would be broken."""

    status_code = 409
    reason = "conflict"
