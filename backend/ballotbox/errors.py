"""
Domain errors raised by the ballot core.

Every error carries the HTTP status and machine-readable code the API layer
renders, so routers never translate exceptions by hand.
"""

from __future__ import annotations


class BallotError(Exception):
    status_code: int = 400
    code: str = "ballot_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFound(BallotError):
    status_code = 404
    code = "not_found"


class Unauthorized(BallotError):
    """Actor is not the ballot's creator (or is anonymous)."""

    status_code = 403
    code = "not_authorized"


class Forbidden(BallotError):
    """Actor is allowed in principle, but the ballot is in the wrong state."""

    status_code = 403
    code = "forbidden"


class AlreadyActive(BallotError):
    status_code = 409
    code = "already_active"


class BallotNotActive(BallotError):
    status_code = 409
    code = "ballot_not_active"


class DuplicateVote(BallotError):
    status_code = 409
    code = "already_voted"


class InvalidInput(BallotError):
    status_code = 400
    code = "invalid_input"


class DuplicateUrlToken(BallotError):
    """Another ballot already holds this url token; the caller draws a new one."""

    status_code = 409
    code = "url_token_taken"


__all__ = [
    "BallotError",
    "NotFound",
    "Unauthorized",
    "Forbidden",
    "AlreadyActive",
    "BallotNotActive",
    "DuplicateVote",
    "InvalidInput",
    "DuplicateUrlToken",
]
