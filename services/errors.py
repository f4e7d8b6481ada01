"""
Domain errors raised by the trip, attendance and gear services.

Each error carries the HTTP status it maps to; ``main.py`` turns them into
JSON responses. Messages name the offending ids or values.
"""


class DomainError(Exception):
    status_code = 400
    kind = "domain_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(DomainError):
    """Referenced trip, family, user, gear item or assignment does not exist."""
    status_code = 404
    kind = "not_found"


class ValidationError(DomainError):
    """Structurally invalid input (bad dates, non-adult admin, non-positive quantity)."""
    status_code = 400
    kind = "validation_error"


class AuthorizationError(DomainError):
    """The caller's role or ownership does not permit the operation."""
    status_code = 403
    kind = "authorization_error"


class PreconditionError(DomainError):
    """The entity exists but its current state forbids the transition."""
    status_code = 409
    kind = "precondition_failed"


class AlreadyInStateError(DomainError):
    """The requested transition is already satisfied (publish twice, approve twice)."""
    status_code = 409
    kind = "already_in_state"


class CapacityError(DomainError):
    """A gear item would be pledged beyond its needed quantity."""
    status_code = 409
    kind = "capacity_exceeded"
