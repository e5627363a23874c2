"""
Error taxonomy for marketplace operations.
Every error carries a stable machine-checkable kind and the HTTP status the handlers return.
"""


class MarketplaceError(Exception):
    """Base class for errors surfaced to the caller."""
    kind = 'Error'
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {'error': self.kind, 'message': self.message}


class ValidationError(MarketplaceError):
    """Malformed or missing input."""
    kind = 'Validation'
    status_code = 400


class NotFoundError(MarketplaceError):
    """Referenced entity does not exist."""
    kind = 'NotFound'
    status_code = 404


class ForbiddenError(MarketplaceError):
    """Authenticated, but not allowed to act on this resource."""
    kind = 'Forbidden'
    status_code = 403


class ConflictError(MarketplaceError):
    """Duplicate creation or idempotency violation."""
    kind = 'Conflict'
    status_code = 409


class InvalidStateError(MarketplaceError):
    """Operation not valid for the current lifecycle state."""
    kind = 'InvalidState'
    status_code = 400


class ExternalError(MarketplaceError):
    """Payment gateway or other third-party failure."""
    kind = 'External'
    status_code = 502
