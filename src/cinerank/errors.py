"""Exceptions raised by the catalog, reputation and auth operations."""


class CineRankError(Exception):
    """Base class for every error surfaced to callers."""


class ValidationError(CineRankError):
    """Input failed a required-field or range check."""


class NotFound(CineRankError):
    """An id-based lookup missed."""


class InvalidCredentials(CineRankError):
    """Login lookup or password verification failed."""


class EmailTaken(CineRankError):
    """Registration collided with an existing email."""


class Forbidden(CineRankError):
    """The acting user may not perform an administrative operation."""
