"""
Domain errors raised by the repositories.

Routers translate these into HTTP responses:
NotFoundError -> 404, ConflictError -> 409 (or 400 where documented).
"""


class NotFoundError(Exception):
    """Raised when a looked-up record does not exist."""

    def __init__(self, entity: str, key=None):
        self.entity = entity
        self.key = key
        message = f"{entity} not found"
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write would violate a uniqueness rule (email in use, duplicate bookmark)."""
    pass


class NoRowsAffectedError(Exception):
    """Raised when an update matched no rows."""
    pass
