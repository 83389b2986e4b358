from typing import Any, Optional


class TableError(Exception):
    """A table request that can't be served; carries the HTTP status to answer with."""

    status_code = 500

    def __init__(self, detail: str, entity: Optional[Any] = None):
        super().__init__(detail)
        self.detail = detail
        # current server copy, returned with conflicts and failed preconditions
        self.entity = entity


class BadRequestError(TableError):
    status_code = 400


class ForbiddenError(TableError):
    status_code = 403


class NotFoundError(TableError):
    status_code = 404


class UnsupportedOperationError(TableError):
    status_code = 405


class ConflictError(TableError):
    status_code = 409


class GoneError(TableError):
    status_code = 410


class PreconditionFailedError(TableError):
    status_code = 412


class UnknownUserError(LookupError):
    """No user matches the name the caller identified with."""
